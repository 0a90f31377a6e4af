"""Tests for configuration and feature flags."""

import pytest

from graphboard.config.settings import (
    DOCUMENT_VERSION,
    LAYOUT_DEFAULTS,
    get_all_flags,
    is_enabled,
    set_flag,
)


def test_layout_defaults_present():
    for key in ("rank_gap", "node_separation", "edge_separation",
                "node_width", "node_height", "max_sweeps"):
        assert key in LAYOUT_DEFAULTS
    assert "rank_separation" in LAYOUT_DEFAULTS


def test_document_version():
    assert DOCUMENT_VERSION == "1.0"


def test_flags_listed():
    flags = get_all_flags()
    assert set(flags) == {"allow_self_loops", "allow_duplicate_edges"}


def test_set_flag():
    set_flag("allow_duplicate_edges", True)
    assert is_enabled("allow_duplicate_edges") is True
    set_flag("allow_duplicate_edges", False)
    assert is_enabled("allow_duplicate_edges") is False


def test_get_all_flags_returns_copy():
    flags = get_all_flags()
    flags["allow_self_loops"] = "tampered"
    assert is_enabled("allow_self_loops") != "tampered"


def test_unknown_flag():
    with pytest.raises(KeyError, match="Unknown feature flag"):
        is_enabled("time_travel")
    with pytest.raises(KeyError, match="Unknown feature flag"):
        set_flag("time_travel", True)
