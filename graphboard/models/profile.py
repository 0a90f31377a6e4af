"""Graph profiles: the configurable vocabulary of a board.

A profile fixes the node-kind set, status set and priority set of a graph
instance, the defaults applied to new nodes, the preferred layout direction,
the storage key and an optional seed graph. The two shipped profiles
(``architecture`` and ``screen``) live as YAML files next to this package.

Usage:
    from graphboard.models.profile import load_profile

    profile = load_profile("screen")
    profile.kinds          # ['auth', 'main', ...]
    profile.seed.nodes[0]  # Node(...)
"""

import logging
from pathlib import Path
from typing import Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from graphboard.models.graph import PRIORITIES, Edge, Node

logger = logging.getLogger(__name__)

PROFILES_DIR = Path(__file__).resolve().parent.parent / "profiles"

Direction = Literal["TB", "BT", "LR", "RL"]


class ProfileLoadError(Exception):
    """Raised when a profile file is missing or invalid."""
    pass


class SeedGraph(BaseModel):
    """Initial nodes and edges for a freshly created board."""

    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)


class GraphProfile(BaseModel):
    """Vocabulary and defaults for one family of boards."""

    name: str = Field(..., description="Profile name")
    description: str = Field(default="", description="Human readable summary")
    kinds: List[str] = Field(..., min_length=1, description="Allowed node kinds")
    statuses: List[str] = Field(..., min_length=1, description="Allowed statuses")
    priorities: List[str] = Field(default_factory=lambda: list(PRIORITIES))
    default_status: Optional[str] = Field(default=None)
    default_priority: str = Field(default="medium")
    default_direction: Direction = Field(default="TB")
    default_edge_kind: Optional[str] = Field(default=None)
    storage_key: Optional[str] = Field(default=None)
    seed: SeedGraph = Field(default_factory=SeedGraph)

    @model_validator(mode="after")
    def check_defaults(self) -> "GraphProfile":
        if self.default_status is None:
            self.default_status = self.statuses[0]
        if self.default_status not in self.statuses:
            raise ValueError(
                f"default_status '{self.default_status}' not in statuses {self.statuses}"
            )
        if self.default_priority not in self.priorities:
            raise ValueError(
                f"default_priority '{self.default_priority}' not in priorities {self.priorities}"
            )
        if self.storage_key is None:
            self.storage_key = self.name
        return self

    def allows_kind(self, kind: str) -> bool:
        return kind in self.kinds

    def allows_status(self, status: str) -> bool:
        return status in self.statuses

    def allows_priority(self, priority: str) -> bool:
        return priority in self.priorities

    def default_name(self, kind: str) -> str:
        return f"New {kind}"

    def default_description(self, kind: str) -> str:
        return f"Description for new {kind}"

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "GraphProfile":
        """Load a profile from a YAML file.

        Raises:
            ProfileLoadError: If the file is missing, not YAML, or fails validation
        """
        try:
            with open(yaml_path, 'r') as f:
                profile_def = yaml.safe_load(f)
        except FileNotFoundError:
            raise ProfileLoadError(f"Profile file not found: {yaml_path}")
        except yaml.YAMLError as e:
            raise ProfileLoadError(f"Invalid YAML in profile: {e}")

        try:
            return cls.model_validate(profile_def)
        except ValidationError as e:
            raise ProfileLoadError(f"Invalid profile {yaml_path.name}: {e}")


_cache: Dict[str, GraphProfile] = {}


def list_profiles() -> List[str]:
    """Names of the profiles shipped with the package."""
    return sorted(p.stem for p in PROFILES_DIR.glob("*.yaml"))


def load_profile(name: str) -> GraphProfile:
    """Load a shipped profile by name.

    Returns a fresh copy each call so callers may adjust it freely.

    Raises:
        ProfileLoadError: If no such profile exists
    """
    if name not in _cache:
        path = PROFILES_DIR / f"{name}.yaml"
        if not path.exists():
            raise ProfileLoadError(
                f"Unknown profile: '{name}'. Available profiles: {', '.join(list_profiles())}"
            )
        _cache[name] = GraphProfile.from_yaml(path)
        logger.debug(f"Loaded profile {name} from {path}")
    return _cache[name].model_copy(deep=True)


__all__ = [
    "Direction",
    "GraphProfile",
    "ProfileLoadError",
    "SeedGraph",
    "list_profiles",
    "load_profile",
]
