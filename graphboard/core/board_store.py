"""Board Store Module - persistence collaborator for board documents.

Stores interchange documents (see DocumentSerializer) under opaque keys.
The graph core never assumes a storage technology; it hands a snapshot to
a store and asks for one back.

Backends:
- InMemoryBoardStore: dict-backed, deep-copies on the way in and out
- FileBoardStore: one ``{key}.board.json`` file per board, sorted keys

Usage:
    from graphboard.core.board_store import FileBoardStore

    store = FileBoardStore("/projects/fitness")
    store.save("architecture", document)
    document = store.load("architecture")
"""

import json
import logging
import re
import threading
from abc import ABC, abstractmethod
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from graphboard.core.errors import InvalidDocument

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")

Document = Dict[str, Any]


def validate_key(key: str) -> str:
    """Reject keys that are empty or could escape a storage directory.

    Raises:
        ValueError: If key is not a plain identifier
    """
    if not isinstance(key, str) or not _KEY_PATTERN.match(key) or ".." in key:
        raise ValueError(
            f"Invalid board key: {key!r}. Use letters, digits, '.', '_' or '-'"
        )
    return key


class BoardStore(ABC):
    """Abstract base class for board document storage."""

    @abstractmethod
    def save(self, key: str, document: Document) -> None:
        """Store a document, replacing any previous one under ``key``."""
        pass

    @abstractmethod
    def load(self, key: str) -> Optional[Document]:
        """Return the stored document, or None if absent.

        Raises:
            InvalidDocument: If the stored data cannot be read back
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete a document; True if something was removed."""
        pass

    @abstractmethod
    def list_keys(self) -> List[str]:
        """Sorted keys of all stored documents."""
        pass

    def exists(self, key: str) -> bool:
        return self.load(key) is not None

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.exists(key)


class InMemoryBoardStore(BoardStore):
    """Thread-safe in-memory store.

    Documents are deep-copied on save and load so callers can never mutate
    stored state through a reference they still hold.
    """

    def __init__(self):
        self._documents: Dict[str, Document] = {}
        self._lock = threading.RLock()

    def save(self, key: str, document: Document) -> None:
        validate_key(key)
        with self._lock:
            self._documents[key] = deepcopy(document)
            logger.debug(f"Saved board {key} in memory")

    def load(self, key: str) -> Optional[Document]:
        validate_key(key)
        with self._lock:
            document = self._documents.get(key)
            return deepcopy(document) if document is not None else None

    def delete(self, key: str) -> bool:
        validate_key(key)
        with self._lock:
            return self._documents.pop(key, None) is not None

    def list_keys(self) -> List[str]:
        with self._lock:
            return sorted(self._documents)

    def __len__(self) -> int:
        with self._lock:
            return len(self._documents)


class FileBoardStore(BoardStore):
    """JSON file store: ``{directory}/{key}.board.json``.

    Files are written with sorted keys and two-space indent so saved boards
    diff cleanly under version control.
    """

    SUFFIX = ".board.json"

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        self._lock = threading.RLock()

    def _path(self, key: str) -> Path:
        return self.directory / f"{validate_key(key)}{self.SUFFIX}"

    def save(self, key: str, document: Document) -> None:
        path = self._path(key)
        with self._lock:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, sort_keys=True)
            tmp_path.replace(path)
        logger.info(f"Saved board {key} to {path}")

    def load(self, key: str) -> Optional[Document]:
        path = self._path(key)
        with self._lock:
            if not path.exists():
                return None
            try:
                with open(path, "r", encoding="utf-8") as f:
                    return json.load(f)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise InvalidDocument(
                    f"Stored board {key} is not valid JSON: {e}",
                    details={"key": key, "path": str(path)},
                )

    def exists(self, key: str) -> bool:
        return self._path(key).exists()

    def delete(self, key: str) -> bool:
        path = self._path(key)
        with self._lock:
            if not path.exists():
                return False
            path.unlink()
        logger.info(f"Deleted board file {path}")
        return True

    def list_keys(self) -> List[str]:
        if not self.directory.exists():
            return []
        return sorted(p.name[: -len(self.SUFFIX)] for p in self.directory.glob(f"*{self.SUFFIX}"))


def create_board_store(directory: Optional[Union[str, Path]] = None) -> BoardStore:
    """File store when a directory is given, in-memory store otherwise."""
    if directory is None:
        return InMemoryBoardStore()
    return FileBoardStore(directory)
