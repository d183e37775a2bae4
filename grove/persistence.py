"""
Persistence

The engine only needs two things from storage: load() at startup and
save(store) after every change. Both backends here honour that contract:

    MemoryPersistence    keeps the last saved dict (tests, embedding)
    JsonFilePersistence  one JSON document on disk, written atomically

File format:

    {
      "version": 1,
      "current": "main",
      "branches": {
        "main": {"tree": {...}, "staged": ["file-1"], "commits": [...]}
      }
    }

staged is an unordered set (written sorted for stable output); commits
are most-recent-first and their order is significant.

A missing, unreadable or invalid document loads as None, and
load_or_default() then starts from a built-in single-branch store.
"""

import json
import logging
import os
import tempfile
from collections.abc import Callable
from pathlib import Path

from .snapshot import BranchStore
from .tree import validate_tree

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


class PersistenceError(Exception):
    """Raised by a backend when it cannot save."""


def store_to_dict(store: BranchStore) -> dict:
    return {"version": FORMAT_VERSION, **store.to_dict()}


def store_from_dict(data: dict, max_tree_depth: int = 100) -> BranchStore:
    """
    Rebuild and validate a store.

    Raises ValueError (or KeyError/TypeError for a malformed document)
    if the data cannot be trusted.
    """
    version = data.get("version", FORMAT_VERSION)
    if version > FORMAT_VERSION:
        raise ValueError(
            f"State format version {version} is newer than supported ({FORMAT_VERSION})"
        )
    store = BranchStore.from_dict(data)
    for name, snap in list(store.items()):
        validate_tree(snap.tree, max_depth=max_tree_depth)
        store.put(name, snap.reconciled())
    return store


class MemoryPersistence:
    """Keeps the saved state as a plain dict."""

    def __init__(self, data: dict | None = None, max_tree_depth: int = 100):
        self.data = data
        self.max_tree_depth = max_tree_depth
        self.saves = 0

    def load(self) -> BranchStore | None:
        if self.data is None:
            return None
        try:
            return store_from_dict(self.data, self.max_tree_depth)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Discarding invalid in-memory state: %s", e)
            return None

    def save(self, store: BranchStore) -> None:
        self.data = store_to_dict(store)
        self.saves += 1


class JsonFilePersistence:
    """Stores the branch store as a JSON file."""

    def __init__(self, path: Path, max_tree_depth: int = 100):
        self.path = Path(path)
        self.max_tree_depth = max_tree_depth

    def load(self) -> BranchStore | None:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return store_from_dict(data, self.max_tree_depth)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read state from %s: %s", self.path, e)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Ignoring corrupt state in %s: %s", self.path, e)
        return None

    def save(self, store: BranchStore) -> None:
        try:
            write_json_atomic(self.path, store_to_dict(store))
        except OSError as e:
            raise PersistenceError(f"Failed to save state to {self.path}: {e}") from e


def write_json_atomic(path: Path, data) -> None:
    """Write JSON via tempfile + rename so readers never see a partial file."""
    content = json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8")
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
            f.flush()
        Path(tmp_path).replace(path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def load_or_default(persistence, default_factory: Callable[[], BranchStore]) -> BranchStore:
    """Load a store, falling back to `default_factory()` when there is none."""
    store = None
    if persistence is not None:
        try:
            store = persistence.load()
        except Exception:
            logger.warning("Persistence load failed; using default state", exc_info=True)
    if store is None:
        logger.info("No saved state; starting from the default branch store")
        store = default_factory()
    return store
