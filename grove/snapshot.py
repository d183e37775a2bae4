"""
Branch Snapshots

A branch is nothing more than a name pointing at a BranchSnapshot: the
branch's tree, the set of staged file ids, and its commit log. Snapshots
are immutable values. The engine never edits one in place; it builds a
replacement and swaps it into the BranchStore.

Branches do not reference each other. Forking copies the parent's
snapshot under a new name (sharing the immutable tree), so there is no
ancestry to walk and no way for one branch to see another's edits.
"""

import logging
from dataclasses import dataclass, field

from .serializable import Serializable
from .tree import FileStatus, FolderNode, find

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"


class UnknownBranchError(KeyError):
    """Raised when a branch name does not key into the store."""

    def __str__(self):
        return f"Branch '{self.args[0]}' not found"


@dataclass(frozen=True)
class Commit(Serializable):
    """A commit record. Message and time only; it does not capture a tree."""

    id: str
    message: str
    timestamp: str  # ISO-8601, UTC


@dataclass(frozen=True)
class BranchSnapshot(Serializable):
    """
    Everything one branch owns.

    staged holds file ids, each of which should resolve to a changed file
    in tree (see reconciled()). commits is most-recent-first.
    """

    tree: FolderNode
    staged: frozenset[str] = field(default_factory=frozenset)
    commits: tuple[Commit, ...] = ()

    def fork(self) -> "BranchSnapshot":
        """
        Copy this snapshot for a new branch.

        The tree, staged set and commit log are all immutable, so sharing
        them is an exact copy: whatever the new branch does next produces
        new values and leaves this snapshot untouched.
        """
        return BranchSnapshot(tree=self.tree, staged=self.staged, commits=self.commits)

    def reconciled(self) -> "BranchSnapshot":
        """
        Drop staged ids that no longer name a changed file.

        Returns self when nothing is stale.
        """
        valid = frozenset(
            fid for fid in self.staged
            if (f := find(self.tree, fid)) is not None and f.status is not FileStatus.UNMODIFIED
        )
        if valid == self.staged:
            return self
        logger.debug("Dropping stale staged ids: %s", sorted(self.staged - valid))
        return BranchSnapshot(tree=self.tree, staged=valid, commits=self.commits)


class BranchStore:
    """
    Branch name -> BranchSnapshot, plus which branch is current.

    Invariants: the store is never empty, and `current` always names a
    branch in it. Names keep insertion order.
    """

    def __init__(self, snapshots: dict[str, BranchSnapshot], current: str):
        if not snapshots:
            raise ValueError("A branch store needs at least one branch")
        if current not in snapshots:
            raise UnknownBranchError(current)
        self._snapshots = dict(snapshots)
        self._current = current

    @classmethod
    def initial(cls, tree: FolderNode, branch: str = DEFAULT_BRANCH) -> "BranchStore":
        """A single-branch store with nothing staged and no commits."""
        return cls({branch: BranchSnapshot(tree=tree)}, branch)

    @property
    def current(self) -> str:
        return self._current

    def names(self) -> list[str]:
        return list(self._snapshots)

    def __contains__(self, name: str) -> bool:
        return name in self._snapshots

    def __len__(self) -> int:
        return len(self._snapshots)

    def get(self, name: str | None = None) -> BranchSnapshot:
        """Snapshot for `name` (default: the current branch)."""
        name = self._current if name is None else name
        try:
            return self._snapshots[name]
        except KeyError:
            raise UnknownBranchError(name) from None

    def set_current(self, name: str) -> None:
        if name not in self._snapshots:
            raise UnknownBranchError(name)
        self._current = name

    def put(self, name: str, snapshot: BranchSnapshot) -> None:
        """Add or replace the snapshot for `name`."""
        self._snapshots[name] = snapshot

    def remove(self, name: str, fallback: str = DEFAULT_BRANCH) -> BranchSnapshot:
        """
        Delete a branch and return its snapshot.

        If it was current, `fallback` becomes current when it still
        exists, else the first remaining branch. Refuses to remove the
        last branch.
        """
        if name not in self._snapshots:
            raise UnknownBranchError(name)
        if len(self._snapshots) == 1:
            raise ValueError(f"Cannot remove '{name}': it is the only branch")
        snapshot = self._snapshots.pop(name)
        if self._current == name:
            self._current = fallback if fallback in self._snapshots else next(iter(self._snapshots))
            logger.info("Removed current branch '%s'; now on '%s'", name, self._current)
        return snapshot

    def items(self):
        return self._snapshots.items()

    # ── Serialization ──────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            "current": self._current,
            "branches": {name: snap.to_dict() for name, snap in self._snapshots.items()},
        }

    @classmethod
    def from_dict(cls, d: dict) -> "BranchStore":
        snapshots = {
            name: BranchSnapshot.from_dict(snap) for name, snap in d["branches"].items()
        }
        return cls(snapshots, d["current"])
