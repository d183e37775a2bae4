"""
Active File Tracking

Keeps track of which file is "open" and a cached copy of it, so a
renderer can draw content/status/language without searching the tree on
every keystroke.

The cache is never a live reference: trees are immutable, so refreshing
means running find() again against whatever tree the current branch has
now. The tracker listens to engine hooks for that.

Stale-result suppression:
    Anything slow that works on the open file (AI requests, completions)
    takes a token() first and hands its result to deliver() when done.
    If the user opened another file or switched branch in the meantime,
    the token no longer matches and the result is dropped.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from .engine import VersionControlEngine
from .tree import FileNode, find

logger = logging.getLogger(__name__)

# Events after which the current branch's tree may have changed
_TREE_EVENTS = frozenset({
    "post_edit", "post_commit", "post_create_file", "post_create_folder",
    "post_delete", "post_stage", "post_unstage", "post_stage_all",
})
# Events after which the current branch itself may be different
_BRANCH_EVENTS = frozenset({"post_switch_branch", "post_create_branch", "post_delete_branch"})


@dataclass(frozen=True)
class ActiveFileToken:
    """Identifies "the open file, as of now" for an async request."""
    generation: int
    file_id: str | None
    branch: str


class ActiveFileTracker:
    """
    Resolves the open file against the engine's current branch.

    default_file_id is the fallback opened after a branch switch when the
    previously open file does not exist on the new branch.
    """

    def __init__(
        self,
        engine: VersionControlEngine,
        default_file_id: str | None = None,
        file_id: str | None = None,
    ):
        self.engine = engine
        self.default_file_id = default_file_id
        self._file_id: str | None = None
        self._file: FileNode | None = None
        self._branch = engine.current_branch
        self._generation = 0
        engine.add_hook(self._on_event, name="active-file-tracker")
        self._resolve(file_id if file_id is not None else default_file_id, fallback=True)

    # ── State ─────────────────────────────────────────────────────

    @property
    def file_id(self) -> str | None:
        return self._file_id

    @property
    def file(self) -> FileNode | None:
        """Last known copy of the open file, or None if nothing is open."""
        return self._file

    def open(self, file_id: str) -> FileNode | None:
        """Open `file_id` on the current branch. Opens nothing if it does not exist."""
        self._resolve(file_id, fallback=False)
        return self._file

    def close(self) -> None:
        self._set(None)

    def refresh(self) -> FileNode | None:
        """Re-read the open file from the current tree."""
        if self._file_id is None:
            return None
        node = find(self.engine.tree(), self._file_id)
        if node is None:
            # Deleted out from under us
            self._set(None)
        else:
            self._file = node
        return self._file

    def detach(self) -> None:
        """Stop listening to the engine."""
        self.engine.remove_hook(self._on_event)

    # ── Cancellation ──────────────────────────────────────────────

    def token(self) -> ActiveFileToken:
        return ActiveFileToken(self._generation, self._file_id, self._branch)

    def is_current(self, token: ActiveFileToken) -> bool:
        return token.generation == self._generation

    def deliver(self, token: ActiveFileToken, result, callback: Callable | None = None) -> bool:
        """
        Hand `result` to `callback` only if `token` is still current.

        Returns whether the result was accepted.
        """
        if not self.is_current(token):
            logger.debug(
                "Dropping stale result for %s on %s (generation %d, now %d)",
                token.file_id, token.branch, token.generation, self._generation,
            )
            return False
        if callback is not None:
            callback(result)
        return True

    # ── Internals ─────────────────────────────────────────────────

    def _set(self, node: FileNode | None) -> None:
        new_id = node.id if node is not None else None
        branch = self.engine.current_branch
        if new_id != self._file_id or branch != self._branch:
            self._generation += 1
        self._file_id = new_id
        self._file = node
        self._branch = branch

    def _resolve(self, file_id: str | None, fallback: bool) -> None:
        tree = self.engine.tree()
        node = find(tree, file_id) if file_id is not None else None
        if node is None and fallback and self.default_file_id is not None:
            node = find(tree, self.default_file_id)
        self._set(node)

    def _on_event(self, event: str, context: dict) -> None:
        if event in _BRANCH_EVENTS:
            self._resolve(self._file_id, fallback=True)
        elif event in _TREE_EVENTS and context.get("branch") == self.engine.current_branch:
            self.refresh()
