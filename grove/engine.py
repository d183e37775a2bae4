"""
Version Control Engine

The engine is the only thing that writes to a BranchStore. Every
operation reads one branch's snapshot, builds a complete replacement,
and swaps it in with a single assignment. A caller can therefore never
see a half-applied commit: either the new snapshot is in the store or
the old one still is.

File status state machine:

    unmodified --(edit)--> modified
    new        --(edit)--> new
    modified   --(commit, staged)--> unmodified
    new        --(commit, staged)--> unmodified

Each operation takes an explicit `branch=` (defaulting to the store's
current branch), so nothing here depends on which branch a UI happens
to have selected.

Error policy:
    - Bad user input (empty commit message, nothing staged, duplicate
      branch name...) raises an OperationRejected subclass. State is
      untouched.
    - An id that resolves to nothing is a silent no-op.
    - Hooks and persistence run after the in-memory change and can never
      undo or block it; their failures are logged.
"""

import logging
import unicodedata
import uuid
from collections.abc import Callable
from datetime import datetime, timezone

from . import tree as trees
from .snapshot import DEFAULT_BRANCH, BranchSnapshot, BranchStore, Commit
from .tree import FileNode, FileStatus, FolderNode

logger = logging.getLogger(__name__)

Hook = Callable[[str, dict], None]


class OperationRejected(ValueError):  # noqa: N818
    """An operation was refused because of its input. State is unchanged."""


class NothingStagedError(OperationRejected):
    def __init__(self, branch: str):
        super().__init__(f"Nothing staged to commit on branch '{branch}'")


class EmptyMessageError(OperationRejected):
    def __init__(self):
        super().__init__("Commit message cannot be empty")


class InvalidBranchNameError(OperationRejected):
    pass


class BranchExistsError(OperationRejected):
    def __init__(self, name: str):
        super().__init__(f"Branch '{name}' already exists")


class LastBranchError(OperationRejected):
    def __init__(self, name: str):
        super().__init__(f"Cannot delete '{name}': it is the only branch")


class InvalidNodeError(OperationRejected):
    """Bad name, or a parent that is not a folder in the tree."""


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


def validate_branch_name(name: str) -> None:
    """Reject empty names, surrounding whitespace and control characters."""
    if not name or not name.strip():
        raise InvalidBranchNameError("Branch name cannot be empty")
    if name != name.strip():
        raise InvalidBranchNameError(
            f"Branch name has leading or trailing whitespace: {name!r}"
        )
    if any(unicodedata.category(ch) == "Cc" for ch in name):
        raise InvalidBranchNameError(f"Branch name contains a control character: {name!r}")


class VersionControlEngine:
    """
    Staging, commits and branches over a BranchStore.

    persistence is any object with save(store); it is offered the store
    after every change. clock and id_factory exist for tests.
    """

    def __init__(
        self,
        store: BranchStore,
        persistence=None,
        default_branch: str = DEFAULT_BRANCH,
        clock: Callable[[], str] | None = None,
        id_factory: Callable[[str], str] | None = None,
    ):
        self.store = store
        self.persistence = persistence
        self.default_branch = default_branch
        self._clock = clock or _utc_now
        self._new_id = id_factory or _new_id
        self._hooks: list[tuple[str, Hook]] = []

    # ── Hooks ─────────────────────────────────────────────────────

    def add_hook(self, hook: Hook, name: str | None = None) -> None:
        """Register `hook(event, context)`, called after every change."""
        self._hooks.append((name or getattr(hook, "__name__", repr(hook)), hook))

    def remove_hook(self, hook: Hook) -> None:
        # Bound methods compare equal but are never identical
        self._hooks = [(n, h) for n, h in self._hooks if h != hook]

    def _fire_hooks(self, event: str, context: dict) -> None:
        """Call each hook. Failures are logged and never block the operation."""
        for name, hook_fn in list(self._hooks):
            try:
                hook_fn(event, context)
            except Exception:
                logger.warning("Hook %s failed for event %s", name, event, exc_info=True)

    # ── Snapshot replacement ──────────────────────────────────────

    def _branch(self, branch: str | None) -> str:
        name = self.store.current if branch is None else branch
        # Raises UnknownBranchError for a bad explicit branch
        self.store.get(name)
        return name

    def _replace(self, branch: str, snapshot: BranchSnapshot, event: str, **context) -> None:
        """Swap in `snapshot`, then notify hooks and persistence."""
        self.store.put(branch, snapshot.reconciled())
        self._fire_hooks(event, {"branch": branch, **context})
        self._persist()

    def _persist(self) -> None:
        if self.persistence is None:
            return
        try:
            self.persistence.save(self.store)
        except Exception:
            # In-memory state stays authoritative; the next change retries.
            logger.warning("Failed to persist branch store", exc_info=True)

    # ── Reads ─────────────────────────────────────────────────────

    @property
    def current_branch(self) -> str:
        return self.store.current

    def branches(self) -> list[str]:
        return self.store.names()

    def snapshot(self, branch: str | None = None) -> BranchSnapshot:
        return self.store.get(branch)

    def tree(self, branch: str | None = None) -> FolderNode:
        return self.store.get(branch).tree

    def commits(self, branch: str | None = None) -> tuple[Commit, ...]:
        return self.store.get(branch).commits

    def find_file(self, file_id: str, branch: str | None = None) -> FileNode | None:
        return trees.find(self.tree(branch), file_id)

    def changed_files(self, branch: str | None = None) -> list[FileNode]:
        return trees.collect_changed(self.tree(branch))

    def unstaged_files(self, branch: str | None = None) -> list[FileNode]:
        snap = self.store.get(branch)
        return [f for f in trees.collect_changed(snap.tree) if f.id not in snap.staged]

    def staged_files(self, branch: str | None = None) -> list[FileNode]:
        """Staged ids resolved to files, in tree order. Ids that miss are dropped."""
        snap = self.store.get(branch)
        return [f for f in trees.iter_files(snap.tree) if f.id in snap.staged]

    # ── Editing ───────────────────────────────────────────────────

    def edit_file(self, file_id: str, content: str, branch: str | None = None) -> FileNode | None:
        """
        Replace a file's content.

        An UNMODIFIED file becomes MODIFIED; MODIFIED and NEW files keep
        their status. Returns the updated node, or None if there is no
        such file.
        """
        branch = self._branch(branch)
        snap = self.store.get(branch)
        current = trees.find(snap.tree, file_id)
        if current is None:
            logger.debug("edit_file: no file %s on %s", file_id, branch)
            return None

        patch = {"content": content}
        if current.status is FileStatus.UNMODIFIED:
            patch["status"] = FileStatus.MODIFIED
        new_tree = trees.update(snap.tree, file_id, **patch)
        self._replace(
            branch,
            BranchSnapshot(tree=new_tree, staged=snap.staged, commits=snap.commits),
            "post_edit",
            file_id=file_id,
        )
        return trees.find(new_tree, file_id)

    def _check_parent(self, root: FolderNode, parent_id: str | None) -> None:
        if parent_id is None:
            return
        parent = trees.find_node(root, parent_id)
        if not isinstance(parent, FolderNode):
            raise InvalidNodeError(f"Folder '{parent_id}' not found")

    @staticmethod
    def _clean_name(name: str | None, kind: str) -> str:
        name = (name or "").strip()
        if not name:
            raise InvalidNodeError(f"{kind} name cannot be empty")
        if "/" in name or "\\" in name or "\0" in name:
            raise InvalidNodeError(f"{kind} name contains a path separator: {name!r}")
        return name

    def create_file(
        self,
        name: str,
        language: str = "plaintext",
        content: str = "",
        parent_id: str | None = None,
        branch: str | None = None,
    ) -> FileNode:
        """Create a NEW file under `parent_id` (default: the root folder)."""
        branch = self._branch(branch)
        snap = self.store.get(branch)
        name = self._clean_name(name, "File")
        self._check_parent(snap.tree, parent_id)

        node = FileNode(
            id=self._new_id("file"),
            name=name,
            language=(language or "").strip().lower() or "plaintext",
            content=content,
            status=FileStatus.NEW,
        )
        new_tree = trees.insert(snap.tree, parent_id, node)
        self._replace(
            branch,
            BranchSnapshot(tree=new_tree, staged=snap.staged, commits=snap.commits),
            "post_create_file",
            file_id=node.id,
        )
        logger.info("Created file %s (%s) on %s", name, node.id, branch)
        return node

    def create_folder(
        self,
        name: str,
        parent_id: str | None = None,
        branch: str | None = None,
    ) -> FolderNode:
        """Create an empty folder under `parent_id` (default: the root folder)."""
        branch = self._branch(branch)
        snap = self.store.get(branch)
        name = self._clean_name(name, "Folder")
        self._check_parent(snap.tree, parent_id)

        node = FolderNode(id=self._new_id("folder"), name=name)
        new_tree = trees.insert(snap.tree, parent_id, node)
        self._replace(
            branch,
            BranchSnapshot(tree=new_tree, staged=snap.staged, commits=snap.commits),
            "post_create_folder",
            node_id=node.id,
        )
        logger.info("Created folder %s (%s) on %s", name, node.id, branch)
        return node

    def delete_node(self, node_id: str, branch: str | None = None) -> bool:
        """
        Delete a file or a whole folder subtree.

        Staged ids under the deleted subtree are dropped from the staged
        set. Returns False (and changes nothing) for an unknown id or the
        root folder.
        """
        branch = self._branch(branch)
        snap = self.store.get(branch)
        new_tree, removed = trees.remove(snap.tree, node_id)
        if removed is None:
            logger.debug("delete_node: nothing to delete for %s on %s", node_id, branch)
            return False

        self._replace(
            branch,
            BranchSnapshot(tree=new_tree, staged=snap.staged, commits=snap.commits),
            "post_delete",
            node_id=node_id,
            removed_ids=trees.node_ids(removed),
        )
        logger.info("Deleted %s from %s", node_id, branch)
        return True

    # ── Staging ───────────────────────────────────────────────────

    def stage(self, file_id: str, branch: str | None = None) -> bool:
        """
        Add a changed file to the staged set.

        No-op (returns False) if it is already staged, does not exist,
        or has nothing to commit.
        """
        branch = self._branch(branch)
        snap = self.store.get(branch)
        if file_id in snap.staged:
            return False
        f = trees.find(snap.tree, file_id)
        if f is None or f.status is FileStatus.UNMODIFIED:
            logger.debug("stage: %s is missing or unmodified on %s", file_id, branch)
            return False

        self._replace(
            branch,
            BranchSnapshot(tree=snap.tree, staged=snap.staged | {file_id}, commits=snap.commits),
            "post_stage",
            file_id=file_id,
        )
        return True

    def unstage(self, file_id: str, branch: str | None = None) -> bool:
        """Remove a file from the staged set. Its status is not touched."""
        branch = self._branch(branch)
        snap = self.store.get(branch)
        if file_id not in snap.staged:
            return False

        self._replace(
            branch,
            BranchSnapshot(tree=snap.tree, staged=snap.staged - {file_id}, commits=snap.commits),
            "post_unstage",
            file_id=file_id,
        )
        return True

    def stage_all(self, branch: str | None = None) -> frozenset[str]:
        """Make the staged set exactly the set of changed files."""
        branch = self._branch(branch)
        snap = self.store.get(branch)
        staged = frozenset(f.id for f in trees.collect_changed(snap.tree))
        self._replace(
            branch,
            BranchSnapshot(tree=snap.tree, staged=staged, commits=snap.commits),
            "post_stage_all",
            count=len(staged),
        )
        return staged

    # ── Commits ───────────────────────────────────────────────────

    def commit(self, message: str, branch: str | None = None) -> Commit:
        """
        Commit the staged files.

        Prepends a Commit to the log, marks every staged file UNMODIFIED
        and clears the staged set, all in one snapshot replacement.

        Raises EmptyMessageError for a blank message and
        NothingStagedError when nothing is staged.
        """
        branch = self._branch(branch)
        snap = self.store.get(branch)
        message = (message or "").strip()
        if not message:
            raise EmptyMessageError()
        if not snap.staged:
            raise NothingStagedError(branch)

        record = Commit(id=self._new_id("commit"), message=message, timestamp=self._clock())
        new_snap = BranchSnapshot(
            tree=trees.set_statuses(snap.tree, snap.staged, FileStatus.UNMODIFIED),
            staged=frozenset(),
            commits=(record,) + snap.commits,
        )
        self._replace(
            branch,
            new_snap,
            "post_commit",
            commit_id=record.id,
            file_ids=sorted(snap.staged),
        )
        logger.info("Committed %d file(s) on %s: %s", len(snap.staged), branch, record.id)
        return record

    # ── Branches ──────────────────────────────────────────────────

    def create_branch(self, name: str, branch: str | None = None) -> BranchSnapshot:
        """
        Fork `branch` (default: current) as `name` and switch to it.

        The whole snapshot is copied: the new branch starts with the
        parent's tree, its pending staged set and its commit log.
        """
        source = self._branch(branch)
        validate_branch_name(name)
        if name in self.store:
            raise BranchExistsError(name)

        forked = self.store.get(source).fork()
        self.store.put(name, forked)
        previous = self.store.current
        self.store.set_current(name)
        logger.info("Created branch '%s' from '%s'", name, source)
        self._fire_hooks(
            "post_create_branch",
            {"branch": name, "source": source, "previous": previous},
        )
        self._persist()
        return forked

    def switch_branch(self, name: str) -> bool:
        """
        Make `name` the current branch.

        Ignored (returns False) when `name` is already current or does
        not exist. Never modifies a snapshot.
        """
        if name == self.store.current or name not in self.store:
            return False
        previous = self.store.current
        self.store.set_current(name)
        logger.debug("Switched from '%s' to '%s'", previous, name)
        self._fire_hooks("post_switch_branch", {"branch": name, "previous": previous})
        self._persist()
        return True

    def delete_branch(self, name: str) -> None:
        """
        Delete a branch.

        If it was current, the default branch (or the first remaining
        branch) becomes current. The last branch cannot be deleted.
        """
        # Raises UnknownBranchError for a missing branch
        self.store.get(name)
        if len(self.store) == 1:
            raise LastBranchError(name)

        previous = self.store.current
        self.store.remove(name, fallback=self.default_branch)
        logger.info("Deleted branch '%s'", name)
        self._fire_hooks(
            "post_delete_branch",
            {"branch": self.store.current, "deleted": name, "previous": previous},
        )
        self._persist()
