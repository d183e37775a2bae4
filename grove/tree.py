"""
Trees

The unit of content in grove is a tree of folders and files. A tree is
immutable: every operation that "changes" it returns a new root and
reuses every subtree that the change did not touch. Forking a branch is
therefore just sharing the root, and two branches can never observe each
other's edits.

Nodes are a tagged union of FileNode and FolderNode. Ids are unique across
the whole tree (not just among siblings), which is what lets every lookup
here take a bare id instead of a path.

None of the operations in this module raise for an unknown id. A miss
is a no-op: lookups return None and rebuilds return the root unchanged.
Callers that care whether something happened compare identities.
"""

import dataclasses
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

from .serializable import Serializable

logger = logging.getLogger(__name__)


class TreeIntegrityError(ValueError):
    """Raised when a tree violates id uniqueness or the depth limit."""


class FileStatus(Enum):
    UNMODIFIED = "unmodified"   # Matches the last commit
    MODIFIED = "modified"       # Edited since the last commit
    NEW = "new"                 # Created since the last commit


@dataclass(frozen=True)
class FileNode(Serializable):
    """A file leaf. Content is held inline."""

    type: ClassVar[str] = "file"

    id: str
    name: str
    language: str = "plaintext"
    content: str = ""
    status: FileStatus = FileStatus.NEW

    def to_dict(self) -> dict:
        return {"type": self.type, **super().to_dict()}


@dataclass(frozen=True)
class FolderNode(Serializable):
    """A folder. Children keep insertion order."""

    type: ClassVar[str] = "folder"

    id: str
    name: str
    children: tuple = ()

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "id": self.id,
            "name": self.name,
            "children": [node_to_dict(c) for c in self.children],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "FolderNode":
        return cls(
            id=d["id"],
            name=d["name"],
            children=tuple(node_from_dict(c) for c in d.get("children", [])),
        )


Node = FileNode | FolderNode

# Fields a caller may change through update(). id and type are fixed for
# the lifetime of a node.
PATCHABLE_FIELDS = frozenset({"name", "language", "content", "status"})


# ── Lookup ────────────────────────────────────────────────────────


def walk(root: Node) -> Iterator[Node]:
    """Yield every node in depth-first pre-order, root first."""
    yield root
    if isinstance(root, FolderNode):
        for child in root.children:
            yield from walk(child)


def iter_files(root: Node) -> Iterator[FileNode]:
    for node in walk(root):
        if isinstance(node, FileNode):
            yield node


def find(root: Node, file_id: str) -> FileNode | None:
    """
    Find a file by id.

    Pre-order, left to right; the first match wins. Folders never match,
    even when their id equals file_id.
    """
    for node in iter_files(root):
        if node.id == file_id:
            return node
    return None


def find_node(root: Node, node_id: str) -> Node | None:
    """Find a file or folder by id."""
    for node in walk(root):
        if node.id == node_id:
            return node
    return None


def find_by_name(root: Node, name: str) -> FileNode | None:
    """Find the first file called `name`, anywhere in the tree."""
    for node in iter_files(root):
        if node.name == name:
            return node
    return None


def node_ids(root: Node) -> list[str]:
    return [node.id for node in walk(root)]


def collect_changed(root: Node) -> list[FileNode]:
    """Every file whose status is not UNMODIFIED, in tree order."""
    return [f for f in iter_files(root) if f.status is not FileStatus.UNMODIFIED]


# ── Copy-on-write rebuilds ────────────────────────────────────────


def _rebuild(node: Node, transform) -> Node:
    """
    Apply `transform` to every file under `node`, bottom-up.

    `transform(file)` returns either the same object (untouched) or a
    replacement. A folder whose children all come back identical is
    returned as-is, so untouched subtrees are shared with the input.
    """
    if isinstance(node, FileNode):
        return transform(node)
    children = tuple(_rebuild(child, transform) for child in node.children)
    if all(new is old for new, old in zip(children, node.children)):
        return node
    return dataclasses.replace(node, children=children)


def update(root: FolderNode, file_id: str, **patch) -> FolderNode:
    """
    Return a new root with `patch` applied to the file `file_id`.

    Only the path from the root to the file is rebuilt. An unknown id
    returns `root` itself, whatever the patch. Raises ValueError if a
    found file is patched with a field that cannot change (id, type) or
    does not exist.
    """
    if find(root, file_id) is None:
        return root
    bad = set(patch) - PATCHABLE_FIELDS
    if bad:
        raise ValueError(f"Cannot patch file field(s): {', '.join(sorted(bad))}")

    done = False

    def apply(f: FileNode) -> FileNode:
        nonlocal done
        # Ids are unique; if they ever are not, only the first match changes
        if done or f.id != file_id:
            return f
        done = True
        return dataclasses.replace(f, **patch)

    return _rebuild(root, apply)


def set_statuses(root: FolderNode, ids: Iterable[str], status: FileStatus) -> FolderNode:
    """Return a new root with `status` applied to every file in `ids`."""
    ids = frozenset(ids)
    if not ids:
        return root

    def apply(f: FileNode) -> FileNode:
        if f.id in ids and f.status is not status:
            return dataclasses.replace(f, status=status)
        return f

    return _rebuild(root, apply)


def insert(root: FolderNode, parent_id: str | None, node: Node) -> FolderNode:
    """
    Append `node` to the children of folder `parent_id`.

    `parent_id=None` means the root. If the parent does not exist (or is
    a file) the root is returned unchanged.
    """
    if parent_id is None or parent_id == root.id:
        return dataclasses.replace(root, children=root.children + (node,))

    def visit(folder: FolderNode) -> FolderNode:
        if folder.id == parent_id:
            return dataclasses.replace(folder, children=folder.children + (node,))
        children = tuple(
            visit(c) if isinstance(c, FolderNode) else c for c in folder.children
        )
        if all(new is old for new, old in zip(children, folder.children)):
            return folder
        return dataclasses.replace(folder, children=children)

    return visit(root)


def remove(root: FolderNode, node_id: str) -> tuple[FolderNode, Node | None]:
    """
    Remove the node `node_id` (and, for a folder, its whole subtree).

    Returns (new_root, removed_node). The root itself cannot be removed;
    asking for it, or for an unknown id, returns (root, None).
    """
    removed = None

    def visit(folder: FolderNode) -> FolderNode:
        nonlocal removed
        kept = []
        changed = False
        for child in folder.children:
            if removed is None and child.id == node_id:
                removed = child
                changed = True
                continue
            if removed is None and isinstance(child, FolderNode):
                new_child = visit(child)
                changed = changed or new_child is not child
                kept.append(new_child)
            else:
                kept.append(child)
        if not changed:
            return folder
        return dataclasses.replace(folder, children=tuple(kept))

    if node_id == root.id:
        return root, None
    return visit(root), removed


# ── Validation ────────────────────────────────────────────────────


def validate_tree(root: Node, max_depth: int = 100) -> None:
    """
    Check id uniqueness and nesting depth.

    Raises TreeIntegrityError on the first violation. Trees built through
    the engine always pass; this guards trees read back from storage.
    """
    seen: set[str] = set()

    def visit(node: Node, depth: int):
        if depth > max_depth:
            raise TreeIntegrityError(
                f"Tree depth {depth} exceeds limit of {max_depth} at {node.name!r}"
            )
        if node.id in seen:
            raise TreeIntegrityError(f"Duplicate node id: {node.id!r}")
        seen.add(node.id)
        if isinstance(node, FolderNode):
            for child in node.children:
                visit(child, depth + 1)

    visit(root, 0)


# ── Rendering and serialization ───────────────────────────────────


def render(root: Node) -> str:
    """
    Render a tree listing, one node per line:

        📁 project
        └── 📁 src
        └── └── 📄 app.py
    """
    lines = []

    def visit(node: Node, prefix: str):
        icon = "📁" if isinstance(node, FolderNode) else "📄"
        lines.append(f"{prefix}{icon} {node.name}")
        if isinstance(node, FolderNode):
            last = len(node.children) - 1
            for i, child in enumerate(node.children):
                visit(child, prefix + ("└── " if i == last else "├── "))

    visit(root, "")
    return "\n".join(lines)


def node_to_dict(node: Node) -> dict:
    return node.to_dict()


def node_from_dict(d: dict) -> Node:
    """Rebuild a node from its tagged dict form."""
    kind = d.get("type")
    if kind == FolderNode.type:
        return FolderNode.from_dict(d)
    if kind == FileNode.type:
        return FileNode.from_dict({k: v for k, v in d.items() if k != "type"})
    raise TreeIntegrityError(f"Unknown node type: {kind!r}")
