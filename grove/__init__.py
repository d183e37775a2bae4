"""
Grove — branching version control for an in-memory file tree

A small editor backend: a tree of folders and files, per-branch staging
and commit logs, an "open file" tracker, and an AI assistant that reads
whatever file is open.
"""

__version__ = "0.1.0"

__all__ = [
    # Core
    "VersionControlEngine",
    "OperationRejected",
    "Workspace",
    "NotAWorkspace",
    # Trees and snapshots
    "FileNode",
    "FolderNode",
    "FileStatus",
    "BranchSnapshot",
    "BranchStore",
    "Commit",
    # Open file
    "ActiveFileTracker",
    # Persistence
    "JsonFilePersistence",
    "MemoryPersistence",
]


# Lazy imports: only resolve when accessed
def __getattr__(name):
    if name in ("VersionControlEngine", "OperationRejected"):
        from .engine import OperationRejected, VersionControlEngine

        return VersionControlEngine if name == "VersionControlEngine" else OperationRejected
    if name in ("Workspace", "NotAWorkspace"):
        from .repo import NotAWorkspace, Workspace

        return Workspace if name == "Workspace" else NotAWorkspace
    if name in ("FileNode", "FolderNode", "FileStatus"):
        from .tree import FileNode, FileStatus, FolderNode

        return {"FileNode": FileNode, "FolderNode": FolderNode, "FileStatus": FileStatus}[name]
    if name in ("BranchSnapshot", "BranchStore", "Commit"):
        from .snapshot import BranchSnapshot, BranchStore, Commit

        return {"BranchSnapshot": BranchSnapshot, "BranchStore": BranchStore, "Commit": Commit}[name]
    if name == "ActiveFileTracker":
        from .tracker import ActiveFileTracker

        return ActiveFileTracker
    if name in ("JsonFilePersistence", "MemoryPersistence"):
        from .persistence import JsonFilePersistence, MemoryPersistence

        return JsonFilePersistence if name == "JsonFilePersistence" else MemoryPersistence
    raise AttributeError(f"module 'grove' has no attribute {name!r}")
