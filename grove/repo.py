"""
Workspace

The high-level API the CLI talks to. A workspace is a directory with a
.grove/ folder holding:

    config.json     settings (see config.py)
    state.json      every branch's tree, staged set and commit log
    session.json    which file is open
    snippets.json   saved snippets

    ws = Workspace.init("/path/to/project")
    f = ws.resolve_file("user-service.ts")
    ws.engine.edit_file(f.id, "...")
    ws.engine.stage_all()
    ws.engine.commit("Tidy user service")

The engine keeps state in memory and offers it to storage after every
change. A failed save is logged and the in-memory state carries on.
"""

import json
import logging
import time
from pathlib import Path

from .assistant import Assistant, get_inference_client
from .config import GroveConfig, read_config, write_config
from .engine import VersionControlEngine, validate_branch_name
from .persistence import JsonFilePersistence, load_or_default, write_json_atomic
from .plugins import discover_hooks
from .shell import ShellSimulator
from .snapshot import DEFAULT_BRANCH, BranchStore
from .snippets import SnippetLibrary
from .templates import DEFAULT_TEMPLATE, SAMPLE_DEFAULT_FILE, default_store
from .tracker import ActiveFileTracker
from .tree import FileNode, FolderNode, Node, find, find_node, iter_files, walk

logger = logging.getLogger(__name__)

GROVE_DIR_NAME = ".grove"
STATE_FILE = "state.json"
SESSION_FILE = "session.json"
SNIPPETS_FILE = "snippets.json"


class NotAWorkspace(ValueError):  # noqa: N818
    """Raised when a command is run outside a grove workspace."""

    def __init__(self, start_path):
        super().__init__(
            f"Not inside a grove workspace (searched from {start_path})\n"
            f"  Run 'grove init' to create one, or use '-C <path>' to specify a directory."
        )


class Workspace:
    """A grove workspace rooted at `root`."""

    def __init__(self, root: Path, load_plugins: bool = True):
        self.root = Path(root).resolve()
        self.grove_dir = self.root / GROVE_DIR_NAME

        if not self.grove_dir.exists():
            raise ValueError(f"Not a grove workspace: {self.root}\nRun `grove init` to create one.")

        self.config: GroveConfig = read_config(self.grove_dir)
        self.persistence = JsonFilePersistence(
            self.grove_dir / STATE_FILE,
            max_tree_depth=self.config.effective_max_tree_depth,
        )
        store = load_or_default(self.persistence, self._default_store)
        self.engine = VersionControlEngine(
            store,
            persistence=self.persistence,
            default_branch=self.config.default_branch,
        )
        if load_plugins:
            for name, hook in discover_hooks().items():
                self.engine.add_hook(hook, name=name)

        self.tracker = ActiveFileTracker(
            self.engine,
            default_file_id=self.config.default_file,
            file_id=self._read_session().get("active_file"),
        )
        # After the tracker, so the session sees the re-resolved file
        self.engine.add_hook(self._on_change, name="session")

        self.snippets = SnippetLibrary(self.grove_dir / SNIPPETS_FILE)
        self.assistant = Assistant(
            get_inference_client(self.config.to_dict()),
            completion_max_tokens=self.config.completion_max_tokens,
        )
        self.shell = ShellSimulator(self.engine.tree)

    @classmethod
    def init(
        cls,
        path: Path,
        template: str = DEFAULT_TEMPLATE,
        default_branch: str = DEFAULT_BRANCH,
    ) -> "Workspace":
        """
        Create .grove/ under `path` with a single branch built from `template`.
        """
        root = Path(path).resolve()
        grove_dir = root / GROVE_DIR_NAME
        if grove_dir.exists():
            raise ValueError(f"Workspace already exists at {root}")

        validate_branch_name(default_branch)
        store = default_store(template, default_branch)
        grove_dir.mkdir(parents=True)
        config = GroveConfig(
            default_branch=default_branch,
            default_file=SAMPLE_DEFAULT_FILE if template == "sample" else None,
            template=template,
            created_at=time.time(),
        )
        write_config(grove_dir, config)
        JsonFilePersistence(grove_dir / STATE_FILE).save(store)
        logger.info("Initialized grove workspace at %s (template=%s)", root, template)
        return cls(root)

    @classmethod
    def find(cls, start_path: Path | None = None) -> "Workspace":
        """Find a workspace by walking up from the given path."""
        path = (start_path or Path.cwd()).resolve()
        while True:
            if (path / GROVE_DIR_NAME).exists():
                return cls(path)
            parent = path.parent
            if parent == path:
                break
            path = parent
        raise NotAWorkspace(start_path or Path.cwd())

    def _default_store(self) -> BranchStore:
        return default_store(self.config.template, self.config.default_branch)

    # ── Session ───────────────────────────────────────────────────

    def _read_session(self) -> dict:
        path = self.grove_dir / SESSION_FILE
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable session file: %s", e)
            return {}
        return data if isinstance(data, dict) else {}

    def _save_session(self) -> None:
        try:
            write_json_atomic(
                self.grove_dir / SESSION_FILE,
                {"active_file": self.tracker.file_id},
            )
        except OSError:
            logger.warning("Failed to save session", exc_info=True)

    def _on_change(self, event: str, context: dict) -> None:
        self._save_session()

    # ── Lookup ────────────────────────────────────────────────────

    def resolve_file(self, ref: str, branch: str | None = None) -> FileNode | None:
        """Find a file on `branch` by id, falling back to the first file named `ref`."""
        root = self.engine.tree(branch)
        node = find(root, ref)
        if node is not None:
            return node
        return next((f for f in iter_files(root) if f.name == ref), None)

    def resolve_node(self, ref: str, branch: str | None = None) -> Node | None:
        """Like resolve_file, but folders match too."""
        root = self.engine.tree(branch)
        node = find_node(root, ref)
        if node is not None:
            return node
        return next((n for n in walk(root) if n.name == ref), None)

    def resolve_folder_id(self, ref: str | None) -> str | None:
        """Folder id for `ref` (id or name); None for the root."""
        if ref is None:
            return None
        node = self.resolve_node(ref)
        if not isinstance(node, FolderNode):
            # Let the engine reject it with its own message
            return ref
        return node.id

    def open_file(self, ref: str) -> FileNode | None:
        node = self.resolve_file(ref)
        if node is None:
            return None
        opened = self.tracker.open(node.id)
        self._save_session()
        return opened

    # ── Status ────────────────────────────────────────────────────

    def status(self) -> dict:
        engine = self.engine
        snap = engine.snapshot()
        active = self.tracker.file
        return {
            "root": str(self.root),
            "branch": engine.current_branch,
            "branches": engine.branches(),
            "active_file": (
                {"id": active.id, "name": active.name, "status": active.status.value}
                if active else None
            ),
            "staged": [_file_summary(f) for f in engine.staged_files()],
            "unstaged": [_file_summary(f) for f in engine.unstaged_files()],
            "commits": len(snap.commits),
            "last_commit": snap.commits[0].to_dict() if snap.commits else None,
        }

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False

    def close(self):
        self._save_session()
        self.tracker.detach()


def _file_summary(f: FileNode) -> dict:
    return {"id": f.id, "name": f.name, "status": f.status.value}
