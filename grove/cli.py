"""
Grove CLI

Every command outputs structured JSON when --json is passed; human-
readable output is the default. Commands find the workspace by walking
up from the current directory (or -C PATH).

FILE arguments accept a node id or a file name. A name matches the
first file with that name in tree order.

Usage:
    grove init [--template sample|empty] [--branch NAME]
    grove status
    grove ls
    grove cat FILE
    grove run FILE
    grove open FILE
    grove touch NAME [--language LANG] [--parent FOLDER] [--content TEXT]
    grove mkdir NAME [--parent FOLDER]
    grove edit FILE [--content TEXT | --from-file PATH]    (stdin otherwise)
    grove rm NODE
    grove stage FILE...
    grove unstage FILE...
    grove stage-all
    grove commit -m MESSAGE
    grove log [--branch NAME] [--limit N]
    grove branches
    grove branch create NAME
    grove branch delete NAME
    grove switch NAME
    grove ai explain|refactor|debug|docs [FILE] [--selection TEXT]
    grove ask QUESTION
    grove snippet list|add|show|remove
    grove completion SHELL
"""

import argparse
import difflib
import json
import logging
import sys
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

import grove as _grove_pkg

from .assistant import AiFeature
from .completions import BASH_COMPLETION, FISH_COMPLETION, ZSH_COMPLETION
from .repo import NotAWorkspace, Workspace
from .templates import DEFAULT_TEMPLATE, list_templates
from .tree import FileNode, FileStatus, FolderNode


@contextmanager
def open_workspace(args):
    """Open a Workspace with guaranteed cleanup on any exit path."""
    ws = Workspace.find(Path(args.path or "."))
    try:
        yield ws
    finally:
        ws.close()


def format_time(ts: str) -> str:
    try:
        return datetime.fromisoformat(ts).astimezone().strftime("%Y-%m-%d %H:%M:%S")
    except ValueError:
        return ts


def short_id(node_id: str) -> str:
    """'file-3f2a...' -> 'file-3f2a9c1d'; short ids pass through."""
    prefix, _, rest = node_id.partition("-")
    if rest and len(rest) > 12:
        return f"{prefix}-{rest[:8]}"
    return node_id


def print_json(data):
    print(json.dumps(data, indent=2, default=str, ensure_ascii=False))


def get_verbosity(args) -> int:
    """Return verbosity level: 0=quiet, 1=normal, 2=verbose."""
    if getattr(args, "json", False):
        return 1
    if getattr(args, "verbose", False):
        return 2
    if getattr(args, "quiet", False):
        return 0
    return 1


def _display_id(node_id: str, verbosity: int) -> str:
    return node_id if verbosity >= 2 else short_id(node_id)


STATUS_ICONS = {
    FileStatus.NEW: "A",
    FileStatus.MODIFIED: "M",
    FileStatus.UNMODIFIED: " ",
}


def _require_file(ws: Workspace, ref: str) -> FileNode:
    node = ws.resolve_file(ref)
    if node is None:
        raise ValueError(f"File '{ref}' not found on branch '{ws.engine.current_branch}'")
    return node


def _read_content(args) -> str:
    if getattr(args, "content", None) is not None:
        return args.content
    if getattr(args, "from_file", None):
        return Path(args.from_file).read_text(encoding="utf-8")
    return sys.stdin.read()


# ── Commands ──────────────────────────────────────────────────


def cmd_init(args):
    v = get_verbosity(args)
    path = Path(args.path or ".").resolve()
    with Workspace.init(path, template=args.template, default_branch=args.branch) as ws:
        active = ws.tracker.file
        if args.json:
            print_json({
                "root": str(path),
                "branch": ws.engine.current_branch,
                "template": args.template,
                "active_file": active.id if active else None,
            })
        elif v == 0:
            print(str(path))
        else:
            print(f"✓ Initialized grove workspace at {path}")
            print(f"  Branch:   {ws.engine.current_branch}")
            print(f"  Template: {args.template}")
            if active:
                print(f"  Open:     {active.name}")


def cmd_status(args):
    v = get_verbosity(args)
    with open_workspace(args) as ws:
        status = ws.status()

        if args.json:
            print_json(status)
        elif v == 0:
            print(status["branch"])
        else:
            print(f"On branch {status['branch']}")
            if status["active_file"]:
                print(f"Open:    {status['active_file']['name']}")
            last = status["last_commit"]
            if last:
                print(f"Last:    {last['message']}  ({format_time(last['timestamp'])})")
            print()
            if status["staged"]:
                print("Staged for commit:")
                for f in status["staged"]:
                    print(f"  {STATUS_ICONS[FileStatus(f['status'])]} {f['name']}")
                print()
            if status["unstaged"]:
                print("Changes not staged:")
                for f in status["unstaged"]:
                    print(f"  {STATUS_ICONS[FileStatus(f['status'])]} {f['name']}")
                print()
            if not status["staged"] and not status["unstaged"]:
                print("Nothing to commit, tree clean.")


def cmd_ls(args):
    with open_workspace(args) as ws:
        if args.json:
            print_json(ws.engine.tree().to_dict())
        else:
            print(ws.shell.execute("ls"))


def cmd_cat(args):
    with open_workspace(args) as ws:
        node = _require_file(ws, args.file)
        if args.json:
            print_json(node.to_dict())
        else:
            sys.stdout.write(node.content)
            if node.content and not node.content.endswith("\n"):
                sys.stdout.write("\n")


def cmd_run(args):
    with open_workspace(args) as ws:
        node = _require_file(ws, args.file)
        output = ws.shell.execute(f"run {node.name}")
        if args.json:
            print_json({"file": node.id, "output": output})
        else:
            print(output)


def cmd_open(args):
    v = get_verbosity(args)
    with open_workspace(args) as ws:
        node = ws.open_file(args.file)
        if node is None:
            raise ValueError(f"File '{args.file}' not found on branch '{ws.engine.current_branch}'")
        if args.json:
            print_json({"id": node.id, "name": node.name, "language": node.language,
                        "status": node.status.value})
        elif v > 0:
            print(f"✓ Opened {node.name} ({node.language}, {node.status.value})")


def cmd_touch(args):
    v = get_verbosity(args)
    with open_workspace(args) as ws:
        node = ws.engine.create_file(
            args.name,
            language=args.language,
            content=args.content or "",
            parent_id=ws.resolve_folder_id(args.parent),
        )
        ws.tracker.open(node.id)
        if args.json:
            print_json(node.to_dict())
        elif v == 0:
            print(node.id)
        else:
            print(f"✓ Created {node.name} [{_display_id(node.id, v)}]")


def cmd_mkdir(args):
    v = get_verbosity(args)
    with open_workspace(args) as ws:
        node = ws.engine.create_folder(args.name, parent_id=ws.resolve_folder_id(args.parent))
        if args.json:
            print_json({"id": node.id, "name": node.name})
        elif v == 0:
            print(node.id)
        else:
            print(f"✓ Created folder {node.name} [{_display_id(node.id, v)}]")


def cmd_edit(args):
    v = get_verbosity(args)
    with open_workspace(args) as ws:
        target = _require_file(ws, args.file)
        content = _read_content(args)
        node = ws.engine.edit_file(target.id, content)
        if args.json:
            print_json({"id": node.id, "name": node.name, "status": node.status.value})
        elif v > 0:
            print(f"✓ Updated {node.name} ({node.status.value})")


def cmd_rm(args):
    with open_workspace(args) as ws:
        node = ws.resolve_node(args.node)
        if node is None:
            raise ValueError(f"Node '{args.node}' not found on branch '{ws.engine.current_branch}'")
        deleted = ws.engine.delete_node(node.id)
        if not deleted:
            raise ValueError(f"Cannot delete '{node.name}'")
        kind = "folder" if isinstance(node, FolderNode) else "file"
        if args.json:
            print_json({"deleted": node.id, "type": kind})
        else:
            print(f"✓ Deleted {kind} {node.name}")


def cmd_stage(args):
    with open_workspace(args) as ws:
        results = {}
        for ref in args.files:
            node = _require_file(ws, ref)
            results[node.name] = ws.engine.stage(node.id)
        if args.json:
            print_json({"staged": sorted(ws.engine.snapshot().staged), "changed": results})
        else:
            for name, changed in results.items():
                print(f"  {'+' if changed else '='} {name}")


def cmd_unstage(args):
    with open_workspace(args) as ws:
        results = {}
        for ref in args.files:
            node = _require_file(ws, ref)
            results[node.name] = ws.engine.unstage(node.id)
        if args.json:
            print_json({"staged": sorted(ws.engine.snapshot().staged), "changed": results})
        else:
            for name, changed in results.items():
                print(f"  {'-' if changed else '='} {name}")


def cmd_stage_all(args):
    with open_workspace(args) as ws:
        ws.engine.stage_all()
        staged = ws.engine.staged_files()
        if args.json:
            print_json({"staged": [f.id for f in staged]})
        else:
            print(f"✓ Staged {len(staged)} file(s)")


def cmd_commit(args):
    v = get_verbosity(args)
    with open_workspace(args) as ws:
        files = ws.engine.staged_files()
        commit = ws.engine.commit(args.message)
        if args.json:
            print_json({**commit.to_dict(), "branch": ws.engine.current_branch,
                        "files": [f.id for f in files]})
        elif v == 0:
            print(commit.id)
        else:
            print(f"✓ [{ws.engine.current_branch} {_display_id(commit.id, v)}] {commit.message}")
            print(f"  {len(files)} file(s) committed")
            if v >= 2:
                for f in files:
                    print(f"    {f.name}")


def cmd_log(args):
    v = get_verbosity(args)
    with open_workspace(args) as ws:
        branch = args.branch or ws.engine.current_branch
        if branch not in ws.engine.branches():
            raise ValueError(f"Branch '{branch}' not found")
        commits = list(ws.engine.commits(branch))
        if args.limit:
            commits = commits[: args.limit]

        if args.json:
            print_json([c.to_dict() for c in commits])
        elif v == 0:
            for c in commits:
                print(c.id)
        elif not commits:
            print(f"No commits on branch '{branch}'.")
        else:
            for c in commits:
                print(f"● {_display_id(c.id, v)}  {format_time(c.timestamp)}")
                print(f"  {c.message}")
                print()


def cmd_branches(args):
    with open_workspace(args) as ws:
        current = ws.engine.current_branch
        names = ws.engine.branches()
        if args.json:
            print_json({"current": current, "branches": names})
        else:
            for name in names:
                snap = ws.engine.snapshot(name)
                marker = "→" if name == current else " "
                print(f"  {marker} {name}  ({len(snap.commits)} commits, {len(snap.staged)} staged)")


def cmd_branch_create(args):
    with open_workspace(args) as ws:
        source = ws.engine.current_branch
        ws.engine.create_branch(args.name)
        if args.json:
            print_json({"name": args.name, "source": source})
        else:
            print(f"✓ Created branch '{args.name}' from '{source}' and switched to it")


def cmd_branch_delete(args):
    with open_workspace(args) as ws:
        ws.engine.delete_branch(args.name)
        if args.json:
            print_json({"deleted": args.name, "current": ws.engine.current_branch})
        else:
            print(f"✓ Deleted branch '{args.name}' (now on '{ws.engine.current_branch}')")


def cmd_switch(args):
    with open_workspace(args) as ws:
        if args.name not in ws.engine.branches():
            raise ValueError(f"Branch '{args.name}' not found")
        switched = ws.engine.switch_branch(args.name)
        active = ws.tracker.file
        if args.json:
            print_json({"branch": args.name, "switched": switched,
                        "active_file": active.id if active else None})
        elif switched:
            print(f"✓ Switched to branch '{args.name}'")
            if active:
                print(f"  Open: {active.name}")
        else:
            print(f"Already on '{args.name}'")


def cmd_ai(args):
    with open_workspace(args) as ws:
        if args.file:
            if ws.open_file(args.file) is None:
                raise ValueError(f"File '{args.file}' not found on branch '{ws.engine.current_branch}'")
        if ws.tracker.file is None:
            raise ValueError("No file is open. Use 'grove open FILE' first.")
        feature = AiFeature(args.feature)
        result = ws.assistant.run_for_active(ws.tracker, feature=feature, code=args.selection)
        if args.json:
            print_json({"feature": feature.value, "file": ws.tracker.file_id, "output": result})
        else:
            print(result or "")


def cmd_ask(args):
    with open_workspace(args) as ws:
        if ws.tracker.file is None:
            raise ValueError("No file is open. Use 'grove open FILE' first.")
        question = " ".join(args.question)
        result = ws.assistant.run_for_active(ws.tracker, question=question)
        if args.json:
            print_json({"question": question, "file": ws.tracker.file_id, "output": result})
        else:
            print(result or "")


def cmd_snippet_list(args):
    with open_workspace(args) as ws:
        snippets = ws.snippets.list()
        if args.json:
            print_json([s.to_dict() for s in snippets])
        elif not snippets:
            print("No snippets.")
        else:
            for s in snippets:
                first = s.content.strip().splitlines()[0] if s.content.strip() else ""
                print(f"  {s.name}  [{short_id(s.id)}]  {first[:60]}")


def cmd_snippet_add(args):
    with open_workspace(args) as ws:
        snippet = ws.snippets.add(args.name, _read_content(args))
        if args.json:
            print_json(snippet.to_dict())
        else:
            print(f"✓ Saved snippet '{snippet.name}'")


def cmd_snippet_show(args):
    with open_workspace(args) as ws:
        snippet = ws.snippets.get(args.ref)
        if snippet is None:
            raise ValueError(f"Snippet '{args.ref}' not found")
        if args.json:
            print_json(snippet.to_dict())
        else:
            print(snippet.content)


def cmd_snippet_remove(args):
    with open_workspace(args) as ws:
        if not ws.snippets.remove(args.ref):
            raise ValueError(f"Snippet '{args.ref}' not found")
        if args.json:
            print_json({"removed": args.ref})
        else:
            print(f"✓ Removed snippet '{args.ref}'")


def cmd_completion(args):
    """Print shell completion script."""
    scripts = {
        "bash": BASH_COMPLETION,
        "zsh": ZSH_COMPLETION,
        "fish": FISH_COMPLETION,
    }
    print(scripts[args.shell])


COMMAND_ALIASES = {
    "ci": "commit",
    "st": "status",
    "co": "switch",
}

GROUPED_HELP = """\
commands:
  Files:
    init              Initialize a new workspace
    ls                List the current tree
    cat               Print a file
    run               Simulate running a file
    open              Open a file
    touch             Create a file
    mkdir             Create a folder
    edit              Replace a file's content
    rm                Delete a file or folder

  Version control:
    status (st)       Show branch, staged and unstaged files
    stage             Stage files
    unstage           Unstage files
    stage-all         Stage every changed file
    commit (ci)       Commit staged files
    log               Show the commit log

  Branches:
    branches          List branches
    branch            Create or delete a branch
    switch (co)       Switch branch

  Assistant:
    ai                Explain, refactor, debug or document a file
    ask               Ask a question about the open file
    snippet           Manage saved snippets (list, add, show, remove)

  Other:
    completion        Generate shell completion scripts
"""


def _add_content_args(p):
    src = p.add_mutually_exclusive_group()
    src.add_argument("--content", help="Content as a string")
    src.add_argument("--from-file", help="Read content from a file on disk")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="grove",
        description="Grove — in-memory branching version control for a file tree",
        epilog=GROUPED_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    ver = _grove_pkg.__version__
    parser.add_argument("--version", "-V", action="version", version=f"grove {ver}")
    parser.add_argument("--path", "-C", default=".", help="Workspace path")
    parser.add_argument("--json", "-j", action="store_true", help="JSON output")

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    verbosity.add_argument("--quiet", "-q", action="store_true", help="Quiet output")

    sub = parser.add_subparsers(dest="command")

    p = sub.add_parser("init", help="Initialize a new workspace")
    p.add_argument("--template", default=DEFAULT_TEMPLATE, choices=list_templates(),
                   help="Starting tree")
    p.add_argument("--branch", default="main", help="Name of the first branch")
    p.set_defaults(func=cmd_init)

    p = sub.add_parser("status", help="Show branch, staged and unstaged files")
    p.set_defaults(func=cmd_status)

    p = sub.add_parser("ls", help="List the current tree")
    p.set_defaults(func=cmd_ls)

    p = sub.add_parser("cat", help="Print a file")
    p.add_argument("file")
    p.set_defaults(func=cmd_cat)

    p = sub.add_parser("run", help="Simulate running a file")
    p.add_argument("file")
    p.set_defaults(func=cmd_run)

    p = sub.add_parser("open", help="Open a file")
    p.add_argument("file")
    p.set_defaults(func=cmd_open)

    p = sub.add_parser("touch", help="Create a file")
    p.add_argument("name")
    p.add_argument("--language", "-l", default="plaintext", help="Language (e.g. python)")
    p.add_argument("--parent", "-p", help="Parent folder (id or name)")
    p.add_argument("--content", help="Initial content")
    p.set_defaults(func=cmd_touch)

    p = sub.add_parser("mkdir", help="Create a folder")
    p.add_argument("name")
    p.add_argument("--parent", "-p", help="Parent folder (id or name)")
    p.set_defaults(func=cmd_mkdir)

    p = sub.add_parser("edit", help="Replace a file's content (stdin by default)")
    p.add_argument("file")
    _add_content_args(p)
    p.set_defaults(func=cmd_edit)

    p = sub.add_parser("rm", help="Delete a file or folder")
    p.add_argument("node")
    p.set_defaults(func=cmd_rm)

    p = sub.add_parser("stage", help="Stage files")
    p.add_argument("files", nargs="+")
    p.set_defaults(func=cmd_stage)

    p = sub.add_parser("unstage", help="Unstage files")
    p.add_argument("files", nargs="+")
    p.set_defaults(func=cmd_unstage)

    p = sub.add_parser("stage-all", help="Stage every changed file")
    p.set_defaults(func=cmd_stage_all)

    p = sub.add_parser("commit", help="Commit staged files")
    p.add_argument("--message", "-m", required=True, help="Commit message")
    p.set_defaults(func=cmd_commit)

    p = sub.add_parser("log", help="Show the commit log")
    p.add_argument("--branch", "-b", help="Branch (default: current)")
    p.add_argument("--limit", "-n", type=int, default=0, help="Max commits to show")
    p.set_defaults(func=cmd_log)

    p = sub.add_parser("branches", help="List branches")
    p.set_defaults(func=cmd_branches)

    p = sub.add_parser("branch", help="Branch management")
    branch_sub = p.add_subparsers(dest="branch_command")
    bc = branch_sub.add_parser("create", help="Fork the current branch and switch to it")
    bc.add_argument("name")
    bc.set_defaults(func=cmd_branch_create)
    bd = branch_sub.add_parser("delete", help="Delete a branch")
    bd.add_argument("name")
    bd.set_defaults(func=cmd_branch_delete)

    p = sub.add_parser("switch", help="Switch branch")
    p.add_argument("name")
    p.set_defaults(func=cmd_switch)

    p = sub.add_parser("ai", help="Run an AI action on a file")
    p.add_argument("feature", choices=[f.value for f in AiFeature])
    p.add_argument("file", nargs="?", help="File to open first (default: the open file)")
    p.add_argument("--selection", help="Use this code instead of the whole file")
    p.set_defaults(func=cmd_ai)

    p = sub.add_parser("ask", help="Ask a question about the open file")
    p.add_argument("question", nargs="+")
    p.set_defaults(func=cmd_ask)

    p = sub.add_parser("snippet", help="Snippet management")
    snip_sub = p.add_subparsers(dest="snippet_command")
    sl = snip_sub.add_parser("list", help="List snippets")
    sl.set_defaults(func=cmd_snippet_list)
    sa = snip_sub.add_parser("add", help="Save a snippet (stdin by default)")
    sa.add_argument("name")
    _add_content_args(sa)
    sa.set_defaults(func=cmd_snippet_add)
    ss = snip_sub.add_parser("show", help="Print a snippet")
    ss.add_argument("ref")
    ss.set_defaults(func=cmd_snippet_show)
    sr = snip_sub.add_parser("remove", help="Delete a snippet")
    sr.add_argument("ref")
    sr.set_defaults(func=cmd_snippet_remove)

    p = sub.add_parser("completion", help="Generate shell completion script")
    p.add_argument("shell", choices=["bash", "zsh", "fish"])
    p.set_defaults(func=cmd_completion)

    return parser


def _error_hint(msg: str) -> str | None:
    """Return a hint for common error messages, or None."""
    lower = msg.lower()
    if ("file" in lower or "node" in lower) and "not found" in lower:
        return "Hint: Use 'grove ls' to see the current tree."
    if "branch" in lower and "not found" in lower:
        return "Hint: Use 'grove branches' to see available branches."
    if "nothing staged" in lower:
        return "Hint: Use 'grove stage FILE' or 'grove stage-all' first."
    if "snippet" in lower and "not found" in lower:
        return "Hint: Use 'grove snippet list' to see saved snippets."
    return None


_KNOWN_COMMANDS = [
    "init",
    "status",
    "ls",
    "cat",
    "run",
    "open",
    "touch",
    "mkdir",
    "edit",
    "rm",
    "stage",
    "unstage",
    "stage-all",
    "commit",
    "log",
    "branches",
    "branch",
    "switch",
    "ai",
    "ask",
    "snippet",
    "completion",
]


def main():
    # Resolve command aliases before parsing
    if len(sys.argv) > 1 and sys.argv[1] in COMMAND_ALIASES:
        sys.argv[1] = COMMAND_ALIASES[sys.argv[1]]

    # Check for "did you mean?" before argparse (which exits with code 2)
    if len(sys.argv) > 1 and not sys.argv[1].startswith("-"):
        attempted = sys.argv[1]
        all_names = _KNOWN_COMMANDS + list(COMMAND_ALIASES.keys())
        if attempted not in all_names:
            matches = difflib.get_close_matches(attempted, all_names, n=3, cutoff=0.6)
            if matches:
                print(f"Unknown command: '{attempted}'", file=sys.stderr)
                print(f"  Did you mean: {', '.join(matches)}?", file=sys.stderr)
                sys.exit(1)

    parser = build_parser()
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if hasattr(args, "func"):
        try:
            args.func(args)
        except NotAWorkspace as e:
            if getattr(args, "json", False):
                print_json({"error": str(e)})
            else:
                print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        except Exception as e:
            msg = str(e)
            if getattr(args, "json", False):
                print_json({"error": msg})
            else:
                print(f"Error: {msg}", file=sys.stderr)
                hint = _error_hint(msg)
                if hint:
                    print(f"  {hint}", file=sys.stderr)
            sys.exit(1)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
