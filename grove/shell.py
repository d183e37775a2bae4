"""
Shell Simulation

A tiny pretend terminal over the current branch's tree. It can list
the tree and print files, and it never writes to the tree: it only
receives a callable that returns the current root.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from .tree import FolderNode, find_by_name, render

logger = logging.getLogger(__name__)

HELP_TEXT = "Available commands: ls, cat [filename], run [filename], history, clear, help"


@dataclass(frozen=True)
class OutputLine:
    kind: str  # "command" or "response"
    content: str


class ShellSimulator:
    """Answers ls/cat/run from whatever tree `tree_provider` returns."""

    def __init__(self, tree_provider: Callable[[], FolderNode]):
        self._tree = tree_provider
        self.output: list[OutputLine] = []
        self.history: list[str] = []  # most recent first

    def execute(self, command: str) -> str:
        """Run one command line and return its response text."""
        command = command.strip()
        response = self._dispatch(command)
        if command != "clear":
            self.output.append(OutputLine("command", command))
            if response:
                self.output.append(OutputLine("response", response))
        if command and command != (self.history[0] if self.history else ""):
            self.history.insert(0, command)
        return response

    def _dispatch(self, command: str) -> str:
        cmd, *args = command.split() or [""]
        if cmd == "":
            return ""
        if cmd == "help":
            return HELP_TEXT
        if cmd == "ls":
            return render(self._tree())
        if cmd == "cat":
            if not args:
                return "Usage: cat [filename]"
            f = find_by_name(self._tree(), args[0])
            return f.content if f is not None else f"Error: File not found: {args[0]}"
        if cmd == "run":
            if not args:
                return "Usage: run [filename]"
            f = find_by_name(self._tree(), args[0])
            if f is None:
                return f"Error: File not found: {args[0]}"
            return f"Simulating execution of {f.name}...\nExecution complete."
        if cmd == "history":
            return "\n".join(f"{i + 1}  {c}" for i, c in enumerate(reversed(self.history)))
        if cmd == "clear":
            self.output.clear()
            return ""
        logger.debug("Unknown shell command: %s", cmd)
        return f"command not found: {cmd}"
