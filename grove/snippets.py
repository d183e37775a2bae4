"""
Snippets

Named code fragments kept alongside a workspace in snippets.json,
newest first. Snippets are not versioned and do not belong to a branch.
"""

import json
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path

from .persistence import write_json_atomic
from .serializable import Serializable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snippet(Serializable):
    id: str
    name: str
    content: str


class SnippetLibrary:
    """Snippets in memory, optionally backed by a JSON file."""

    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path is not None else None
        self._snippets: list[Snippet] = self._load()

    def _load(self) -> list[Snippet]:
        if self.path is None or not self.path.exists():
            return []
        try:
            return [Snippet.from_dict(d) for d in json.loads(self.path.read_text(encoding="utf-8"))]
        except (OSError, json.JSONDecodeError, TypeError, KeyError) as e:
            logger.warning("Ignoring unreadable snippets file %s: %s", self.path, e)
            return []

    def _save(self) -> None:
        if self.path is None:
            return
        try:
            write_json_atomic(self.path, [s.to_dict() for s in self._snippets])
        except OSError:
            logger.warning("Failed to save snippets to %s", self.path, exc_info=True)

    def list(self) -> list[Snippet]:
        return list(self._snippets)

    def get(self, ref: str) -> Snippet | None:
        """Look up by id, then by name."""
        for s in self._snippets:
            if s.id == ref:
                return s
        for s in self._snippets:
            if s.name == ref:
                return s
        return None

    def add(self, name: str, content: str) -> Snippet:
        name = (name or "").strip()
        if not name:
            raise ValueError("Snippet name cannot be empty")
        if not content or not content.strip():
            raise ValueError("Snippet content cannot be empty")
        snippet = Snippet(id=f"snippet-{uuid.uuid4().hex}", name=name, content=content)
        self._snippets.insert(0, snippet)
        self._save()
        return snippet

    def remove(self, ref: str) -> bool:
        snippet = self.get(ref)
        if snippet is None:
            return False
        self._snippets = [s for s in self._snippets if s.id != snippet.id]
        self._save()
        return True
