"""
Workspace Configuration

Stored as .grove/config.json. Unknown keys are logged and ignored,
so a config written by a newer minor release still opens.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from .serializable import Serializable
from .snapshot import DEFAULT_BRANCH
from .templates import DEFAULT_TEMPLATE

logger = logging.getLogger(__name__)

CONFIG_FILE = "config.json"

# Bump when the config schema changes
CONFIG_VERSION = "0.1.0"

DEFAULT_MAX_TREE_DEPTH = 100


@dataclass
class GroveConfig(Serializable):
    """Settings for one workspace."""
    _skip_none = True

    version: str = CONFIG_VERSION
    default_branch: str = DEFAULT_BRANCH
    default_file: str | None = None
    template: str = DEFAULT_TEMPLATE
    created_at: float = field(default_factory=time.time)
    # 0 means DEFAULT_MAX_TREE_DEPTH
    max_tree_depth: int = 0
    inference_api_url: str | None = None
    inference_api_key: str | None = None
    inference_model: str | None = None
    completion_max_tokens: int = 64

    @property
    def effective_max_tree_depth(self) -> int:
        return self.max_tree_depth if self.max_tree_depth > 0 else DEFAULT_MAX_TREE_DEPTH


KNOWN_CONFIG_KEYS = frozenset(GroveConfig.__dataclass_fields__)


def validate_config(data: dict) -> None:
    """Check version and limits; warn on unknown keys."""
    version = data.get("version")
    if version and version > CONFIG_VERSION:
        raise ValueError(
            f"Workspace config version {version} is newer than "
            f"this version of grove ({CONFIG_VERSION}). "
            f"Please upgrade grove to open this workspace."
        )

    max_depth = data.get("max_tree_depth", 0)
    if not isinstance(max_depth, int) or max_depth < 0:
        raise ValueError(
            f"Invalid config: max_tree_depth must be an integer >= 0, got {max_depth!r}\n"
            f"  Use 0 for the default limit ({DEFAULT_MAX_TREE_DEPTH} levels)"
        )
    max_tokens = data.get("completion_max_tokens", 64)
    if not isinstance(max_tokens, int) or max_tokens <= 0:
        raise ValueError(
            f"Invalid config: completion_max_tokens must be a positive integer, got {max_tokens!r}"
        )

    unknown_keys = set(data) - KNOWN_CONFIG_KEYS
    if unknown_keys:
        logger.warning("Unknown config keys (ignored): %s", ", ".join(sorted(unknown_keys)))


def read_config(grove_dir: Path) -> GroveConfig:
    path = grove_dir / CONFIG_FILE
    data = json.loads(path.read_text(encoding="utf-8")) if path.exists() else {}
    validate_config(data)
    return GroveConfig.from_dict({k: v for k, v in data.items() if k in KNOWN_CONFIG_KEYS})


def write_config(grove_dir: Path, config: GroveConfig) -> None:
    (grove_dir / CONFIG_FILE).write_text(json.dumps(config.to_dict(), indent=2))
