"""
Plugin Discovery

Hooks are found through the ``grove.hooks`` entry point group. Each one
is called after every engine change as ``hook(event, context)``, where
event is e.g. ``post_commit`` or ``post_switch_branch`` and context
always carries ``branch``.

A broken plugin never stops a workspace from opening: load failures and
non-callable entry points are logged and skipped.
"""

import logging
from importlib.metadata import entry_points

logger = logging.getLogger(__name__)

HOOK_GROUP = "grove.hooks"


def _select(group: str):
    eps = entry_points()
    # Python 3.12+ returns a SelectableGroups, 3.10-3.11 returns a dict
    if hasattr(eps, "select"):
        return eps.select(group=group)
    if isinstance(eps, dict):
        return eps.get(group, ())  # type: ignore[arg-type]
    return ()


def discover(group: str) -> dict:
    """Load every entry point in `group` as {name: object}."""
    plugins = {}
    for ep in _select(group):
        try:
            plugins[ep.name] = ep.load()
        except Exception as e:
            logger.warning("Failed to load plugin %s:%s: %s", group, ep.name, e)
            continue
        logger.debug("Loaded plugin %s:%s", group, ep.name)
    return plugins


def discover_hooks() -> dict:
    """Hook plugins, minus anything that is not callable."""
    hooks = {}
    for name, obj in discover(HOOK_GROUP).items():
        if not callable(obj):
            logger.warning("Ignoring hook %s: %r is not callable", name, obj)
            continue
        hooks[name] = obj
    return hooks
