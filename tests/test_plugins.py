"""Hook discovery through entry points."""

import logging

from grove import plugins


class FakeEntryPoint:
    def __init__(self, name, obj=None, error=None):
        self.name = name
        self._obj = obj
        self._error = error

    def load(self):
        if self._error is not None:
            raise self._error
        return self._obj


def _hook(event, context):
    pass


class TestDiscoverHooks:
    def test_loads_callables(self, monkeypatch):
        monkeypatch.setattr(plugins, "_select", lambda group: [FakeEntryPoint("audit", _hook)])
        assert plugins.discover_hooks() == {"audit": _hook}

    def test_skips_broken_and_non_callable(self, monkeypatch, caplog):
        eps = [
            FakeEntryPoint("broken", error=ImportError("no module")),
            FakeEntryPoint("constant", 42),
            FakeEntryPoint("ok", _hook),
        ]
        monkeypatch.setattr(plugins, "_select", lambda group: eps)
        with caplog.at_level(logging.WARNING, logger="grove.plugins"):
            hooks = plugins.discover_hooks()
        assert hooks == {"ok": _hook}
        assert "broken" in caplog.text
        assert "constant" in caplog.text

    def test_group_name(self, monkeypatch):
        seen = []
        monkeypatch.setattr(plugins, "_select", lambda group: seen.append(group) or [])
        plugins.discover_hooks()
        assert seen == ["grove.hooks"]
