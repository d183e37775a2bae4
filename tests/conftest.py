"""
Shared pytest configuration and fixtures.

On Windows CI runners, a spurious KeyboardInterrupt is delivered to the
main thread during long-running tests (likely from the runner's process
management or a stale signal).  All tests actually pass, but pytest
sees the KeyboardInterrupt and exits with code 1.

The workaround: ignore SIGINT entirely on Windows CI.  We don't need
interactive interrupt handling in CI, and this prevents the spurious
signal from aborting a green test run.
"""

import itertools
import os
import signal

import pytest

from grove.engine import VersionControlEngine
from grove.persistence import MemoryPersistence
from grove.snapshot import BranchStore
from grove.templates import sample_tree

_WINDOWS_CI = os.name == "nt" and os.environ.get("CI") == "true"


def pytest_configure(config):
    """Ignore SIGINT on Windows CI to prevent spurious KeyboardInterrupt."""
    if _WINDOWS_CI:
        try:
            signal.signal(signal.SIGINT, signal.SIG_IGN)
        except (OSError, ValueError):
            pass


def counting_ids():
    """Deterministic id factory: file-1, commit-2, ..."""
    counter = itertools.count(1)
    return lambda prefix: f"{prefix}-{next(counter)}"


def fixed_clock():
    return "2024-01-01T00:00:00+00:00"


@pytest.fixture
def memory():
    return MemoryPersistence()


@pytest.fixture
def engine(memory):
    """Engine over the sample tree on a single 'main' branch."""
    return VersionControlEngine(
        BranchStore.initial(sample_tree()),
        persistence=memory,
        clock=fixed_clock,
        id_factory=counting_ids(),
    )


@pytest.fixture
def make_engine():
    """Build an engine over any tree with deterministic ids and clock."""

    def make(root, persistence=None):
        return VersionControlEngine(
            BranchStore.initial(root),
            persistence=persistence,
            clock=fixed_clock,
            id_factory=counting_ids(),
        )

    return make
