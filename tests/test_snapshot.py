"""BranchSnapshot and BranchStore."""

import pytest

from grove.snapshot import BranchSnapshot, BranchStore, Commit, UnknownBranchError
from grove.templates import sample_tree
from grove.tree import FileStatus, update


@pytest.fixture
def store():
    return BranchStore.initial(sample_tree())


class TestBranchSnapshot:
    def test_fork_is_equal_and_shares_tree(self):
        snap = BranchSnapshot(tree=sample_tree(), staged=frozenset({"x"}))
        forked = snap.fork()
        assert forked == snap
        assert forked is not snap
        assert forked.tree is snap.tree

    def test_reconciled_returns_self_when_clean(self):
        snap = BranchSnapshot(tree=sample_tree())
        assert snap.reconciled() is snap

    def test_reconciled_drops_missing_and_unmodified(self):
        tree = update(sample_tree(), "data-analyzer-py", status=FileStatus.MODIFIED)
        snap = BranchSnapshot(
            tree=tree,
            staged=frozenset({"data-analyzer-py", "user-service-ts", "gone"}),
        )
        assert snap.reconciled().staged == {"data-analyzer-py"}

    def test_round_trip(self):
        tree = update(sample_tree(), "user-service-ts", status=FileStatus.MODIFIED)
        snap = BranchSnapshot(
            tree=tree,
            staged=frozenset({"user-service-ts"}),
            commits=(Commit("c2", "second", "t2"), Commit("c1", "first", "t1")),
        )
        d = snap.to_dict()
        assert d["staged"] == ["user-service-ts"]
        assert [c["id"] for c in d["commits"]] == ["c2", "c1"]
        assert BranchSnapshot.from_dict(d) == snap


class TestBranchStore:
    def test_initial(self, store):
        assert store.current == "main"
        assert store.names() == ["main"]
        assert len(store) == 1
        assert "main" in store

    def test_empty_store_rejected(self):
        with pytest.raises(ValueError):
            BranchStore({}, "main")

    def test_current_must_exist(self):
        with pytest.raises(UnknownBranchError):
            BranchStore({"a": BranchSnapshot(tree=sample_tree())}, "b")

    def test_get_unknown(self, store):
        with pytest.raises(UnknownBranchError) as exc:
            store.get("nope")
        assert str(exc.value) == "Branch 'nope' not found"

    def test_remove_current_uses_fallback(self, store):
        store.put("a", store.get().fork())
        store.put("b", store.get().fork())
        store.set_current("b")
        store.remove("b", fallback="main")
        assert store.current == "main"

    def test_remove_current_without_fallback_takes_first(self, store):
        store.put("a", store.get().fork())
        store.set_current("main")
        store.remove("main", fallback="missing")
        assert store.current == "a"

    def test_cannot_remove_last(self, store):
        with pytest.raises(ValueError):
            store.remove("main")

    def test_round_trip(self, store):
        store.put("feature", store.get().fork())
        store.set_current("feature")
        again = BranchStore.from_dict(store.to_dict())
        assert again.current == "feature"
        assert again.names() == ["main", "feature"]
        assert again.get("feature") == store.get("feature")
