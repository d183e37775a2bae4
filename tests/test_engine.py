"""VersionControlEngine: status state machine, staging, commits and branches."""

import pytest

from grove.engine import (
    BranchExistsError,
    EmptyMessageError,
    InvalidBranchNameError,
    InvalidNodeError,
    LastBranchError,
    NothingStagedError,
    OperationRejected,
)
from grove.snapshot import UnknownBranchError
from grove.tree import FileNode, FileStatus, FolderNode

TS = "user-service-ts"
PY = "data-analyzer-py"


@pytest.fixture
def single(make_engine):
    """One UNMODIFIED file 'a' at the root."""
    root = FolderNode(
        id="root",
        name="p",
        children=(FileNode(id="a", name="a.ts", language="typescript", content="x",
                           status=FileStatus.UNMODIFIED),),
    )
    return make_engine(root)


class TestEditFile:
    def test_edit_unmodified_becomes_modified(self, engine):
        node = engine.edit_file(TS, "new content")
        assert node.status is FileStatus.MODIFIED
        assert node.content == "new content"
        assert engine.find_file(TS).content == "new content"

    def test_edit_new_stays_new(self, engine):
        f = engine.create_file("x.py", language="python")
        assert engine.edit_file(f.id, "print(1)").status is FileStatus.NEW

    def test_edit_modified_stays_modified(self, engine):
        engine.edit_file(TS, "one")
        assert engine.edit_file(TS, "two").status is FileStatus.MODIFIED

    def test_edit_unknown_file_is_noop(self, engine, memory):
        before = engine.snapshot()
        assert engine.edit_file("nope", "x") is None
        assert engine.snapshot() is before
        assert memory.saves == 0

    def test_edit_does_not_touch_staged(self, engine):
        engine.edit_file(TS, "one")
        engine.stage(TS)
        engine.edit_file(TS, "two")
        assert engine.snapshot().staged == {TS}

    def test_edit_unknown_branch_raises(self, engine):
        with pytest.raises(UnknownBranchError):
            engine.edit_file(TS, "x", branch="nope")


class TestCreate:
    def test_create_file_at_root(self, engine):
        f = engine.create_file("  notes.md  ", language=" Markdown ")
        assert f.name == "notes.md"
        assert f.language == "markdown"
        assert f.status is FileStatus.NEW
        assert engine.tree().children[-1] == f

    def test_create_file_in_folder(self, engine):
        f = engine.create_file("app.py", language="python", parent_id="src-folder")
        src = engine.tree().children[0]
        assert src.children[-1].id == f.id

    def test_new_file_ids_are_unique(self, engine):
        a = engine.create_file("a")
        b = engine.create_file("a")
        assert a.id != b.id

    def test_create_rejects_empty_name(self, engine):
        with pytest.raises(InvalidNodeError):
            engine.create_file("   ")

    def test_create_rejects_path_separator(self, engine):
        with pytest.raises(InvalidNodeError):
            engine.create_file("src/app.py")

    def test_create_rejects_file_parent(self, engine):
        before = engine.snapshot()
        with pytest.raises(InvalidNodeError):
            engine.create_file("x", parent_id=TS)
        assert engine.snapshot() is before

    def test_create_folder(self, engine):
        folder = engine.create_folder("lib", parent_id="src-folder")
        f = engine.create_file("util.py", parent_id=folder.id)
        assert engine.find_file(f.id) is not None
        assert isinstance(engine.tree().children[0].children[-1], FolderNode)


class TestDelete:
    def test_delete_file(self, engine):
        assert engine.delete_node(PY) is True
        assert engine.find_file(PY) is None

    def test_delete_drops_staged_ids(self, engine):
        engine.edit_file(TS, "x")
        engine.edit_file(PY, "y")
        engine.stage_all()
        engine.delete_node("src-folder")
        assert engine.snapshot().staged == frozenset()
        assert engine.staged_files() == []

    def test_delete_root_refused(self, engine):
        assert engine.delete_node("root") is False

    def test_delete_unknown(self, engine):
        assert engine.delete_node("nope") is False


class TestStaging:
    def test_stage_changed_file(self, engine):
        engine.edit_file(TS, "x")
        assert engine.stage(TS) is True
        assert engine.snapshot().staged == {TS}

    def test_stage_twice_is_noop(self, engine):
        engine.edit_file(TS, "x")
        engine.stage(TS)
        before = engine.snapshot()
        assert engine.stage(TS) is False
        assert engine.snapshot() is before

    def test_stage_unmodified_is_noop(self, engine):
        assert engine.stage(TS) is False
        assert engine.snapshot().staged == frozenset()

    def test_stage_missing_is_noop(self, engine):
        assert engine.stage("nope") is False

    def test_unstage(self, engine):
        engine.edit_file(TS, "x")
        engine.stage(TS)
        assert engine.unstage(TS) is True
        assert engine.snapshot().staged == frozenset()
        assert engine.find_file(TS).status is FileStatus.MODIFIED

    def test_unstage_not_staged(self, engine):
        assert engine.unstage(TS) is False

    def test_stage_all_is_exactly_changed_files(self, engine):
        engine.edit_file(PY, "y")
        new = engine.create_file("n.txt")
        staged = engine.stage_all()
        assert staged == {PY, new.id}

    def test_stage_all_idempotent(self, engine):
        engine.edit_file(TS, "x")
        first = engine.stage_all()
        second = engine.stage_all()
        assert first == second == {TS}

    def test_stage_all_with_nothing_changed(self, engine):
        assert engine.stage_all() == frozenset()

    def test_staged_and_unstaged_partition_changed(self, engine):
        engine.edit_file(TS, "x")
        engine.edit_file(PY, "y")
        engine.stage(PY)
        assert [f.id for f in engine.staged_files()] == [PY]
        assert [f.id for f in engine.unstaged_files()] == [TS]
        assert {f.id for f in engine.changed_files()} == {TS, PY}


class TestCommit:
    def test_single_file_scenario(self, single):
        engine = single
        engine.edit_file("a", "y")
        engine.stage("a")
        commit = engine.commit("m1")

        snap = engine.snapshot()
        assert commit.message == "m1"
        assert commit.timestamp == "2024-01-01T00:00:00+00:00"
        assert snap.commits == (commit,)
        assert snap.staged == frozenset()
        f = engine.find_file("a")
        assert f.status is FileStatus.UNMODIFIED
        assert f.content == "y"

    def test_commit_is_most_recent_first(self, engine):
        engine.edit_file(TS, "1")
        engine.stage(TS)
        first = engine.commit("first")
        engine.edit_file(TS, "2")
        engine.stage(TS)
        second = engine.commit("second")
        assert engine.commits() == (second, first)

    def test_commit_only_touches_staged(self, engine):
        engine.edit_file(TS, "x")
        engine.edit_file(PY, "y")
        engine.stage(TS)
        engine.commit("ts only")
        assert engine.find_file(TS).status is FileStatus.UNMODIFIED
        assert engine.find_file(PY).status is FileStatus.MODIFIED

    def test_commit_new_file(self, engine):
        f = engine.create_file("n.txt", content="hi")
        engine.stage(f.id)
        engine.commit("add n")
        assert engine.find_file(f.id).status is FileStatus.UNMODIFIED

    def test_message_is_stripped(self, engine):
        engine.edit_file(TS, "x")
        engine.stage(TS)
        assert engine.commit("  tidy  ").message == "tidy"

    def test_empty_message_rejected_without_change(self, engine, memory):
        engine.edit_file(TS, "x")
        engine.stage(TS)
        before = engine.snapshot()
        saves = memory.saves
        with pytest.raises(EmptyMessageError):
            engine.commit("   ")
        assert engine.snapshot() is before
        assert memory.saves == saves

    def test_nothing_staged_rejected(self, engine):
        engine.edit_file(TS, "x")
        before = engine.snapshot()
        with pytest.raises(NothingStagedError, match="main"):
            engine.commit("msg")
        assert engine.snapshot() is before

    def test_rejections_are_value_errors(self, engine):
        with pytest.raises(OperationRejected):
            engine.commit("")
        with pytest.raises(ValueError):
            engine.commit("msg")

    def test_empty_message_checked_before_staged(self, engine):
        with pytest.raises(EmptyMessageError):
            engine.commit("")

    def test_commit_ids_unique(self, engine):
        ids = set()
        for i in range(3):
            engine.edit_file(TS, str(i))
            engine.stage(TS)
            ids.add(engine.commit(f"c{i}").id)
        assert len(ids) == 3


class TestBranches:
    def test_create_branch_forks_and_switches(self, engine):
        engine.edit_file(TS, "pending")
        engine.stage(TS)
        engine.create_branch("feature")

        assert engine.current_branch == "feature"
        assert engine.branches() == ["main", "feature"]
        assert engine.snapshot("feature") == engine.snapshot("main")
        assert engine.snapshot("feature").staged == {TS}

    def test_commit_on_fork_leaves_parent_staged(self, single):
        engine = single
        engine.edit_file("a", "y")
        engine.stage("a")
        engine.create_branch("feature")
        assert engine.snapshot("feature").staged == {"a"}
        assert engine.commits("feature") == engine.commits("main")

        engine.commit("on feature")
        assert engine.snapshot("main").staged == {"a"}
        assert engine.commits("main") == ()
        assert engine.find_file("a", branch="main").status is FileStatus.MODIFIED

    def test_branches_are_isolated(self, engine):
        engine.create_branch("feature")
        engine.edit_file(TS, "feature work")
        engine.stage(TS)
        engine.commit("feature commit")

        main = engine.snapshot("main")
        assert main.commits == ()
        assert engine.find_file(TS, branch="main").status is FileStatus.UNMODIFIED
        assert engine.find_file(TS, branch="main").content != "feature work"
        assert len(engine.commits("feature")) == 1

    def test_feature_branch_scenario(self, engine):
        original = engine.find_file(TS).content
        engine.create_branch("feat")
        engine.edit_file(TS, "z")
        engine.switch_branch("main")
        assert engine.find_file(TS).content == original
        engine.switch_branch("feat")
        assert engine.find_file(TS).content == "z"
        assert engine.find_file(TS).status is FileStatus.MODIFIED

    def test_explicit_branch_context(self, engine):
        engine.create_branch("other")
        engine.switch_branch("main")
        engine.edit_file(TS, "on other", branch="other")
        assert engine.find_file(TS).content != "on other"
        assert engine.find_file(TS, branch="other").content == "on other"
        assert engine.current_branch == "main"

    def test_duplicate_branch(self, engine):
        with pytest.raises(BranchExistsError):
            engine.create_branch("main")

    @pytest.mark.parametrize("name", ["", "   ", " lead", "trail ", "bad\nname"])
    def test_invalid_branch_names(self, engine, name):
        with pytest.raises(InvalidBranchNameError):
            engine.create_branch(name)
        assert engine.branches() == ["main"]

    def test_switch_to_unknown_is_ignored(self, engine, memory):
        assert engine.switch_branch("nope") is False
        assert engine.current_branch == "main"
        assert memory.saves == 0

    def test_switch_to_current_is_ignored(self, engine):
        assert engine.switch_branch("main") is False

    def test_switch_never_modifies_snapshots(self, engine):
        engine.create_branch("b")
        main = engine.snapshot("main")
        b = engine.snapshot("b")
        engine.switch_branch("main")
        engine.switch_branch("b")
        assert engine.snapshot("main") is main
        assert engine.snapshot("b") is b

    def test_delete_branch_falls_back_to_default(self, engine):
        engine.create_branch("b")
        engine.delete_branch("b")
        assert engine.current_branch == "main"
        assert engine.branches() == ["main"]

    def test_delete_last_branch(self, engine):
        with pytest.raises(LastBranchError):
            engine.delete_branch("main")

    def test_delete_unknown_branch(self, engine):
        with pytest.raises(UnknownBranchError):
            engine.delete_branch("nope")


class TestHooksAndPersistence:
    def test_hooks_receive_events(self, engine):
        events = []
        engine.add_hook(lambda event, ctx: events.append((event, ctx["branch"])))
        engine.edit_file(TS, "x")
        engine.stage(TS)
        engine.commit("m")
        engine.create_branch("b")
        assert events == [
            ("post_edit", "main"),
            ("post_stage", "main"),
            ("post_commit", "main"),
            ("post_create_branch", "b"),
        ]

    def test_failing_hook_does_not_block(self, engine):
        def boom(event, ctx):
            raise RuntimeError("hook failed")

        seen = []
        engine.add_hook(boom)
        engine.add_hook(lambda event, ctx: seen.append(event))
        engine.edit_file(TS, "x")
        assert engine.find_file(TS).content == "x"
        assert seen == ["post_edit"]

    def test_remove_hook(self, engine):
        seen = []

        def hook(event, ctx):
            seen.append(event)

        engine.add_hook(hook)
        engine.remove_hook(hook)
        engine.edit_file(TS, "x")
        assert seen == []

    def test_remove_bound_method_hook(self, engine):
        class Listener:
            def __init__(self):
                self.events = []

            def on_event(self, event, ctx):
                self.events.append(event)

        listener = Listener()
        engine.add_hook(listener.on_event)
        engine.remove_hook(listener.on_event)
        engine.edit_file(TS, "x")
        assert listener.events == []
        assert engine._hooks == []

    def test_every_change_is_saved(self, engine, memory):
        engine.edit_file(TS, "x")
        engine.stage(TS)
        engine.commit("m")
        assert memory.saves == 3
        assert memory.data["branches"]["main"]["commits"][0]["message"] == "m"

    def test_persistence_failure_does_not_block(self, single):
        class Broken:
            def save(self, store):
                raise OSError("disk full")

        engine = single
        engine.persistence = Broken()
        engine.edit_file("a", "y")
        engine.stage("a")
        commit = engine.commit("still works")
        assert engine.commits() == (commit,)
