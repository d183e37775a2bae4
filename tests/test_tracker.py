"""ActiveFileTracker: cache refresh, branch fallback and stale results."""

from grove.tracker import ActiveFileTracker

TS = "user-service-ts"
PY = "data-analyzer-py"


class TestOpen:
    def test_starts_on_default(self, engine):
        tracker = ActiveFileTracker(engine, default_file_id=TS)
        assert tracker.file_id == TS
        assert tracker.file.name == "user-service.ts"

    def test_restored_file_wins_over_default(self, engine):
        tracker = ActiveFileTracker(engine, default_file_id=TS, file_id=PY)
        assert tracker.file_id == PY

    def test_missing_restored_file_falls_back(self, engine):
        tracker = ActiveFileTracker(engine, default_file_id=TS, file_id="gone")
        assert tracker.file_id == TS

    def test_open_missing_opens_nothing(self, engine):
        tracker = ActiveFileTracker(engine, default_file_id=TS)
        assert tracker.open("nope") is None
        assert tracker.file is None

    def test_close(self, engine):
        tracker = ActiveFileTracker(engine, default_file_id=TS)
        tracker.close()
        assert tracker.file_id is None


class TestRefresh:
    def test_edit_refreshes_cache(self, engine):
        tracker = ActiveFileTracker(engine, default_file_id=TS)
        engine.edit_file(TS, "fresh")
        assert tracker.file.content == "fresh"
        assert tracker.file.status.value == "modified"

    def test_commit_refreshes_status(self, engine):
        tracker = ActiveFileTracker(engine, default_file_id=TS)
        engine.edit_file(TS, "x")
        engine.stage(TS)
        engine.commit("m")
        assert tracker.file.status.value == "unmodified"

    def test_delete_closes(self, engine):
        tracker = ActiveFileTracker(engine, default_file_id=TS)
        engine.delete_node(TS)
        assert tracker.file is None

    def test_other_branch_edit_ignored(self, engine):
        tracker = ActiveFileTracker(engine, default_file_id=TS)
        original = tracker.file.content
        engine.create_branch("other")
        engine.switch_branch("main")
        engine.edit_file(TS, "elsewhere", branch="other")
        assert tracker.file.content == original

    def test_detach_stops_refresh(self, engine):
        tracker = ActiveFileTracker(engine, default_file_id=TS)
        tracker.detach()
        engine.edit_file(TS, "after detach")
        assert tracker.file.content != "after detach"


class TestBranchSwitch:
    def test_file_kept_when_present(self, engine):
        tracker = ActiveFileTracker(engine, default_file_id=TS)
        tracker.open(PY)
        engine.create_branch("b")
        assert tracker.file_id == PY

    def test_falls_back_when_missing(self, engine):
        tracker = ActiveFileTracker(engine, default_file_id=TS)
        engine.create_branch("b")
        f = engine.create_file("only-on-b.txt")
        tracker.open(f.id)
        engine.switch_branch("main")
        assert tracker.file_id == TS

    def test_nothing_when_fallback_missing(self, engine):
        tracker = ActiveFileTracker(engine, default_file_id=TS)
        engine.create_branch("b")
        engine.delete_node(TS)
        f = engine.create_file("x.txt")
        tracker.open(f.id)
        engine.switch_branch("main")
        engine.switch_branch("b")
        assert tracker.file is None

    def test_content_follows_branch(self, engine):
        tracker = ActiveFileTracker(engine, default_file_id=TS)
        engine.create_branch("b")
        engine.edit_file(TS, "b content")
        engine.switch_branch("main")
        assert tracker.file.content != "b content"
        engine.switch_branch("b")
        assert tracker.file.content == "b content"


class TestStaleResults:
    def test_current_token_delivers(self, engine):
        tracker = ActiveFileTracker(engine, default_file_id=TS)
        got = []
        token = tracker.token()
        assert tracker.deliver(token, "result", got.append) is True
        assert got == ["result"]

    def test_edit_keeps_token_current(self, engine):
        tracker = ActiveFileTracker(engine, default_file_id=TS)
        token = tracker.token()
        engine.edit_file(TS, "typing")
        assert tracker.is_current(token)

    def test_open_other_file_drops_result(self, engine):
        tracker = ActiveFileTracker(engine, default_file_id=TS)
        got = []
        token = tracker.token()
        tracker.open(PY)
        assert tracker.deliver(token, "late", got.append) is False
        assert got == []

    def test_branch_switch_drops_result(self, engine):
        tracker = ActiveFileTracker(engine, default_file_id=TS)
        token = tracker.token()
        engine.create_branch("b")
        assert not tracker.is_current(token)

    def test_reopening_same_file_keeps_token(self, engine):
        tracker = ActiveFileTracker(engine, default_file_id=TS)
        token = tracker.token()
        tracker.open(TS)
        assert tracker.is_current(token)
