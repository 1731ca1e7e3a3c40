import copy
import threading

import pytest

from routedesk.models.domain import DeliveryPoint, DeliveryType, Description, Route
from routedesk.services.routes.errors import (
    ChangelogWriteError,
    CommitInProgressError,
    NotFoundError,
    PersistenceError,
    SessionStateError,
    ValidationError,
)
from routedesk.services.routes.session import EditSession, SessionState


def _point(code: str, name: str | None = None, lat: float = 3.1, lon: float = 101.6) -> DeliveryPoint:
    return DeliveryPoint(
        code=code,
        name=name or f"Shop {code}",
        delivery=DeliveryType.DAILY,
        latitude=lat,
        longitude=lon,
        descriptions=[Description(key="Contact", value="Front desk")],
    )


def _routes() -> list[Route]:
    return [
        Route(id="r1", name="North", code="N1", shift="AM", delivery_points=[_point("100"), _point("101")]),
        Route(id="r2", name="South", code="S1", shift="PM", delivery_points=[_point("200")]),
    ]


class RecordingStore:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.saved: list[list[Route]] = []
        self.changelog: list[tuple[str, str]] = []

    def save_routes(self, routes):
        if self.fail:
            raise PersistenceError("database unavailable")
        self.saved.append(routes)

    def append_changelog(self, route_id, text):
        self.changelog.append((route_id, text))


def _session(store: RecordingStore | None = None) -> EditSession:
    store = store or RecordingStore()
    return EditSession(_routes(), save_routes=store.save_routes, append_changelog=store.append_changelog)


def test_enter_takes_independent_snapshot():
    session = _session()

    assert session.enter() is True
    session.edit_point("100", "name", "Renamed")

    assert session.state is SessionState.EDITING
    assert session.snapshot[0].delivery_points[0].name == "Shop 100"
    assert session.pending == {("100", "name")}


def test_enter_twice_is_a_no_op():
    session = _session()
    session.enter()
    session.edit_point("100", "latitude", 3.5)

    assert session.enter() is False
    assert session.pending == {("100", "latitude")}


def test_mutations_require_edit_mode():
    session = _session()

    with pytest.raises(SessionStateError):
        session.edit_point("100", "name", "X")
    with pytest.raises(SessionStateError):
        session.commit()


def test_discard_restores_pre_edit_state():
    session = _session()
    original = copy.deepcopy(session.working_set)

    session.enter()
    session.update_route("r1", name="North Loop", shift="PM")
    session.edit_point("100", "delivery", "Alt 1")
    session.edit_point("101", "code", "102")
    session.move_point("200", "r1", index=0)
    session.add_point("r2", _point("300"))
    session.add_route(Route(id="r3", name="East", code="E1"))
    session.remove_point("100")
    session.discard()

    assert session.working_set == original
    assert session.pending == set()
    assert session.snapshot is None
    assert session.state is SessionState.VIEWING


def test_add_point_rejects_code_used_in_another_route():
    session = _session()
    session.enter()
    before = copy.deepcopy(session.working_set)

    with pytest.raises(ValidationError) as excinfo:
        session.add_point("r2", _point("100"))

    assert excinfo.value.kind == "duplicate_code"
    assert session.working_set == before


def test_renaming_code_to_existing_code_is_rejected():
    session = _session()
    session.enter()

    with pytest.raises(ValidationError):
        session.edit_point("101", "code", "200")

    assert session.get_point("101")[1].code == "101"
    assert session.pending == set()


def test_renaming_code_carries_pending_markers():
    session = _session()
    session.enter()
    session.edit_point("101", "name", "Corner")
    session.edit_point("101", "code", "105")

    assert session.pending == {("105", "name"), ("105", "code")}


def test_edit_point_validates_values():
    session = _session()
    session.enter()

    with pytest.raises(ValidationError):
        session.edit_point("100", "delivery", "Monthly")
    with pytest.raises(ValidationError):
        session.edit_point("100", "latitude", "north")
    with pytest.raises(ValidationError) as excinfo:
        session.edit_point("100", "colour", "red")
    assert excinfo.value.kind == "unknown_field"


def test_update_point_is_all_or_nothing():
    session = _session()
    session.enter()

    with pytest.raises(ValidationError) as excinfo:
        session.update_point("100", name="Renamed", latitude="north")
    assert excinfo.value.kind == "invalid"
    with pytest.raises(ValidationError):
        session.update_point("100", name="Renamed", code="200")

    assert session.get_point("100")[1].name == "Shop 100"
    assert session.pending == set()

    point = session.update_point("100", name="Renamed", code="150", delivery="Alt 1")
    assert point.code == "150"
    assert point.delivery is DeliveryType.ALT_1
    assert session.pending == {("150", "name"), ("150", "code"), ("150", "delivery")}


def test_move_point_is_atomic():
    session = _session()
    session.enter()

    session.move_point("101", "r2")

    assert [p.code for p in session.get_route("r1").delivery_points] == ["100"]
    assert [p.code for p in session.get_route("r2").delivery_points] == ["200", "101"]

    with pytest.raises(NotFoundError):
        session.move_point("100", "missing")
    assert [p.code for p in session.get_route("r1").delivery_points] == ["100"]


def test_move_point_within_route_reorders():
    session = _session()
    session.enter()

    session.move_point("101", "r1", index=0)

    assert [p.code for p in session.get_route("r1").delivery_points] == ["101", "100"]


def test_add_route_checks_ids_and_codes():
    session = _session()
    session.enter()

    with pytest.raises(ValidationError):
        session.add_route(Route(id="r1", name="Copy", code="C"))
    with pytest.raises(ValidationError):
        session.add_route(Route(id="r9", name="Dup", code="D", delivery_points=[_point("200")]))
    with pytest.raises(ValidationError):
        session.add_route(Route(id="r9", name="Twice", code="T", delivery_points=[_point("9"), _point("9")]))

    with pytest.raises(ValidationError) as excinfo:
        session.add_route(Route(id="r9", name="Blank", code="B", delivery_points=[_point("   ")]))
    assert excinfo.value.kind == "incomplete"

    session.add_route(Route(id="r8", name="Padded", code="P", delivery_points=[_point(" 300 ")]))
    assert session.get_point("300")[0].id == "r8"

    session.add_route(Route(id="r9", name="Empty", code="E"))
    assert session.get_route("r9").delivery_points == []


def test_remove_route_drops_its_markers():
    session = _session()
    session.enter()
    session.edit_point("200", "name", "Harbour")

    session.remove_route("r2")

    assert [route.id for route in session.working_set] == ["r1"]
    assert session.pending == set()


def test_commit_persists_diffs_and_resets():
    store = RecordingStore()
    session = _session(store)
    session.enter()
    session.edit_point("100", "name", "Main Street")

    result = session.commit()

    assert store.saved and store.saved[0][0].delivery_points[0].name == "Main Street"
    assert result.changes == {"r1": ["Edited 1 location(s): Main Street"]}
    assert store.changelog == [("r1", "Edited 1 location(s): Main Street")]
    assert result.changelog_written == 1
    assert session.pending == set()
    assert session.state is SessionState.VIEWING
    assert session.snapshot == session.working_set
    assert session.snapshot is not session.working_set


def test_next_session_diffs_against_latest_save():
    store = RecordingStore()
    session = _session(store)
    session.enter()
    session.edit_point("100", "name", "Main Street")
    session.commit()

    session.enter()
    session.update_route("r2", shift="AM")
    result = session.commit()

    assert result.changes == {"r2": ["Shift changed: PM → AM"]}


def test_failed_commit_keeps_state():
    store = RecordingStore(fail=True)
    session = _session(store)
    session.enter()
    session.edit_point("100", "name", "Main Street")
    session.move_point("200", "r1")
    working_before = copy.deepcopy(session.working_set)
    pending_before = set(session.pending)

    with pytest.raises(PersistenceError):
        session.commit()

    assert session.working_set == working_before
    assert session.pending == pending_before
    assert session.state is SessionState.EDITING
    assert store.changelog == []

    store.fail = False
    session.commit()
    assert session.state is SessionState.VIEWING


def test_unexpected_save_error_is_wrapped():
    def explode(routes):
        raise ConnectionError("timed out")

    session = EditSession(_routes(), save_routes=explode)
    session.enter()

    with pytest.raises(PersistenceError):
        session.commit()
    assert session.is_editing


def test_changelog_failures_do_not_fail_commit():
    def broken_sink(route_id, text):
        raise ChangelogWriteError("notes table missing")

    saved = []
    session = EditSession(_routes(), save_routes=saved.append, append_changelog=broken_sink)
    session.enter()
    session.update_route("r1", name="North Loop")

    result = session.commit()

    assert saved
    assert result.changes == {"r1": ["Name changed: North → North Loop"]}
    assert result.changelog_written == 0
    assert session.state is SessionState.VIEWING


def test_diff_failure_does_not_fail_commit(monkeypatch):
    from routedesk.services.routes import session as session_module

    def broken_diff(before, after):
        raise RuntimeError("bug")

    monkeypatch.setattr(session_module, "diff_routes", broken_diff)
    saved = []
    session = EditSession(_routes(), save_routes=saved.append)
    session.enter()
    session.update_route("r1", name="North Loop")

    result = session.commit()

    assert saved
    assert result.changes == {}
    assert session.state is SessionState.VIEWING


def test_concurrent_commit_is_rejected():
    started = threading.Event()
    release = threading.Event()

    def slow_save(routes):
        started.set()
        release.wait(timeout=5)

    session = EditSession(_routes(), save_routes=slow_save)
    session.enter()
    worker = threading.Thread(target=session.commit)
    worker.start()
    try:
        assert started.wait(timeout=5)
        assert session.state is SessionState.COMMITTING
        with pytest.raises(CommitInProgressError):
            session.commit()
        with pytest.raises(SessionStateError):
            session.edit_point("100", "name", "Late edit")
    finally:
        release.set()
        worker.join(timeout=5)

    assert session.state is SessionState.VIEWING


def test_reload_only_while_viewing():
    session = _session()
    session.reload([Route(id="r5", name="West", code="W")])
    assert [route.id for route in session.working_set] == ["r5"]

    session.enter()
    with pytest.raises(SessionStateError):
        session.reload([])
