from pathlib import Path

import pytest

from routedesk.models.domain import DeliveryPoint, DeliveryType, Description, Route, SavedRowOrder
from routedesk.persistence.filesystem import FileStorage
from routedesk.persistence.route_notes import (
    add_route_note,
    append_changelog_entry,
    delete_route_note,
    list_route_notes,
)
from routedesk.persistence.routes import load_routes, point_from_record, save_routes
from routedesk.persistence.saved_orders import JsonSavedOrderStore
from routedesk.services.routes.errors import ChangelogWriteError, PersistenceError


def _route(route_id: str, *codes: str) -> Route:
    return Route(
        id=route_id,
        name=f"Route {route_id}",
        code=route_id.upper(),
        shift="AM",
        delivery_points=[
            DeliveryPoint(
                code=code,
                name=f"Shop {code}",
                delivery=DeliveryType.ALT_2,
                latitude=3.1,
                longitude=101.6,
                descriptions=[Description(key="Gate", value="B")],
                qr_code_image_url="https://example.test/qr.png" if code == "1" else None,
            )
            for code in codes
        ],
    )


def test_file_storage_round_trips_json(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path / "data")
    path = storage.path_for("doc.json")

    assert storage.read_json(path, default=[]) == []
    storage.write_json(path, {"hello": "world"})

    assert path.read_text(encoding="utf-8") == '{\n  "hello": "world"\n}'
    assert storage.read_json(path) == {"hello": "world"}


def test_saved_order_store_ignores_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "orders.json"
    path.write_text("{not json", encoding="utf-8")

    assert JsonSavedOrderStore(path).load_saved_orders() == []


def test_saved_order_store_skips_malformed_entries(tmp_path: Path) -> None:
    path = tmp_path / "orders.json"
    path.write_text('[{"id": "o1", "label": "Morning", "order": ["2", "1"]}, {"label": "no id"}, 5]', encoding="utf-8")

    orders = JsonSavedOrderStore(path).load_saved_orders()

    assert orders == [SavedRowOrder(id="o1", label="Morning", order=["2", "1"])]


def test_save_and_load_routes(fake_supabase) -> None:
    save_routes([_route("r1", "1", "2"), _route("r2")])

    rows = fake_supabase.tables["routes"]
    assert [row["id"] for row in rows] == ["r1", "r2"]
    stored_point = rows[0]["delivery_points"][0]
    assert stored_point["delivery"] == "Alt 2"
    assert stored_point["qrCodeImageUrl"] == "https://example.test/qr.png"
    assert "qrCodeImageUrl" not in rows[0]["delivery_points"][1]

    loaded = load_routes()
    assert [route.id for route in loaded] == ["r1", "r2"]
    assert loaded[0].delivery_points[0] == _route("r1", "1").delivery_points[0]
    assert loaded[0].updated_at is not None
    assert loaded[1].delivery_points == []


def test_save_routes_deletes_missing_routes(fake_supabase) -> None:
    save_routes([_route("r1"), _route("r2")])
    save_routes([_route("r2", "9")])

    assert [row["id"] for row in fake_supabase.tables["routes"]] == ["r2"]

    save_routes([])
    assert fake_supabase.tables["routes"] == []


def test_save_routes_failure_raises(fake_supabase) -> None:
    fake_supabase.fail_on.add("upsert")

    with pytest.raises(PersistenceError):
        save_routes([_route("r1")])


def test_save_routes_without_client(monkeypatch) -> None:
    from routedesk.persistence import routes as routes_module

    monkeypatch.setattr(routes_module, "get_supabase_client", lambda: None)

    with pytest.raises(PersistenceError):
        save_routes([_route("r1")])
    assert load_routes() == []


def test_load_routes_failure_raises(fake_supabase) -> None:
    fake_supabase.fail_on.add("select")

    with pytest.raises(PersistenceError):
        load_routes()


def test_point_from_record_accepts_legacy_rows() -> None:
    point = point_from_record(
        {"code": "7", "name": "Kiosk", "delivery": "Monthly", "latitude": "3.2", "description": "Back door"}
    )

    assert point.delivery is DeliveryType.DAILY
    assert point.latitude == 3.2
    assert point.longitude == 0.0
    assert point.descriptions == [Description(key="Description", value="Back door")]


def test_route_notes_and_changelog(fake_supabase) -> None:
    append_changelog_entry("r1", "Added 1 location(s): Kiosk")
    append_changelog_entry("r1", "Removed 1 location(s): Bakery")
    append_changelog_entry("r2", "Shift changed: AM → PM")
    note = add_route_note("r1", "Gate code 4411")

    result = list_route_notes("r1")

    assert [entry.text for entry in result.changelog] == [
        "Removed 1 location(s): Bakery",
        "Added 1 location(s): Kiosk",
    ]
    assert [entry.text for entry in result.notes] == ["Gate code 4411"]

    changelog_id = result.changelog[0].id
    assert delete_route_note(changelog_id) is False
    assert delete_route_note(note.id) is True
    assert list_route_notes("r1").notes == []


def test_append_changelog_failure_raises(fake_supabase) -> None:
    fake_supabase.fail_on.add("insert")

    with pytest.raises(ChangelogWriteError):
        append_changelog_entry("r1", "Name changed: A → B")
