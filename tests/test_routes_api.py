import requests

from conftest import menu_json


def test_menu_is_served_camel_case(client, backend):
    backend.on("GET", "/menu", body={"data": [menu_json(id=1), menu_json(id=2, category="BEVERAGES")]})
    body = client.get("/api/menu?category=beverages").get_json()
    assert [i["id"] for i in body] == [2]
    assert "imageUrl" in body[0]


def test_empty_cart_summary(client):
    body = client.get("/api/cart").get_json()
    assert body["count"] == 0
    assert body["total"] == 0


def test_tables_without_slot_are_all_available(client, backend):
    body = client.get("/api/tables").get_json()
    assert [t["status"] for t in body] == ["AVAILABLE"] * 6
    assert backend.calls == []


def test_tables_for_a_slot(client, backend):
    backend.on("GET", "/bookings/check-availability", body={"availableTables": [2, 3]})
    body = client.get("/api/tables?date=2099-01-01&time=19:00").get_json()
    assert [t["tableNumber"] for t in body if t["status"] == "AVAILABLE"] == [2, 3]


def test_backend_errors_become_json(client, backend):
    backend.on("GET", "/menu", status=503, body={"message": "Maintenance"})
    resp = client.get("/api/menu")
    assert resp.status_code == 503
    assert resp.get_json() == {"ok": False, "message": "Maintenance"}


def test_unreachable_backend_is_bad_gateway(client, backend):
    backend.routes[("GET", "/menu")] = requests.ConnectionError("refused")
    resp = client.get("/api/menu")
    assert resp.status_code == 502
    assert resp.get_json()["ok"] is False
