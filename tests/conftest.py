import json

import pytest
import requests

from api_client import JavaBiteClient
from app import create_app

BASE_URL = "http://backend.test/api"


def make_response(status: int, body=None) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    if body is None:
        resp._content = b""
    else:
        resp._content = json.dumps(body).encode("utf-8")
        resp.headers["Content-Type"] = "application/json"
    return resp


class FakeBackend:
    """
    Stands in for ``requests.Session``.

    ``routes`` maps ``(METHOD, path)`` to ``(status, body)``, a callable
    ``(params, json) -> (status, body)``, or an exception instance to raise.
    Every call is recorded in ``calls``.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []
        self.cookies = requests.cookies.RequestsCookieJar()

    def on(self, method, path, status=200, body=None):
        self.routes[(method, path)] = (status, body)
        return self

    def request(self, method, url, params=None, json=None, timeout=None):
        assert timeout is not None, "every backend call needs a timeout"
        path = url[len(BASE_URL):]
        self.calls.append((method, path, params, json))
        handler = self.routes.get((method, path))
        if handler is None:
            return make_response(404, {"message": f"no route for {method} {path}"})
        if isinstance(handler, list):
            handler = handler.pop(0) if len(handler) > 1 else handler[0]
        if isinstance(handler, Exception):
            raise handler
        if callable(handler):
            handler = handler(params=params, json=json)
        status, body = handler
        return make_response(status, body)

    def called(self, method, path):
        return [c for c in self.calls if c[0] == method and c[1] == path]


# -----------------------
# JSON factories (camelCase, as the backend sends them)
# -----------------------
def menu_json(id=1, name="Latte", price=4.5, category="COFFEE", available=True):
    return {
        "id": id, "name": name, "description": f"{name} description", "price": price,
        "category": category, "imageUrl": None, "available": available,
    }


def booking_json(id=1, status="CONFIRMED", day="2099-01-01", at="18:00", table=3, **extra):
    data = {
        "id": id, "tableNumber": table, "bookingDate": day, "bookingTime": at,
        "numberOfGuests": 2, "status": status,
    }
    data.update(extra)
    return data


def order_json(id=1, status="PENDING", created="2026-10-19T10:00:00", total=10.0,
               customer=None, items=None, **extra):
    data = {
        "id": id,
        "status": status,
        "createdAt": created,
        "total": total,
        "customer": customer or {"id": 7, "name": "Ada", "email": "ada@example.com"},
        "tableBooking": booking_json(table=2),
        "items": items if items is not None else [
            {"menuItem": menu_json(), "quantity": 2, "priceAtOrder": 4.5},
        ],
        "paymentStatus": "PAID",
    }
    data.update(extra)
    return data


def user_json(id=1, role="CUSTOMER", name="Ada", email="ada@example.com"):
    return {"id": id, "name": name, "email": email, "role": role}


# -----------------------
# Fixtures
# -----------------------
@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def api(backend):
    return JavaBiteClient(BASE_URL, http=backend, retry_sleep=0)


@pytest.fixture
def app(backend):
    return create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "JAVABITE_API_URL": BASE_URL,
        "HTTP_SESSION_FACTORY": lambda: backend,
        "API_RETRY_SLEEP_SECONDS": 0,
        "EVENT_LOG_ENABLED": False,
    })


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login_as(client):
    def _login(role="CUSTOMER", **kwargs):
        with client.session_transaction() as s:
            s["user"] = user_json(role=role, **kwargs)
            s["api_cookies"] = {"JSESSIONID": "abc"}
        return client
    return _login
