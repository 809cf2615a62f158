import pytest
import requests

from api_client import (
    ApiError, JavaBiteClient, NotAuthenticated, TransportError,
)

from conftest import BASE_URL, FakeBackend, menu_json, order_json


def test_data_envelope_is_unwrapped(api, backend):
    backend.on("GET", "/menu", body={"success": True, "data": [menu_json(), menu_json(id=2, name="Tea")]})
    items = api.menu()
    assert [i.name for i in items] == ["Latte", "Tea"]


def test_bare_body_is_accepted(api, backend):
    backend.on("GET", "/orders/my-orders", body=[order_json(id=3)])
    assert api.my_orders()[0].id == 3


def test_error_message_is_verbatim(api, backend):
    backend.on("PUT", "/orders/5/cancel", status=400, body={"message": "Order cannot be cancelled"})
    with pytest.raises(ApiError) as err:
        api.cancel_order(5)
    assert err.value.message == "Order cannot be cancelled"
    assert err.value.status == 400
    assert not err.value.retryable


def test_error_without_json_gets_generic_message(api, backend):
    backend.on("GET", "/menu", status=500)
    with pytest.raises(ApiError, match="status: 500"):
        api.menu()


def test_401_is_not_authenticated(api, backend):
    backend.on("GET", "/auth/me", status=401, body={"message": "Not logged in"})
    with pytest.raises(NotAuthenticated):
        api.me()


def test_reads_are_retried_after_connection_errors(api, backend):
    backend.routes[("GET", "/menu")] = [
        requests.ConnectionError("reset"),
        requests.Timeout("slow"),
        (200, [menu_json()]),
    ]
    assert len(api.menu()) == 1
    assert len(backend.called("GET", "/menu")) == 3


def test_reads_give_up_with_transport_error(api, backend):
    backend.routes[("GET", "/menu")] = requests.ConnectionError("refused")
    with pytest.raises(TransportError) as err:
        api.menu()
    assert err.value.retryable
    assert len(backend.called("GET", "/menu")) == 3


def test_mutations_are_not_retried(api, backend):
    backend.routes[("POST", "/orders")] = requests.Timeout("slow")
    with pytest.raises(TransportError):
        api.create_order({"items": []})
    assert len(backend.called("POST", "/orders")) == 1


def test_cookies_are_replayed_and_forgotten():
    backend = FakeBackend()
    client = JavaBiteClient(BASE_URL, http=backend, cookies={"JSESSIONID": "xyz"})
    assert client.cookies() == {"JSESSIONID": "xyz"}
    client.forget_cookies()
    assert client.cookies() == {}


def test_login_returns_identity(api, backend):
    backend.on("POST", "/auth/login", body={"data": {"id": 4, "name": "Cy", "email": "c@x.io", "role": "CHEF"}})
    user = api.login("c@x.io", "pw")
    assert user.role == "CHEF"
    assert backend.calls[0][3] == {"email": "c@x.io", "password": "pw"}


def test_assign_sends_chef_and_waiter(api, backend):
    backend.on("POST", "/admin/orders/8/assign", body={"data": order_json(id=8)})
    api.assign_staff(8, 2, None)
    assert backend.calls[0][3] == {"chefId": 2, "waiterId": None}


@pytest.mark.parametrize("body, expected", [
    ({"data": {"canSubmit": True}}, True),
    ({"data": False}, False),
    (True, True),
])
def test_can_submit_feedback_shapes(api, backend, body, expected):
    backend.on("GET", "/feedback/can-submit/3", body=body)
    assert api.can_submit_feedback(3) is expected


def test_cancel_my_booking_sends_reason(api, backend):
    backend.on("DELETE", "/customer/bookings/6/cancel", body={"data": None})
    api.cancel_my_booking(6, "Plans changed")
    assert backend.calls[0][3] == {"reason": "Plans changed"}


def test_unexpected_payload_is_an_api_error(api, backend):
    backend.on("GET", "/bookings/admin/all", body=[{"id": 1, "tableNumber": 3, "status": "LOST"}])
    with pytest.raises(ApiError, match="Unexpected response from JavaBite"):
        api.all_bookings()


def test_served_and_no_show_statuses_parse(api, backend):
    backend.on("GET", "/orders/my-orders", body=[order_json(id=3, status="SERVED")])
    assert api.my_orders()[0].status == "SERVED"
