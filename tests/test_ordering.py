from datetime import date

import pytest
import requests

from api_client import ApiError, PreconditionError
from cart import Cart, CartLine
from models import Booking
from ordering import (
    BOOKING_CHECK_FAILED, NO_BOOKING_MESSAGE, CheckoutState, OrderPlacement,
    find_active_booking, order_payload,
)

from conftest import booking_json, order_json

TODAY = date(2026, 10, 19)
MY_BOOKINGS = "/bookings/my-bookings"


def full_cart():
    return Cart([
        CartLine(id=1, name="Latte", price=4.5),
        CartLine(id=1, name="Latte", price=4.5),
        CartLine(id=2, name="Scone", price=2.75),
    ])


def test_confirmed_future_booking_makes_checkout_ready(api, backend):
    backend.on("GET", MY_BOOKINGS, body=[{"id": 1, "status": "CONFIRMED", "bookingDate": "2099-01-01"}])
    flow = OrderPlacement(api, full_cart())

    assert flow.check_booking(TODAY) == CheckoutState.BOOKING_READY
    assert flow.booking.id == 1


@pytest.mark.parametrize("bookings", [
    [],
    [booking_json(status="CANCELLED")],
    [booking_json(status="COMPLETED")],
    [booking_json(day="2026-10-18")],
])
def test_no_qualifying_booking_blocks_order(api, backend, bookings):
    backend.on("GET", MY_BOOKINGS, body=bookings)
    flow = OrderPlacement(api, full_cart())

    assert flow.check_booking(TODAY) == CheckoutState.BOOKING_MISSING
    assert flow.error == NO_BOOKING_MESSAGE
    with pytest.raises(PreconditionError):
        flow.place()
    assert backend.called("POST", "/orders") == []


def test_booking_today_still_counts():
    bookings = [Booking.model_validate(booking_json(id=5, status="ACTIVE", day="2026-10-19"))]
    assert find_active_booking(bookings, TODAY).id == 5


def test_failed_booking_lookup_blocks_submission(api, backend):
    backend.routes[("GET", MY_BOOKINGS)] = requests.ConnectionError("refused")
    flow = OrderPlacement(api, full_cart())

    assert flow.check_booking(TODAY) == CheckoutState.BOOKING_MISSING
    assert flow.error == BOOKING_CHECK_FAILED
    with pytest.raises(PreconditionError):
        flow.place()


def test_empty_cart_is_rejected_without_network(api, backend):
    backend.on("GET", MY_BOOKINGS, body=[booking_json()])
    flow = OrderPlacement(api, Cart())
    flow.check_booking(TODAY)
    backend.calls.clear()

    with pytest.raises(PreconditionError, match="cart is empty"):
        flow.place()
    assert backend.calls == []


def test_successful_order_clears_cart(api, backend):
    backend.on("GET", MY_BOOKINGS, body=[booking_json(id=9)])
    backend.on("POST", "/orders", status=201, body={"data": order_json(id=77)})
    cart = full_cart()
    cart.apply_coupon("coffee10")
    flow = OrderPlacement(api, cart)
    flow.check_booking(TODAY)

    order = flow.place("Oat milk please")

    assert order.id == 77
    assert flow.state == CheckoutState.PLACED
    assert cart.is_empty()
    sent = backend.called("POST", "/orders")[0][3]
    assert sent == {
        "items": [
            {"menuItemId": 1, "quantity": 2, "notes": None},
            {"menuItemId": 2, "quantity": 1, "notes": None},
        ],
        "specialInstructions": "Oat milk please",
        "couponCode": "COFFEE10",
        "tableBookingId": 9,
    }


def test_failed_order_keeps_cart_and_can_retry(api, backend):
    backend.on("GET", MY_BOOKINGS, body=[booking_json(id=9)])
    backend.on("POST", "/orders", status=409, body={"message": "Kitchen is closed"})
    cart = full_cart()
    flow = OrderPlacement(api, cart)
    flow.check_booking(TODAY)

    with pytest.raises(ApiError):
        flow.place()

    assert flow.state == CheckoutState.FAILED
    assert flow.error == "Kitchen is closed"
    assert len(cart) == 3
    # a mutation is never repeated by the client
    assert len(backend.called("POST", "/orders")) == 1

    flow.retry_ready()
    assert flow.state == CheckoutState.BOOKING_READY


def test_order_payload_without_coupon_or_instructions():
    booking = Booking.model_validate(booking_json(id=3))
    payload = order_payload(full_cart(), booking)
    assert payload["couponCode"] is None
    assert payload["specialInstructions"] is None
    assert payload["tableBookingId"] == 3
