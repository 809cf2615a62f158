"""
Checkout gate.

An order can only be sent while the customer holds a CONFIRMED or ACTIVE
booking dated today or later. The check here only blocks the form; the
backend repeats it when the order arrives.
"""
from datetime import date
from enum import Enum
from typing import List, Optional

from api_client import JavaBiteClient, JavaBiteError, PreconditionError
from cart import Cart
from models import ACTIVE_BOOKING_STATUSES, Booking, Order


class CheckoutState(str, Enum):
    CHECKING_BOOKING = "checking-booking"
    BOOKING_MISSING = "booking-missing"
    BOOKING_READY = "booking-ready"
    PLACING = "placing"
    PLACED = "placed"
    FAILED = "failed"


NO_BOOKING_MESSAGE = "No active table booking found. Please book a table before placing an order."
BOOKING_CHECK_FAILED = "Failed to verify table booking. Please try again."


def find_active_booking(bookings: List[Booking], today: date) -> Optional[Booking]:
    for booking in bookings:
        if booking.status in ACTIVE_BOOKING_STATUSES and booking.booking_date >= today:
            return booking
    return None


def order_payload(cart: Cart, booking: Booking, special_instructions: Optional[str] = None) -> dict:
    return {
        "items": [
            {"menuItemId": g.item.id, "quantity": g.quantity, "notes": None}
            for g in cart.grouped()
        ],
        "specialInstructions": special_instructions or None,
        "couponCode": cart.coupon_code or None,
        "tableBookingId": booking.id,
    }


class OrderPlacement:
    def __init__(self, client: JavaBiteClient, cart: Cart):
        self.client = client
        self.cart = cart
        self.state = CheckoutState.CHECKING_BOOKING
        self.booking: Optional[Booking] = None
        self.order: Optional[Order] = None
        self.error: Optional[str] = None

    def check_booking(self, today: date) -> CheckoutState:
        self.state = CheckoutState.CHECKING_BOOKING
        try:
            bookings = self.client.my_bookings()
        except JavaBiteError as e:
            print(f"[Checkout] booking check failed: {e.message}")
            self.booking = None
            self.error = BOOKING_CHECK_FAILED
            self.state = CheckoutState.BOOKING_MISSING
            return self.state

        self.booking = find_active_booking(bookings, today)
        if self.booking is None:
            self.error = NO_BOOKING_MESSAGE
            self.state = CheckoutState.BOOKING_MISSING
        else:
            self.error = None
            self.state = CheckoutState.BOOKING_READY
        return self.state

    def place(self, special_instructions: Optional[str] = None) -> Order:
        if self.state == CheckoutState.PLACING:
            raise PreconditionError("Your order is already being placed.")
        if self.cart.is_empty():
            raise PreconditionError("Your cart is empty!")
        if self.state not in (CheckoutState.BOOKING_READY, CheckoutState.FAILED) or self.booking is None:
            raise PreconditionError(
                "You must have an active table booking to place an order. Please book a table first."
            )

        self.state = CheckoutState.PLACING
        try:
            order = self.client.create_order(order_payload(self.cart, self.booking, special_instructions))
        except JavaBiteError as e:
            # cart untouched so the customer can retry
            self.state = CheckoutState.FAILED
            self.error = e.message or "Failed to place order. Please ensure you have an active table booking."
            raise

        self.order = order
        self.cart.clear()
        self.state = CheckoutState.PLACED
        self.error = None
        return order

    def retry_ready(self):
        """After a failure the form is usable again with the same booking."""
        if self.state == CheckoutState.FAILED:
            self.state = CheckoutState.BOOKING_READY
