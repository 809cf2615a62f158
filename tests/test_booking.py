from datetime import date, datetime

import pytest

from api_client import ApiError, PreconditionError
from booking import (
    BOOKED, TOTAL_TABLES, BookingProber, parse_available, split_history, table_statuses,
)
from models import Booking

from conftest import booking_json

AVAIL = "/bookings/check-availability"
CREATE = "/bookings/create"


@pytest.mark.parametrize("payload, expected", [
    ([1, 2, 5], {1, 2, 5}),
    ({"availableTables": [3]}, {3}),
    ({"available": True}, {1, 2, 3, 4, 5, 6}),
    ({"available": False}, set()),
    (None, set()),
])
def test_parse_available_accepts_every_backend_shape(payload, expected):
    assert parse_available(payload, TOTAL_TABLES) == expected


def test_tables_missing_from_the_answer_are_booked():
    statuses = table_statuses({1, 4}, 6)
    assert [t.table_number for t in statuses if t.status == BOOKED] == [2, 3, 5, 6]


def test_no_call_until_date_and_time_are_chosen(api, backend):
    prober = BookingProber(api)
    tables = prober.check_availability("2099-01-01", None)

    assert all(t.available for t in tables)
    assert len(tables) == TOTAL_TABLES
    assert backend.calls == []


def test_check_availability_sends_date_and_time(api, backend):
    backend.on("GET", AVAIL, body={"data": [1, 2, 3]})
    prober = BookingProber(api)
    tables = prober.check_availability("2099-01-01", "18:00")

    assert backend.calls[0][2] == {"date": "2099-01-01", "time": "18:00"}
    assert [t.available for t in tables] == [True, True, True, False, False, False]


def test_booked_table_is_rejected_without_create_call(api, backend):
    backend.on("GET", AVAIL, body=[1, 2])
    prober = BookingProber(api)

    with pytest.raises(PreconditionError, match="already booked"):
        prober.create_booking(5, "2099-01-01", "18:00", guests=2)

    assert backend.called("POST", CREATE) == []


def test_missing_selection_is_a_precondition(api, backend):
    prober = BookingProber(api)
    with pytest.raises(PreconditionError, match="select a table"):
        prober.create_booking(None, "2099-01-01", "18:00")
    with pytest.raises(PreconditionError, match="date and time"):
        prober.create_booking(2, "", "18:00")
    assert backend.calls == []


def test_create_booking_posts_and_returns_booking(api, backend):
    backend.on("GET", AVAIL, body=[1, 2, 3, 4, 5, 6])
    backend.on("POST", CREATE, body={"data": booking_json(id=42, table=4)})

    booking = BookingProber(api).create_booking(4, "2099-01-01", "18:00", guests=3)

    assert booking.id == 42
    sent = backend.called("POST", CREATE)[0][3]
    assert sent == {
        "tableNumber": 4, "bookingDate": "2099-01-01", "bookingTime": "18:00", "numberOfGuests": 3,
    }


def test_server_rejection_message_is_surfaced_verbatim(api, backend):
    backend.on("GET", AVAIL, body=[1, 2, 3, 4, 5, 6])
    backend.on("POST", CREATE, status=400, body={"message": "Table 4 is no longer available"})

    with pytest.raises(ApiError) as err:
        BookingProber(api).create_booking(4, "2099-01-01", "18:00")
    assert err.value.message == "Table 4 is no longer available"


def test_split_history_upcoming_and_past():
    now = datetime(2026, 10, 19, 12, 0)
    bookings = [
        Booking.model_validate(booking_json(id=1, day="2026-10-20")),
        Booking.model_validate(booking_json(id=2, day="2026-10-19", at="11:00")),
        Booking.model_validate(booking_json(id=3, day="2026-10-21", status="CANCELLED")),
        Booking.model_validate(booking_json(id=4, day="2026-10-19", at="13:30:00", status="ACTIVE")),
    ]
    upcoming, past = split_history(bookings, now)
    assert [b.id for b in upcoming] == [1, 4]
    assert [b.id for b in past] == [2, 3]


def test_booking_model_reads_camel_case():
    b = Booking.model_validate(booking_json(refundStatus=None, refundAmount=12.5))
    assert b.booking_date == date(2099, 1, 1)
    assert b.refund_amount == 12.5
