from datetime import datetime
from typing import Iterable, List, NamedTuple, Optional, Set, Tuple

from api_client import JavaBiteClient, PreconditionError
from models import ACTIVE_BOOKING_STATUSES, Booking

TOTAL_TABLES = 6

AVAILABLE = "AVAILABLE"
BOOKED = "BOOKED"


class TableStatus(NamedTuple):
    table_number: int
    status: str

    @property
    def available(self) -> bool:
        return self.status == AVAILABLE


def parse_available(payload, total: int = TOTAL_TABLES) -> Set[int]:
    """
    Normalise the availability answer to a set of free table numbers.

    The backend answers either with a list of free table numbers,
    ``{"availableTables": [...]}``, or a slot-wide ``{"available": bool}``.
    """
    if isinstance(payload, dict):
        if "availableTables" in payload:
            payload = payload["availableTables"]
        elif "available" in payload:
            return set(range(1, total + 1)) if payload["available"] else set()
        else:
            return set()
    if not isinstance(payload, list):
        return set()
    return {int(n) for n in payload}


def table_statuses(available: Iterable[int], total: int = TOTAL_TABLES) -> List[TableStatus]:
    free = set(available)
    return [
        TableStatus(n, AVAILABLE if n in free else BOOKED)
        for n in range(1, total + 1)
    ]


def all_available(total: int = TOTAL_TABLES) -> List[TableStatus]:
    return table_statuses(range(1, total + 1), total)


class BookingProber:
    """Availability for one date/time slot and the booking request for it."""

    def __init__(self, client: JavaBiteClient, total_tables: int = TOTAL_TABLES):
        self.client = client
        self.total_tables = total_tables
        self.statuses: List[TableStatus] = all_available(total_tables)
        self.slot: Tuple[Optional[str], Optional[str]] = (None, None)

    def check_availability(self, booking_date: Optional[str], booking_time: Optional[str]) -> List[TableStatus]:
        self.slot = (booking_date or None, booking_time or None)
        if not booking_date or not booking_time:
            self.statuses = all_available(self.total_tables)
            return self.statuses

        payload = self.client.check_availability(booking_date, booking_time)
        self.statuses = table_statuses(parse_available(payload, self.total_tables), self.total_tables)
        return self.statuses

    def select_table(self, table_number: int) -> int:
        for table in self.statuses:
            if table.table_number == table_number:
                if not table.available:
                    raise PreconditionError("This table is already booked for the selected time slot")
                return table_number
        raise PreconditionError("Please select a table")

    def create_booking(self, table_number: Optional[int], booking_date: Optional[str],
                       booking_time: Optional[str], guests: int = 1,
                       special_requests: Optional[str] = None) -> Optional[Booking]:
        if not table_number:
            raise PreconditionError("Please select a table")
        if not booking_date or not booking_time:
            raise PreconditionError("Please select date and time")
        if self.slot != (booking_date, booking_time):
            self.check_availability(booking_date, booking_time)
        self.select_table(table_number)
        return self.client.create_booking(
            table_number, booking_date, booking_time, int(guests), special_requests
        )


# -----------------------
# Customer booking history
# -----------------------
def split_history(bookings: List[Booking], now: datetime) -> Tuple[List[Booking], List[Booking]]:
    upcoming = [
        b for b in bookings
        if b.starts_at > now and b.status in ACTIVE_BOOKING_STATUSES
    ]
    past = [
        b for b in bookings
        if b.starts_at <= now or b.status not in ACTIVE_BOOKING_STATUSES
    ]
    return upcoming, past
