"""
Pydantic models for the JSON the JavaBite backend returns.

Field names are snake_case in Python and camelCase on the wire
(``tableNumber``, ``bookingDate``, ``priceAtOrder`` ...). Unknown fields are
ignored so backend additions never break a page.
"""
from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


Role = Literal["ADMIN", "CHEF", "WAITER", "CUSTOMER"]
OrderStatus = Literal["PENDING", "PREPARING", "READY", "SERVED", "COMPLETED", "CANCELLED"]
BookingStatus = Literal["CONFIRMED", "ACTIVE", "COMPLETED", "CANCELLED", "NO_SHOW"]
RefundStatus = Literal["NONE", "PENDING", "COMPLETED"]

ACTIVE_BOOKING_STATUSES = ("CONFIRMED", "ACTIVE")
CURRENT_ORDER_STATUSES = ("PENDING", "PREPARING", "READY")
PAST_ORDER_STATUSES = ("SERVED", "COMPLETED", "CANCELLED")


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# Auth/User
class Identity(ApiModel):
    id: int
    name: str = ""
    email: str = ""
    role: Role = "CUSTOMER"


class Person(ApiModel):
    """Customer, chef or waiter as embedded in an order."""
    id: Optional[int] = None
    name: Optional[str] = None
    email: Optional[str] = None


class StaffMember(ApiModel):
    id: int
    name: str = ""
    email: str = ""
    role: Optional[Role] = None
    enabled: bool = True


# Menu
class MenuItem(ApiModel):
    id: int
    name: str
    description: Optional[str] = None
    price: float = Field(0.0, ge=0)
    category: Optional[str] = None
    image_url: Optional[str] = None
    available: bool = True


# Bookings
class Booking(ApiModel):
    id: int
    table_number: Optional[int] = None
    booking_date: date
    booking_time: str = ""
    number_of_guests: Optional[int] = None
    status: BookingStatus = "CONFIRMED"
    special_requests: Optional[str] = None
    cancellation_reason: Optional[str] = None
    refund_status: Optional[RefundStatus] = "NONE"
    refund_amount: Optional[float] = None

    @property
    def starts_at(self) -> datetime:
        at = datetime.strptime((self.booking_time or "00:00")[:5], "%H:%M").time()
        return datetime.combine(self.booking_date, at)


class BookingStats(ApiModel):
    total_bookings: int = 0
    upcoming_bookings: int = 0
    completed_bookings: int = 0
    cancelled_bookings: int = 0
    refunded_bookings: int = 0


# Orders
class OrderItem(ApiModel):
    menu_item: Optional[MenuItem] = None
    quantity: int = Field(1, ge=1)
    price_at_order: float = 0.0
    notes: Optional[str] = None


class Order(ApiModel):
    id: int
    customer: Optional[Person] = None
    table_booking: Optional[Booking] = None
    chef: Optional[Person] = None
    waiter: Optional[Person] = None
    items: List[OrderItem] = []
    subtotal: Optional[float] = None
    tax: Optional[float] = None
    discount: Optional[float] = None
    total: float = 0.0
    status: OrderStatus = "PENDING"
    payment_status: Optional[str] = None
    special_instructions: Optional[str] = None
    admin_notes: Optional[str] = None
    # set by the backend scheduler; shown, never decided here
    auto_assigned: bool = False
    created_at: datetime
    chef_assigned_at: Optional[datetime] = None
    waiter_assigned_at: Optional[datetime] = None
    preparation_started_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None
    served_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    @property
    def table_number(self) -> Optional[int]:
        return self.table_booking.table_number if self.table_booking else None


class DashboardStats(ApiModel):
    pending_orders: int = 0
    preparing_orders: int = 0
    ready_orders: int = 0
    completed_today: int = 0
    active_chefs: int = 0
    active_waiters: int = 0
    active_bookings: int = 0
