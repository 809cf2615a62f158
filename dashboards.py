"""
Role dashboards as view-models.

A dashboard holds the lists it polls plus the notices it shows. Every action
follows one shape: confirm (destructive actions only), call the backend, then
on success re-fetch and show a short-lived success notice, on failure keep a
persistent error and leave the lists as they were.
"""
import time
from datetime import date, datetime
from typing import Callable, List, NamedTuple, Optional

from api_client import JavaBiteClient, JavaBiteError
from history import (
    OrderFilter, apply_date_window, build_report, current_orders, filter_orders,
    group_by_date, order_stats, orders_to_csv, past_orders, report_to_csv,
)
from models import Booking, DashboardStats, MenuItem, Order, StaffMember

# allowed admin moves on a booking
BOOKING_TRANSITIONS = {
    "CONFIRMED": "ACTIVE",
    "ACTIVE": "COMPLETED",
}

MENU_CATEGORIES = ("COFFEE", "PASTRIES", "BEVERAGES", "SNACKS")


class AssignForm(NamedTuple):
    order_id: int
    chef_id: Optional[int] = None
    waiter_id: Optional[int] = None


class Dashboard:
    poll_seconds = 30
    notice_seconds = 3

    def __init__(self, client: JavaBiteClient, clock: Callable[[], float] = time.monotonic,
                 refetch_after_action: bool = True):
        self.client = client
        self.clock = clock
        # off when the caller redirects to a page that fetches anyway
        self.refetch_after_action = refetch_after_action
        self.error: Optional[str] = None
        self._success: Optional[str] = None
        self._success_until = 0.0

    @property
    def success(self) -> Optional[str]:
        if self._success and self.clock() < self._success_until:
            return self._success
        return None

    def dismiss_error(self):
        self.error = None

    def refresh(self):
        raise NotImplementedError

    def _fetch_list(self, call: Callable[[], list], failure: str) -> list:
        try:
            return call()
        except JavaBiteError as e:
            print(f"[Dashboard] {failure} ({e.message})")
            self.error = failure
            return []

    def _act(self, call: Callable[[], object], success: str, failure: Optional[str] = None,
             refetch: Optional[Callable[[], None]] = None, confirmed: bool = True,
             notice_seconds: Optional[float] = None) -> bool:
        if not confirmed:
            return False
        try:
            call()
        except JavaBiteError as e:
            print(f"[Dashboard] action failed: {e.message}")
            self.error = failure or e.message
            return False

        self.error = None
        self._success = success
        self._success_until = self.clock() + (notice_seconds or self.notice_seconds)
        if self.refetch_after_action:
            (refetch or self.refresh)()
        return True


# -----------------------
# Chef
# -----------------------
class ChefDashboard(Dashboard):
    poll_seconds = 30
    TABS = ("new", "progress", "completed")
    TAB_STATUS = {"new": "PENDING", "progress": "PREPARING", "completed": "COMPLETED"}

    def __init__(self, client: JavaBiteClient, tab: str = "new", **kwargs):
        super().__init__(client, **kwargs)
        self.tab = tab if tab in self.TABS else "new"
        self.orders: List[Order] = []

    def refresh(self):
        fetch = {
            "new": self.client.chef_new_orders,
            "progress": self.client.chef_active_orders,
            "completed": self.client.chef_completed_today,
        }[self.tab]
        self.orders = self._fetch_list(fetch, "Failed to load orders")

    def visible(self, window: str, now: datetime) -> List[Order]:
        wanted = self.TAB_STATUS[self.tab]
        return apply_date_window([o for o in self.orders if o.status == wanted], window, now)

    def grouped(self, window: str, now: datetime):
        return group_by_date(self.visible(window, now), now)

    def start_preparation(self, order_id: int, confirmed: bool = True) -> bool:
        return self._act(
            lambda: self.client.start_preparation(order_id),
            "Preparation started successfully!",
            confirmed=confirmed,
        )

    def mark_ready(self, order_id: int, confirmed: bool = True) -> bool:
        return self._act(
            lambda: self.client.mark_ready(order_id),
            "Order marked as ready!",
            confirmed=confirmed,
        )


# -----------------------
# Waiter
# -----------------------
class WaiterDashboard(Dashboard):
    poll_seconds = 5

    def __init__(self, client: JavaBiteClient, **kwargs):
        super().__init__(client, **kwargs)
        self.preparing: List[Order] = []
        self.ready: List[Order] = []

    def refresh(self):
        self.error = None
        self.preparing = self._fetch_list(self.client.waiter_preparing_orders,
                                          "Failed to load orders. Please refresh.")
        self.ready = self._fetch_list(self.client.waiter_ready_orders,
                                      "Failed to load orders. Please refresh.")

    def mark_served(self, order_id: int, confirmed: bool = True) -> bool:
        return self._act(
            lambda: self.client.mark_served(order_id),
            "Order marked as served successfully!",
            failure="Failed to mark order as served. Please try again.",
            confirmed=confirmed,
        )


# -----------------------
# Admin
# -----------------------
class AdminDashboard(Dashboard):
    poll_seconds = 30
    TABS = ("dashboard", "orders", "bookings", "products", "staff", "history", "reports")

    def __init__(self, client: JavaBiteClient, tab: str = "dashboard", **kwargs):
        super().__init__(client, **kwargs)
        self.tab = tab if tab in self.TABS else "dashboard"
        self.stats = DashboardStats()
        self.pending_orders: List[Order] = []
        self.orders: List[Order] = []
        self.chefs: List[StaffMember] = []
        self.waiters: List[StaffMember] = []
        self.menu_items: List[MenuItem] = []
        self.bookings: List[Booking] = []
        self.assign_form: Optional[AssignForm] = None

    def refresh(self):
        if self.tab == "dashboard":
            self.fetch_stats()
            self.fetch_pending_orders()
            self.fetch_staff()
        elif self.tab == "orders":
            self.fetch_pending_orders()
            self.fetch_staff()
        elif self.tab == "bookings":
            self.fetch_bookings()
        elif self.tab == "products":
            self.fetch_menu_items()
        elif self.tab == "staff":
            self.fetch_staff()
        elif self.tab in ("history", "reports"):
            self.fetch_all_orders()
            self.fetch_staff()

    # fetches
    def fetch_stats(self):
        try:
            self.stats = self.client.dashboard_stats()
        except JavaBiteError as e:
            # not critical; keep what we had
            print(f"[Dashboard] Failed to fetch dashboard stats: {e.message}")

    def fetch_pending_orders(self):
        self.pending_orders = self._fetch_list(self.client.pending_orders,
                                               "Failed to load orders. Please refresh.")

    def fetch_all_orders(self):
        self.orders = self._fetch_list(self.client.all_orders, "Failed to load orders")

    def fetch_staff(self):
        self.chefs = self._quiet(self.client.chefs)
        self.waiters = self._quiet(self.client.waiters)

    def fetch_menu_items(self):
        self.menu_items = self._fetch_list(self.client.admin_menu,
                                           "Failed to load menu items. Please refresh.")

    def fetch_bookings(self):
        self.bookings = self._fetch_list(self.client.all_bookings, "Failed to load bookings")

    @staticmethod
    def _quiet(call) -> list:
        try:
            return call()
        except JavaBiteError:
            return []

    # orders
    def select_order(self, order_id: int):
        self.assign_form = AssignForm(order_id)

    def assign(self, order_id: int, chef_id: Optional[int], waiter_id: Optional[int] = None) -> bool:
        self.assign_form = AssignForm(order_id, chef_id, waiter_id)
        if not chef_id:
            self.error = "Please select a chef"
            return False

        def refetch():
            self.fetch_pending_orders()
            self.fetch_stats()

        ok = self._act(
            lambda: self.client.assign_staff(order_id, chef_id, waiter_id or None),
            "Order assigned successfully!",
            refetch=refetch,
        )
        if ok:
            self.assign_form = None
        return ok

    def cancel_order(self, order_id: int, confirmed: bool = True) -> bool:
        if not confirmed:
            return False
        ok = self._act(
            lambda: self.client.admin_cancel_order(order_id),
            f"Order #{order_id} cancelled successfully",
            refetch=self.fetch_all_orders,
        )
        if not ok:
            self.error = f"Failed to cancel order: {self.error}"
        return ok

    def update_notes(self, order_id: int, notes: str) -> bool:
        return self._act(
            lambda: self.client.update_order_notes(order_id, notes),
            "Notes saved successfully",
            failure="Failed to save notes",
            refetch=self.fetch_all_orders,
        )

    def refund_order(self, order_id: int, confirmed: bool = True) -> bool:
        order = next((o for o in self.orders if o.id == order_id), None)
        if order is not None and order.status != "COMPLETED":
            self.error = "Only completed orders can be refunded"
            return False
        return self._act(
            lambda: self.client.refund_order(order_id),
            "Order refunded successfully",
            failure="Failed to refund order",
            refetch=self.fetch_all_orders,
            confirmed=confirmed,
        )

    # staff
    def create_staff(self, role: str, name: str, email: str, password: str) -> bool:
        if role not in ("CHEF", "WAITER"):
            self.error = "Staff role must be CHEF or WAITER"
            return False
        if not name or not email or not password:
            self.error = "Name, email and password are required"
            return False
        return self._act(
            lambda: self.client.create_staff(role, name, email, password),
            f"{role.title()} created successfully!",
            refetch=self.fetch_staff,
        )

    def toggle_staff(self, user_id: int) -> bool:
        return self._act(
            lambda: self.client.toggle_staff(user_id),
            "Staff status updated",
            failure="Failed to toggle staff status",
            refetch=self.fetch_staff,
            notice_seconds=2,
        )

    def delete_staff(self, user_id: int, confirmed: bool = True) -> bool:
        return self._act(
            lambda: self.client.delete_staff(user_id),
            "Staff member deleted",
            failure="Failed to delete staff member",
            refetch=self.fetch_staff,
            confirmed=confirmed,
            notice_seconds=2,
        )

    # menu
    def save_menu_item(self, form: dict, item_id: Optional[int] = None) -> bool:
        name = (form.get("name") or "").strip()
        if not name:
            self.error = "Name is required."
            return False
        try:
            price = parse_price(form.get("price", ""))
        except ValueError:
            self.error = "Price must be a number like 4.50"
            return False

        item = {
            "name": name,
            "description": (form.get("description") or "").strip(),
            "price": price,
            "category": (form.get("category") or "COFFEE").strip().upper(),
            "imageUrl": (form.get("imageUrl") or "").strip() or None,
            "available": bool(form.get("available", True)),
        }
        if item_id is None:
            return self._act(lambda: self.client.create_menu_item(item),
                             "Menu item created successfully!", refetch=self.fetch_menu_items)
        return self._act(lambda: self.client.update_menu_item(item_id, item),
                         "Menu item updated successfully!", refetch=self.fetch_menu_items)

    def delete_menu_item(self, item_id: int, confirmed: bool = True) -> bool:
        return self._act(
            lambda: self.client.delete_menu_item(item_id),
            "Menu item deleted",
            failure="Failed to delete menu item",
            refetch=self.fetch_menu_items,
            confirmed=confirmed,
            notice_seconds=2,
        )

    # bookings
    def update_booking_status(self, booking_id: int, status: str) -> bool:
        booking = next((b for b in self.bookings if b.id == booking_id), None)
        if booking is not None and BOOKING_TRANSITIONS.get(booking.status) != status:
            self.error = f"Cannot move a {booking.status.lower()} booking to {status.lower()}"
            return False
        if status not in BOOKING_TRANSITIONS.values():
            self.error = f"Unknown booking status {status}"
            return False
        return self._act(
            lambda: self.client.update_booking_status(booking_id, status),
            f"Booking status updated to {status}",
            refetch=self.fetch_bookings,
        )

    def cancel_booking(self, booking_id: int, confirmed: bool = True) -> bool:
        return self._act(
            lambda: self.client.cancel_booking(booking_id),
            "Booking cancelled successfully",
            refetch=self.fetch_bookings,
            confirmed=confirmed,
        )

    def bookings_with_status(self, status: Optional[str]) -> List[Booking]:
        if not status or status.lower() == "all":
            return list(self.bookings)
        return [b for b in self.bookings if b.status == status.upper()]

    # history + reports, computed from the fetched list only
    def filtered_orders(self, f: OrderFilter) -> List[Order]:
        return filter_orders(self.orders, f)

    def order_stats(self, today: date):
        return order_stats(self.orders, today)

    def export_orders_csv(self, f: OrderFilter) -> str:
        return orders_to_csv(self.filtered_orders(f))

    def report(self, start: date, end: date):
        return build_report(self.orders, start, end)

    def export_report_csv(self, start: date, end: date) -> str:
        return report_to_csv(self.report(start, end))


def parse_price(value) -> float:
    v = str(value or "").strip().replace("$", "").replace("£", "").replace(",", ".")
    price = float(v)
    if price < 0:
        raise ValueError("negative price")
    return price


# -----------------------
# Customer
# -----------------------
class CustomerDashboard(Dashboard):
    def __init__(self, client: JavaBiteClient, **kwargs):
        super().__init__(client, **kwargs)
        self.orders: List[Order] = []
        self.bookings: List[Booking] = []
        self.booking_stats = None

    def refresh(self):
        self.orders = self._fetch_list(self.client.my_orders, "Failed to load orders")

    def refresh_bookings(self):
        self.bookings = self._fetch_list(self.client.booking_history, "Failed to load bookings")
        try:
            self.booking_stats = self.client.booking_stats()
        except JavaBiteError as e:
            print(f"[Dashboard] Failed to fetch booking stats: {e.message}")

    def visible(self, tab: str, window: str, now: datetime) -> List[Order]:
        rows = current_orders(self.orders) if tab == "current" else past_orders(self.orders)
        return apply_date_window(rows, window, now)

    def find(self, order_id: int) -> Optional[Order]:
        return next((o for o in self.orders if o.id == order_id), None)

    def cancel_order(self, order_id: int, confirmed: bool = True) -> bool:
        return self._act(
            lambda: self.client.cancel_order(order_id),
            "Order cancelled successfully",
            confirmed=confirmed,
        )

    def cancel_booking(self, booking_id: int, reason: Optional[str] = None,
                       confirmed: bool = True) -> bool:
        return self._act(
            lambda: self.client.cancel_my_booking(booking_id, reason),
            "Booking cancelled. Any refund due will be processed shortly.",
            refetch=self.refresh_bookings,
            confirmed=confirmed,
        )

    def submit_feedback(self, order_id: int, overall: int, comment: Optional[str] = None,
                        would_recommend: bool = True, **ratings) -> bool:
        if not overall or not 1 <= int(overall) <= 5:
            self.error = "Please provide an overall rating"
            return False
        payload = {
            "orderId": order_id,
            "overallRating": int(overall),
            "comment": (comment or "").strip() or None,
            "wouldRecommend": would_recommend,
        }
        for key in ("food", "service", "ambiance", "value"):
            value = ratings.get(key)
            payload[f"{key}Rating"] = int(value) if value else None
        return self._act(
            lambda: self.client.create_feedback(payload),
            "Thank you for your feedback!",
        )
