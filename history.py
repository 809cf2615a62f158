"""
Order history helpers for the admin, chef and customer views.

Everything here is a pure function of (orders, filter state): the backend list
is fetched once and every view derives its rows from it.
"""
import csv
import io
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, field_validator

from models import CURRENT_ORDER_STATUSES, PAST_ORDER_STATUSES, Order

SortKey = Literal["date-desc", "date-asc", "total-desc", "total-asc", "status"]
DateWindow = Literal["all", "7days", "30days"]

STATUS_KEYS = ("PENDING", "PREPARING", "READY", "COMPLETED", "CANCELLED")

CSV_HEADERS = [
    "Order ID", "Customer Name", "Customer Email", "Table",
    "Status", "Total", "Payment Status", "Created At",
    "Chef", "Waiter",
]


class OrderFilter(BaseModel):
    status: Optional[str] = None
    search: Optional[str] = None
    start: Optional[date] = None
    end: Optional[date] = None
    table: Optional[int] = None
    chef_id: Optional[int] = None
    waiter_id: Optional[int] = None
    payment_status: Optional[str] = None
    sort: Optional[SortKey] = "date-desc"

    @field_validator("*", mode="before")
    @classmethod
    def _blank_is_none(cls, value):
        # html forms send "" for untouched inputs
        if isinstance(value, str) and not value.strip():
            return None
        return value


def filter_orders(orders: List[Order], f: OrderFilter) -> List[Order]:
    result = list(orders)

    if f.status and f.status.lower() != "all":
        wanted = f.status.upper()
        result = [o for o in result if o.status == wanted]

    if f.search:
        query = f.search.lower()
        result = [
            o for o in result
            if (o.customer and query in (o.customer.name or "").lower())
            or (o.customer and query in (o.customer.email or "").lower())
            or query in str(o.id)
        ]

    if f.start:
        since = datetime.combine(f.start, time.min)
        result = [o for o in result if o.created_at >= since]
    if f.end:
        until = datetime.combine(f.end, time(23, 59, 59))
        result = [o for o in result if o.created_at <= until]

    if f.table is not None:
        result = [o for o in result if o.table_number == f.table]
    if f.chef_id is not None:
        result = [o for o in result if o.chef and o.chef.id == f.chef_id]
    if f.waiter_id is not None:
        result = [o for o in result if o.waiter and o.waiter.id == f.waiter_id]
    if f.payment_status:
        result = [o for o in result if o.payment_status == f.payment_status]

    return sort_orders(result, f.sort or "date-desc")


def sort_orders(orders: List[Order], key: SortKey) -> List[Order]:
    if key == "date-desc":
        return sorted(orders, key=lambda o: o.created_at, reverse=True)
    if key == "date-asc":
        return sorted(orders, key=lambda o: o.created_at)
    if key == "total-desc":
        return sorted(orders, key=lambda o: o.total or 0, reverse=True)
    if key == "total-asc":
        return sorted(orders, key=lambda o: o.total or 0)
    if key == "status":
        return sorted(orders, key=lambda o: o.status)
    return list(orders)


def current_orders(orders: List[Order]) -> List[Order]:
    return [o for o in orders if o.status in CURRENT_ORDER_STATUSES]


def past_orders(orders: List[Order]) -> List[Order]:
    return [o for o in orders if o.status in PAST_ORDER_STATUSES]


def apply_date_window(orders: List[Order], window: DateWindow, now: datetime) -> List[Order]:
    if window == "7days":
        since = now - timedelta(days=7)
    elif window == "30days":
        since = now - timedelta(days=30)
    else:
        return list(orders)
    return [o for o in orders if o.created_at >= since]


def group_by_date(orders: List[Order], now: datetime) -> Dict[str, List[Order]]:
    """Bucket orders into today / yesterday / last_week / older."""
    today = now.date()
    yesterday = today - timedelta(days=1)
    last_week = datetime.combine(today - timedelta(days=7), time.min)

    groups: Dict[str, List[Order]] = {"today": [], "yesterday": [], "last_week": [], "older": []}
    for order in orders:
        day = order.created_at.date()
        if day == today:
            groups["today"].append(order)
        elif day == yesterday:
            groups["yesterday"].append(order)
        elif order.created_at >= last_week:
            groups["last_week"].append(order)
        else:
            groups["older"].append(order)
    return groups


# -----------------------
# Stats + reports
# -----------------------
class OrderStats(BaseModel):
    pending: int = 0
    preparing: int = 0
    ready: int = 0
    completed: int = 0
    cancelled: int = 0
    total: int = 0
    today_sales: float = 0.0
    avg_order_value: float = 0.0


def order_stats(orders: List[Order], today: date) -> OrderStats:
    counts = count_by_status(orders)
    revenue = sum(o.total or 0 for o in orders)
    return OrderStats(
        pending=counts["PENDING"],
        preparing=counts["PREPARING"],
        ready=counts["READY"],
        completed=counts["COMPLETED"],
        cancelled=counts["CANCELLED"],
        total=len(orders),
        today_sales=sum(o.total or 0 for o in orders if o.created_at.date() == today),
        avg_order_value=revenue / len(orders) if orders else 0.0,
    )


def count_by_status(orders: List[Order]) -> Dict[str, int]:
    counts = {s: 0 for s in STATUS_KEYS}
    for o in orders:
        if o.status in counts:
            counts[o.status] += 1
    return counts


class TopItem(BaseModel):
    name: str
    count: int


class DayRevenue(BaseModel):
    day: date
    revenue: float


class TopCustomer(BaseModel):
    name: str
    email: Optional[str] = None
    revenue: float = 0.0
    orders: int = 0


class Report(BaseModel):
    start: date
    end: date
    total_revenue: float = 0.0
    total_orders: int = 0
    avg_order_value: float = 0.0
    orders_by_status: Dict[str, int] = {}
    top_items: List[TopItem] = []
    revenue_by_day: List[DayRevenue] = []
    top_customers: List[TopCustomer] = []


def build_report(orders: List[Order], start: date, end: date) -> Report:
    in_range = filter_orders(orders, OrderFilter(start=start, end=end, sort="date-asc"))

    total_revenue = sum(o.total or 0 for o in in_range)

    item_count: Dict[str, int] = defaultdict(int)
    by_day: Dict[date, float] = defaultdict(float)
    customers: Dict[int, TopCustomer] = {}
    for order in in_range:
        for item in order.items:
            name = item.menu_item.name if item.menu_item else "Unknown Item"
            item_count[name] += item.quantity
        by_day[order.created_at.date()] += order.total or 0
        if order.customer and order.customer.id is not None:
            c = customers.setdefault(
                order.customer.id,
                TopCustomer(name=order.customer.name or "Unknown", email=order.customer.email),
            )
            c.revenue += order.total or 0
            c.orders += 1

    top_items = sorted(item_count.items(), key=lambda kv: kv[1], reverse=True)[:5]

    return Report(
        start=start,
        end=end,
        total_revenue=total_revenue,
        total_orders=len(in_range),
        avg_order_value=total_revenue / len(in_range) if in_range else 0.0,
        orders_by_status=count_by_status(in_range),
        top_items=[TopItem(name=n, count=c) for n, c in top_items],
        revenue_by_day=[DayRevenue(day=d, revenue=r) for d, r in sorted(by_day.items())],
        top_customers=sorted(customers.values(), key=lambda c: c.revenue, reverse=True)[:5],
    )


# -----------------------
# CSV export
# -----------------------
def _cell(value):
    # one record per line, even for names typed with line breaks
    if isinstance(value, str):
        return " ".join(value.splitlines())
    return value


def _to_csv(rows: List[list]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerows([_cell(v) for v in row] for row in rows)
    return buf.getvalue().rstrip("\n")


def orders_to_csv(orders: List[Order]) -> str:
    rows = [CSV_HEADERS]
    for o in orders:
        rows.append([
            o.id,
            o.customer.name if o.customer and o.customer.name else "",
            o.customer.email if o.customer and o.customer.email else "",
            o.table_number or "",
            o.status,
            o.total or 0,
            o.payment_status or "UNPAID",
            o.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            o.chef.name if o.chef and o.chef.name else "",
            o.waiter.name if o.waiter and o.waiter.name else "",
        ])
    return _to_csv(rows)


def report_to_csv(report: Report) -> str:
    rows = [
        ["Metric", "Value"],
        ["Total Revenue", f"${report.total_revenue:.2f}"],
        ["Total Orders", report.total_orders],
        ["Average Order Value", f"${report.avg_order_value:.2f}"],
        ["Pending Orders", report.orders_by_status.get("PENDING", 0)],
        ["Completed Orders", report.orders_by_status.get("COMPLETED", 0)],
        ["Cancelled Orders", report.orders_by_status.get("CANCELLED", 0)],
    ]
    return _to_csv(rows)
