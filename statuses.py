from typing import Dict, NamedTuple


class StatusStyle(NamedTuple):
    color: str
    icon: str
    label: str


UNKNOWN_COLOR = "#757575"

ORDER_STATUS: Dict[str, StatusStyle] = {
    "PENDING": StatusStyle("#ff9800", "⏳", "Pending"),
    "PREPARING": StatusStyle("#2196f3", "👨‍🍳", "Being Prepared"),
    "READY": StatusStyle("#4caf50", "🔔", "Ready"),
    "SERVED": StatusStyle("#9c27b0", "🍽", "Served"),
    "COMPLETED": StatusStyle("#4caf50", "✓", "Completed"),
    "CANCELLED": StatusStyle("#f44336", "✗", "Cancelled"),
}

BOOKING_STATUS: Dict[str, StatusStyle] = {
    "CONFIRMED": StatusStyle("#2196f3", "📅", "Confirmed"),
    "ACTIVE": StatusStyle("#4caf50", "🍽", "Active"),
    "COMPLETED": StatusStyle("#757575", "✓", "Completed"),
    "CANCELLED": StatusStyle("#f44336", "✗", "Cancelled"),
    "NO_SHOW": StatusStyle("#9e9e9e", "⊘", "No Show"),
}

REFUND_STATUS: Dict[str, StatusStyle] = {
    "NONE": StatusStyle(UNKNOWN_COLOR, "", "No refund"),
    "PENDING": StatusStyle("#ff9800", "⏳", "Refund Pending"),
    "COMPLETED": StatusStyle("#4caf50", "✓", "Refunded"),
}

KINDS = {
    "order": ORDER_STATUS,
    "booking": BOOKING_STATUS,
    "refund": REFUND_STATUS,
}


def style_for(kind: str, status) -> StatusStyle:
    status = status or ""
    return KINDS[kind].get(status, StatusStyle(UNKNOWN_COLOR, "•", status.title()))


def payment_label(order) -> str:
    # payment is taken at checkout; a cancelled order has been refunded
    return "Refunded" if order.status == "CANCELLED" else "Paid"
