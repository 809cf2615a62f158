from models import Order
from statuses import UNKNOWN_COLOR, payment_label, style_for

from conftest import order_json


def test_known_statuses_share_one_mapping():
    assert style_for("order", "PENDING").label == "Pending"
    assert style_for("booking", "CONFIRMED").color == "#2196f3"
    assert style_for("refund", "COMPLETED").label == "Refunded"
    assert style_for("order", "SERVED").label == "Served"
    assert style_for("booking", "NO_SHOW").label == "No Show"


def test_unknown_status_falls_back_to_grey():
    style = style_for("order", "ON_HOLD")
    assert style.color == UNKNOWN_COLOR
    assert style.label == "On_Hold"
    assert style_for("booking", None).color == UNKNOWN_COLOR


def test_payment_label():
    assert payment_label(Order.model_validate(order_json(status="CANCELLED"))) == "Refunded"
    assert payment_label(Order.model_validate(order_json(status="READY"))) == "Paid"
