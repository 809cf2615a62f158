from flask import Blueprint, jsonify, request, session

from api_client import JavaBiteError, get_client
from booking import TOTAL_TABLES, BookingProber
from cart import Cart

api = Blueprint("api", __name__, url_prefix="/api")


@api.errorhandler(JavaBiteError)
def backend_error(e: JavaBiteError):
    status = e.status if e.status and e.status >= 400 else 502
    return jsonify({"ok": False, "message": e.message}), status


@api.get("/menu")
def get_menu():
    items = get_client().menu()
    category = request.args.get("category", "").strip().upper()
    if category:
        items = [i for i in items if i.category == category]
    return jsonify([i.model_dump(by_alias=True) for i in items])


@api.get("/cart")
def get_cart():
    return jsonify(Cart.from_session(session).summary())


@api.get("/tables")
def get_tables():
    prober = BookingProber(get_client(), TOTAL_TABLES)
    tables = prober.check_availability(request.args.get("date"), request.args.get("time"))
    return jsonify([{"tableNumber": t.table_number, "status": t.status} for t in tables])
