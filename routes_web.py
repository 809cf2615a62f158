import secrets
from datetime import date, datetime, timedelta

from flask import (
    Blueprint, Response, current_app, flash, redirect, render_template,
    request, session, url_for,
)
from pydantic import ValidationError

import auth
from api_client import JavaBiteError, PreconditionError, get_client
from auth import admin_required, login_required, role_required
from booking import TOTAL_TABLES, BookingProber, split_history
from cart import Cart
from dashboards import (
    AdminDashboard, AssignForm, ChefDashboard, CustomerDashboard, MENU_CATEGORIES,
    WaiterDashboard,
)
from event_log import record
from history import OrderFilter, group_by_date
from ordering import CheckoutState, OrderPlacement

web = Blueprint("web", __name__)

HOME_BY_ROLE = {
    "ADMIN": "web.admin_dashboard",
    "CHEF": "web.chef_dashboard",
    "WAITER": "web.waiter_dashboard",
}


def _now() -> datetime:
    return datetime.now()


def _confirmed() -> bool:
    return request.form.get("confirm") == "yes"


def _notices(dash):
    """Hand the dashboard outcome to the next page as flash messages."""
    if dash.success:
        flash(dash.success, "success")
    if dash.error:
        flash(dash.error, "error")


def _not_confirmed():
    flash("Please confirm this action first.", "error")


def _int_or_none(value):
    value = (value or "").strip()
    return int(value) if value.isdigit() else None


# -----------------------
# Home
# -----------------------
@web.get("/")
def index():
    return render_template("index.html")


# -----------------------
# Auth
# -----------------------
@web.route("/register", methods=["GET", "POST"])
def register():
    if request.method == "POST":
        name = request.form.get("name", "").strip()
        email = request.form.get("email", "").strip().lower()
        pw = request.form.get("password", "")

        if not name or not email or not pw:
            flash("Name, email and password are required.", "error")
            return redirect(url_for("web.register"))

        try:
            get_client().signup(name, email, pw)
        except JavaBiteError as e:
            flash(e.message, "error")
            return redirect(url_for("web.register"))

        flash("Account created. Please login.", "success")
        return redirect(url_for("web.login"))

    return render_template("register.html")


@web.route("/login", methods=["GET", "POST"])
def login():
    if request.method == "POST":
        email = request.form.get("email", "").strip().lower()
        pw = request.form.get("password", "")

        try:
            user = auth.login(email, pw)
        except JavaBiteError as e:
            flash(e.message or "Invalid login.", "error")
            return redirect(url_for("web.login"))

        flash(f"Welcome back, {user.name}!", "success")
        return redirect(url_for(HOME_BY_ROLE.get(user.role, "web.menu")))

    return render_template("login.html")


@web.get("/logout")
def logout():
    auth.logout()
    flash("Logged out.", "success")
    return redirect(url_for("web.index"))


# -----------------------
# Menu (with category filter)
# -----------------------
@web.get("/menu")
def menu():
    selected = request.args.get("category", "").strip().upper()

    try:
        items = get_client().menu()
    except JavaBiteError as e:
        flash(e.message, "error")
        items = []

    categories = sorted({i.category for i in items if i.category})
    if selected:
        items = [i for i in items if i.category == selected]

    return render_template(
        "menu.html", items=items, categories=categories, selected=selected,
        cart=Cart.from_session(session),
    )


# -----------------------
# Cart
# -----------------------
@web.post("/cart/add/<int:item_id>")
@login_required
def cart_add(item_id: int):
    try:
        item = get_client().menu_item(item_id)
    except JavaBiteError as e:
        flash(e.message, "error")
        return redirect(url_for("web.menu"))

    if item is None or not item.available:
        flash("That item is not available.", "error")
        return redirect(url_for("web.menu"))

    cart = Cart.from_session(session)
    cart.add(item)
    cart.save(session)
    flash(f"{item.name} added to cart.", "success")
    return redirect(url_for("web.menu"))


@web.get("/cart")
@login_required
def cart_view():
    return render_template("cart.html", cart=Cart.from_session(session))


@web.post("/cart/update/<int:item_id>")
@login_required
def cart_update(item_id: int):
    action = request.form.get("action", "")
    cart = Cart.from_session(session)

    if action == "inc":
        cart.change_quantity(item_id, 1)
    elif action == "dec":
        cart.change_quantity(item_id, -1)

    cart.save(session)
    return redirect(url_for("web.cart_view"))


@web.post("/cart/remove/<int:item_id>")
@login_required
def cart_remove(item_id: int):
    cart = Cart.from_session(session)
    cart.remove(item_id)
    cart.save(session)
    return redirect(url_for("web.cart_view"))


@web.post("/cart/coupon")
@login_required
def cart_coupon():
    cart = Cart.from_session(session)
    try:
        percent = cart.apply_coupon(request.form.get("code", ""))
        flash(f"Coupon {cart.coupon_code} applied! {percent}% discount", "success")
    except PreconditionError as e:
        flash(e.message, "error")
    cart.save(session)
    return redirect(url_for("web.cart_view"))


@web.post("/cart/coupon/remove")
@login_required
def cart_coupon_remove():
    cart = Cart.from_session(session)
    cart.remove_coupon()
    cart.save(session)
    return redirect(url_for("web.cart_view"))


# -----------------------
# Table booking
# -----------------------
@web.get("/book-table")
@login_required
def book_table():
    booking_date = request.args.get("date", "").strip()
    booking_time = request.args.get("time", "").strip()

    prober = BookingProber(get_client(), TOTAL_TABLES)
    try:
        tables = prober.check_availability(booking_date, booking_time)
    except JavaBiteError as e:
        flash(f"Failed to check availability: {e.message}", "error")
        tables = prober.statuses

    return render_template(
        "book_table.html",
        tables=tables,
        date=booking_date,
        time=booking_time,
        selected=_int_or_none(request.args.get("table")),
        today=date.today().isoformat(),
    )


@web.post("/book-table")
@login_required
def book_table_post():
    table_number = _int_or_none(request.form.get("table"))
    booking_date = request.form.get("date", "").strip()
    booking_time = request.form.get("time", "").strip()
    guests = _int_or_none(request.form.get("guests")) or 1
    special_requests = request.form.get("special_requests", "").strip() or None

    prober = BookingProber(get_client(), TOTAL_TABLES)
    try:
        booking = prober.create_booking(
            table_number, booking_date, booking_time, guests, special_requests
        )
    except JavaBiteError as e:
        # keep the selection so the customer can retry
        flash(e.message, "error")
        return redirect(url_for(
            "web.book_table", date=booking_date, time=booking_time, table=table_number
        ))

    record("BOOKING_CREATED", booking_id=booking.id if booking else None, details={
        "table_number": table_number, "date": booking_date, "time": booking_time,
    })
    flash(f"Table {table_number} booked successfully!", "success")
    return render_template(
        "booking_confirmed.html",
        booking=booking,
        table_number=table_number,
        redirect_seconds=current_app.config["BOOKING_REDIRECT_SECONDS"],
    )


# -----------------------
# Checkout
# -----------------------
@web.get("/checkout")
@login_required
def checkout():
    cart = Cart.from_session(session)
    if cart.is_empty():
        flash("Your cart is empty!", "error")
        return redirect(url_for("web.cart_view"))

    placement = OrderPlacement(get_client(), cart)
    placement.check_booking(date.today())

    token = secrets.token_urlsafe(16)
    session["checkout_token"] = token
    return render_template("checkout.html", cart=cart, placement=placement, token=token,
                           states=CheckoutState)


@web.post("/checkout")
@login_required
def checkout_post():
    # one token per rendered form: a second submit of the same form is refused
    token = request.form.get("token")
    if not token or token != session.pop("checkout_token", None):
        flash("This order form was already submitted.", "error")
        return redirect(url_for("web.orders"))

    cart = Cart.from_session(session)
    placement = OrderPlacement(get_client(), cart)
    if cart.is_empty():
        flash("Your cart is empty!", "error")
        return redirect(url_for("web.cart_view"))

    if placement.check_booking(date.today()) != CheckoutState.BOOKING_READY:
        flash(placement.error, "error")
        return redirect(url_for("web.checkout"))

    try:
        order = placement.place(request.form.get("special_instructions", "").strip())
    except PreconditionError as e:
        flash(e.message, "error")
        return redirect(url_for("web.checkout"))
    except JavaBiteError:
        flash(placement.error, "error")
        return redirect(url_for("web.checkout"))

    cart.save(session)
    order_id = order.id if order else None
    record("ORDER_PLACED", order_id=order_id, booking_id=placement.booking.id,
           details={"total": order.total if order else None})

    flash(f"Order #{order_id} placed successfully!", "success")
    return render_template(
        "order_placed.html",
        order=order,
        redirect_seconds=current_app.config["ORDER_REDIRECT_SECONDS"],
    )


# -----------------------
# Customer orders
# -----------------------
@web.get("/orders")
@login_required
def orders():
    tab = request.args.get("tab", "current")
    window = request.args.get("window", "all")
    now = _now()

    dash = CustomerDashboard(get_client())
    dash.refresh()
    if dash.error:
        flash(dash.error, "error")

    rows = dash.visible(tab, window, now)
    return render_template(
        "orders.html", tab=tab, window=window, orders=rows, groups=group_by_date(rows, now),
    )


@web.get("/orders/<int:order_id>")
@login_required
def order_detail(order_id: int):
    client = get_client()
    try:
        order = client.order(order_id)
    except JavaBiteError as e:
        flash(e.message, "error")
        return redirect(url_for("web.orders"))
    if order is None:
        flash("Order not found.", "error")
        return redirect(url_for("web.orders"))

    can_review = False
    if order.status == "COMPLETED":
        try:
            can_review = client.can_submit_feedback(order_id)
        except JavaBiteError as e:
            print(f"[Feedback] can-submit check failed: {e.message}")

    return render_template("order_detail.html", order=order, can_review=can_review)


@web.post("/orders/<int:order_id>/cancel")
@login_required
def order_cancel(order_id: int):
    if not _confirmed():
        _not_confirmed()
        return redirect(url_for("web.orders"))

    dash = CustomerDashboard(get_client(), refetch_after_action=False)
    if dash.cancel_order(order_id):
        record("ORDER_CANCELLED_BY_CUSTOMER", order_id=order_id)
    _notices(dash)
    return redirect(url_for("web.orders"))


@web.post("/orders/<int:order_id>/reorder")
@login_required
def order_reorder(order_id: int):
    try:
        order = get_client().order(order_id)
    except JavaBiteError as e:
        flash(e.message, "error")
        return redirect(url_for("web.orders"))
    if order is None:
        flash("Order not found.", "error")
        return redirect(url_for("web.orders"))

    cart = Cart.from_session(session)
    cart.extend_from_order(order)
    cart.save(session)
    flash("Items added to cart!", "success")
    return redirect(url_for("web.cart_view"))


@web.post("/orders/<int:order_id>/feedback")
@login_required
def order_feedback(order_id: int):
    client = get_client()
    try:
        allowed = client.can_submit_feedback(order_id)
    except JavaBiteError as e:
        flash(e.message, "error")
        return redirect(url_for("web.order_detail", order_id=order_id))
    if not allowed:
        flash("Feedback has already been submitted for this order.", "error")
        return redirect(url_for("web.order_detail", order_id=order_id))

    form = request.form
    dash = CustomerDashboard(client, refetch_after_action=False)
    ok = dash.submit_feedback(
        order_id,
        _int_or_none(form.get("overall")),
        comment=form.get("comment"),
        would_recommend=form.get("would_recommend", "yes") == "yes",
        food=_int_or_none(form.get("food")),
        service=_int_or_none(form.get("service")),
        ambiance=_int_or_none(form.get("ambiance")),
        value=_int_or_none(form.get("value")),
    )
    if ok:
        record("FEEDBACK_SUBMITTED", order_id=order_id)
    _notices(dash)
    return redirect(url_for("web.order_detail", order_id=order_id))


# -----------------------
# Customer bookings
# -----------------------
@web.get("/bookings")
@login_required
def bookings():
    dash = CustomerDashboard(get_client())
    dash.refresh_bookings()
    if dash.error:
        flash(dash.error, "error")

    upcoming, past = split_history(dash.bookings, _now())
    return render_template("bookings.html", upcoming=upcoming, past=past, stats=dash.booking_stats)


@web.post("/bookings/<int:booking_id>/cancel")
@login_required
def booking_cancel(booking_id: int):
    if not _confirmed():
        _not_confirmed()
        return redirect(url_for("web.bookings"))

    dash = CustomerDashboard(get_client(), refetch_after_action=False)
    if dash.cancel_booking(booking_id, request.form.get("reason", "").strip() or None):
        record("BOOKING_CANCELLED", booking_id=booking_id)
    _notices(dash)
    return redirect(url_for("web.bookings"))


# -----------------------
# Chef
# -----------------------
@web.get("/chef")
@role_required("CHEF")
def chef_dashboard():
    now = _now()
    window = request.args.get("window", "all")
    dash = ChefDashboard(get_client(), tab=request.args.get("tab", "new"))
    dash.refresh()
    if dash.error:
        flash(dash.error, "error")

    return render_template(
        "chef.html", dash=dash, window=window, groups=dash.grouped(window, now),
        poll_seconds=current_app.config["CHEF_POLL_SECONDS"],
    )


@web.post("/chef/orders/<int:order_id>/start")
@role_required("CHEF")
def chef_start(order_id: int):
    dash = ChefDashboard(get_client(), tab="new", refetch_after_action=False)
    if dash.start_preparation(order_id):
        record("PREPARATION_STARTED", order_id=order_id)
    _notices(dash)
    return redirect(url_for("web.chef_dashboard", tab="new"))


@web.post("/chef/orders/<int:order_id>/ready")
@role_required("CHEF")
def chef_ready(order_id: int):
    dash = ChefDashboard(get_client(), tab="progress", refetch_after_action=False)
    if dash.mark_ready(order_id):
        record("ORDER_READY", order_id=order_id)
    _notices(dash)
    return redirect(url_for("web.chef_dashboard", tab="progress"))


# -----------------------
# Waiter
# -----------------------
@web.get("/waiter")
@role_required("WAITER")
def waiter_dashboard():
    dash = WaiterDashboard(get_client())
    dash.refresh()
    if dash.error:
        flash(dash.error, "error")

    return render_template(
        "waiter.html", dash=dash, poll_seconds=current_app.config["WAITER_POLL_SECONDS"],
    )


@web.post("/waiter/orders/<int:order_id>/serve")
@role_required("WAITER")
def waiter_serve(order_id: int):
    if not _confirmed():
        _not_confirmed()
        return redirect(url_for("web.waiter_dashboard"))

    dash = WaiterDashboard(get_client(), refetch_after_action=False)
    if dash.mark_served(order_id):
        record("ORDER_SERVED", order_id=order_id)
    _notices(dash)
    return redirect(url_for("web.waiter_dashboard"))


# -----------------------
# Admin
# -----------------------
def _admin(tab: str, acting: bool = False) -> AdminDashboard:
    return AdminDashboard(get_client(), tab=tab, refetch_after_action=not acting)


def _back_to(tab: str):
    return redirect(url_for("web.admin_dashboard", tab=tab))


def _order_filter() -> OrderFilter:
    try:
        return OrderFilter.model_validate(request.args.to_dict())
    except ValidationError:
        flash("Some filters were invalid and have been ignored.", "error")
        return OrderFilter()


def _report_range():
    today = date.today()
    try:
        start = date.fromisoformat(request.args.get("start") or "")
    except ValueError:
        start = today - timedelta(days=30)
    try:
        end = date.fromisoformat(request.args.get("end") or "")
    except ValueError:
        end = today
    return start, end


@web.get("/admin")
@admin_required
def admin_dashboard():
    dash = _admin(request.args.get("tab", "dashboard"))
    dash.refresh()
    if dash.error:
        flash(dash.error, "error")

    saved = session.pop("assign_form", None)
    if saved:
        dash.assign_form = AssignForm(**saved)

    context = {
        "dash": dash,
        "poll_seconds": current_app.config["ADMIN_POLL_SECONDS"],
        "categories": MENU_CATEGORIES,
    }
    if dash.tab == "history":
        f = _order_filter()
        context.update(order_filter=f, orders=dash.filtered_orders(f), stats=dash.order_stats(date.today()))
    elif dash.tab == "reports":
        start, end = _report_range()
        context.update(report=dash.report(start, end))
    elif dash.tab == "bookings":
        status = request.args.get("status", "all")
        context.update(status=status, bookings=dash.bookings_with_status(status))

    return render_template("admin.html", **context)


# orders
@web.post("/admin/orders/<int:order_id>/assign")
@admin_required
def admin_assign(order_id: int):
    dash = _admin("orders", acting=True)
    chef_id = _int_or_none(request.form.get("chef_id"))
    waiter_id = _int_or_none(request.form.get("waiter_id"))
    if dash.assign(order_id, chef_id, waiter_id):
        record("ORDER_ASSIGNED", order_id=order_id,
               details={"chef_id": chef_id, "waiter_id": waiter_id})
    else:
        # the form is shown again with the same choices
        session["assign_form"] = dash.assign_form._asdict()
    _notices(dash)
    return _back_to("orders")


@web.post("/admin/orders/<int:order_id>/cancel")
@admin_required
def admin_order_cancel(order_id: int):
    if not _confirmed():
        _not_confirmed()
        return _back_to("history")

    dash = _admin("history", acting=True)
    if dash.cancel_order(order_id):
        record("ORDER_CANCELLED_BY_ADMIN", order_id=order_id)
    _notices(dash)
    return _back_to("history")


@web.post("/admin/orders/<int:order_id>/notes")
@admin_required
def admin_order_notes(order_id: int):
    dash = _admin("history", acting=True)
    dash.update_notes(order_id, request.form.get("notes", "").strip())
    _notices(dash)
    return _back_to("history")


@web.post("/admin/orders/<int:order_id>/refund")
@admin_required
def admin_order_refund(order_id: int):
    if not _confirmed():
        _not_confirmed()
        return _back_to("history")

    dash = _admin("history", acting=True)
    dash.fetch_all_orders()
    if dash.refund_order(order_id):
        record("ORDER_REFUNDED", order_id=order_id)
    _notices(dash)
    return _back_to("history")


@web.get("/admin/orders.csv")
@admin_required
def admin_orders_csv():
    dash = _admin("history")
    dash.fetch_all_orders()
    body = dash.export_orders_csv(_order_filter())
    filename = f"orders-{date.today().isoformat()}.csv"
    return Response(
        body, mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@web.get("/admin/reports.csv")
@admin_required
def admin_report_csv():
    start, end = _report_range()
    dash = _admin("reports")
    dash.fetch_all_orders()
    filename = f"report-{start.isoformat()}-to-{end.isoformat()}.csv"
    return Response(
        dash.export_report_csv(start, end), mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


# staff
@web.post("/admin/staff/create")
@admin_required
def admin_staff_create():
    dash = _admin("staff", acting=True)
    dash.create_staff(
        request.form.get("role", "").strip().upper(),
        request.form.get("name", "").strip(),
        request.form.get("email", "").strip().lower(),
        request.form.get("password", ""),
    )
    _notices(dash)
    return _back_to("staff")


@web.post("/admin/staff/<int:user_id>/toggle")
@admin_required
def admin_staff_toggle(user_id: int):
    dash = _admin("staff", acting=True)
    dash.toggle_staff(user_id)
    _notices(dash)
    return _back_to("staff")


@web.post("/admin/staff/<int:user_id>/delete")
@admin_required
def admin_staff_delete(user_id: int):
    if not _confirmed():
        _not_confirmed()
        return _back_to("staff")

    dash = _admin("staff", acting=True)
    dash.delete_staff(user_id)
    _notices(dash)
    return _back_to("staff")


# menu
@web.post("/admin/menu/create")
@admin_required
def admin_menu_create():
    dash = _admin("products", acting=True)
    dash.save_menu_item(_menu_form())
    _notices(dash)
    return _back_to("products")


@web.post("/admin/menu/<int:item_id>/update")
@admin_required
def admin_menu_update(item_id: int):
    dash = _admin("products", acting=True)
    dash.save_menu_item(_menu_form(), item_id)
    _notices(dash)
    return _back_to("products")


@web.post("/admin/menu/<int:item_id>/delete")
@admin_required
def admin_menu_delete(item_id: int):
    if not _confirmed():
        _not_confirmed()
        return _back_to("products")

    dash = _admin("products", acting=True)
    dash.delete_menu_item(item_id)
    _notices(dash)
    return _back_to("products")


def _menu_form() -> dict:
    form = request.form
    return {
        "name": form.get("name", ""),
        "description": form.get("description", ""),
        "price": form.get("price", ""),
        "category": form.get("category", "COFFEE"),
        "imageUrl": form.get("image_url", ""),
        "available": form.get("available") == "on",
    }


# bookings
@web.post("/admin/bookings/<int:booking_id>/status")
@admin_required
def admin_booking_status(booking_id: int):
    dash = _admin("bookings", acting=True)
    dash.fetch_bookings()
    status = request.form.get("status", "").strip().upper()
    if dash.update_booking_status(booking_id, status):
        record("BOOKING_STATUS_CHANGED", booking_id=booking_id, status=status)
    _notices(dash)
    return _back_to("bookings")


@web.post("/admin/bookings/<int:booking_id>/cancel")
@admin_required
def admin_booking_cancel(booking_id: int):
    if not _confirmed():
        _not_confirmed()
        return _back_to("bookings")

    dash = _admin("bookings", acting=True)
    if dash.cancel_booking(booking_id):
        record("BOOKING_CANCELLED", booking_id=booking_id)
    _notices(dash)
    return _back_to("bookings")
