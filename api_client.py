import os
import time
from typing import Any, Dict, List, Optional

import google.auth
import requests
from flask import current_app, g, session
from google.cloud import secretmanager
from pydantic import ValidationError

from models import (
    Booking, BookingStats, DashboardStats, Identity, MenuItem, Order, StaffMember,
)

# -----------------------
# Errors
# -----------------------
class JavaBiteError(Exception):
    """Base for every failure surfaced to the user as one message."""
    retryable = False

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class PreconditionError(JavaBiteError):
    """Client-side check failed; the user has to act, nothing was sent."""


class TransportError(JavaBiteError):
    """Backend unreachable or timed out."""
    retryable = True


class ApiError(JavaBiteError):
    """Backend answered with a non-2xx status."""


class NotAuthenticated(ApiError):
    pass


# -----------------------
# Secrets
# -----------------------
def get_secret(name: str) -> str | None:
    """
    Read a secret from Google Secret Manager.
    Falls back to environment variable for local development.
    """
    env_val = os.environ.get(name)
    if env_val:
        return env_val

    try:
        creds, project_id = google.auth.default()
        if not project_id:
            project_id = os.environ.get("GOOGLE_CLOUD_PROJECT")

        if not project_id:
            return None

        client = secretmanager.SecretManagerServiceClient(credentials=creds)
        secret_path = f"projects/{project_id}/secrets/{name}/versions/latest"
        resp = client.access_secret_version(request={"name": secret_path})
        return resp.payload.data.decode("utf-8").strip()

    except Exception as e:
        print(f"[API] Secret Manager read failed for {name}: {e}")
        return None


def _parse(model, data):
    try:
        return model.model_validate(data)
    except ValidationError as e:
        print(f"[API] unexpected {model.__name__} payload: {e}")
        raise ApiError("Unexpected response from JavaBite") from e


def _many(model, data) -> list:
    if not isinstance(data, list):
        return []
    return [_parse(model, d) for d in data]


def _one(model, data):
    if not isinstance(data, dict):
        return None
    return _parse(model, data)


# -----------------------
# Client
# -----------------------
class JavaBiteClient:
    """
    Thin wrapper over the JavaBite REST backend.

    Credentials travel as the backend session cookie only. ``http`` is a
    ``requests.Session`` (or anything with the same ``request``/``cookies``
    surface) so the cookie jar can be saved between requests.
    """

    def __init__(
        self,
        base_url: str,
        http: Optional[requests.Session] = None,
        timeout: float = 10,
        max_retries: int = 3,
        retry_sleep: float = 1.0,
        cookies: Optional[Dict[str, str]] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.http = http if http is not None else requests.Session()
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_sleep = retry_sleep
        if cookies:
            self.http.cookies.update(cookies)

    def cookies(self) -> Dict[str, str]:
        return self.http.cookies.get_dict()

    def forget_cookies(self):
        self.http.cookies.clear()

    def _request(self, method: str, path: str, params=None, json=None) -> Any:
        url = f"{self.base_url}{path}"
        # only reads are repeated; a repeated POST could create a second order
        attempts = self.max_retries if method == "GET" else 1

        last_err = None
        for attempt in range(1, attempts + 1):
            try:
                resp = self.http.request(
                    method, url, params=params, json=json, timeout=self.timeout
                )
            except (requests.ConnectionError, requests.Timeout) as e:
                last_err = e
                print(f"[API] {method} {path} failed (attempt {attempt}/{attempts}): {e}")
                if attempt < attempts:
                    time.sleep(self.retry_sleep * attempt)
                continue
            return self._unwrap(resp)

        raise TransportError(f"Could not reach JavaBite. Please try again. ({last_err})")

    @staticmethod
    def _unwrap(resp: requests.Response) -> Any:
        if not resp.ok:
            message = None
            try:
                body = resp.json()
                if isinstance(body, dict):
                    message = body.get("message")
            except ValueError:
                pass
            message = message or f"HTTP error! status: {resp.status_code}"
            if resp.status_code == 401:
                raise NotAuthenticated(message, resp.status_code)
            raise ApiError(message, resp.status_code)

        if not resp.content:
            return None
        try:
            body = resp.json()
        except ValueError:
            return None
        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    # ============= AUTH =============
    def signup(self, name: str, email: str, password: str):
        return self._request(
            "POST", "/auth/signup", json={"name": name, "email": email, "password": password}
        )

    def login(self, email: str, password: str) -> Identity:
        data = self._request("POST", "/auth/login", json={"email": email, "password": password})
        return _parse(Identity, data)

    def logout(self):
        self._request("POST", "/auth/logout")

    def me(self) -> Identity:
        return _parse(Identity, self._request("GET", "/auth/me"))

    # ============= MENU =============
    def menu(self) -> List[MenuItem]:
        return _many(MenuItem, self._request("GET", "/menu"))

    def menu_item(self, item_id: int) -> Optional[MenuItem]:
        return _one(MenuItem, self._request("GET", f"/menu/{item_id}"))

    # ============= ORDERS =============
    def create_order(self, payload: Dict[str, Any]) -> Optional[Order]:
        return _one(Order, self._request("POST", "/orders", json=payload))

    def my_orders(self) -> List[Order]:
        return _many(Order, self._request("GET", "/orders/my-orders"))

    def order(self, order_id: int) -> Optional[Order]:
        return _one(Order, self._request("GET", f"/orders/{order_id}"))

    def cancel_order(self, order_id: int):
        return self._request("PUT", f"/orders/{order_id}/cancel")

    # ============= BOOKINGS =============
    def create_booking(self, table_number: int, booking_date: str, booking_time: str,
                       number_of_guests: int, special_requests: Optional[str] = None):
        payload = {
            "tableNumber": table_number,
            "bookingDate": booking_date,
            "bookingTime": booking_time,
            "numberOfGuests": number_of_guests,
        }
        if special_requests:
            payload["specialRequests"] = special_requests
        return _one(Booking, self._request("POST", "/bookings/create", json=payload))

    def my_bookings(self) -> List[Booking]:
        return _many(Booking, self._request("GET", "/bookings/my-bookings"))

    def check_availability(self, booking_date: str, booking_time: str):
        return self._request(
            "GET", "/bookings/check-availability",
            params={"date": booking_date, "time": booking_time},
        )

    def cancel_booking(self, booking_id: int):
        return self._request("PUT", f"/bookings/{booking_id}/cancel")

    def booking_history(self) -> List[Booking]:
        return _many(Booking, self._request("GET", "/customer/bookings/history"))

    def booking_stats(self) -> BookingStats:
        return _one(BookingStats, self._request("GET", "/customer/bookings/stats")) or BookingStats()

    def cancel_my_booking(self, booking_id: int, reason: Optional[str] = None):
        return self._request(
            "DELETE", f"/customer/bookings/{booking_id}/cancel",
            json={"reason": reason or "Cancelled by customer"},
        )

    # ============= ADMIN =============
    def dashboard_stats(self) -> DashboardStats:
        return _one(DashboardStats, self._request("GET", "/admin/dashboard/stats")) or DashboardStats()

    def pending_orders(self) -> List[Order]:
        return _many(Order, self._request("GET", "/admin/orders/pending"))

    def all_orders(self) -> List[Order]:
        return _many(Order, self._request("GET", "/admin/orders/all"))

    def assign_staff(self, order_id: int, chef_id: int, waiter_id: Optional[int] = None):
        return self._request(
            "POST", f"/admin/orders/{order_id}/assign",
            json={"chefId": chef_id, "waiterId": waiter_id},
        )

    def admin_cancel_order(self, order_id: int):
        return self._request("PUT", f"/admin/orders/{order_id}/cancel")

    def update_order_notes(self, order_id: int, notes: str):
        return self._request("PUT", f"/admin/orders/{order_id}/notes", json={"notes": notes})

    def refund_order(self, order_id: int):
        return self._request("POST", f"/admin/orders/{order_id}/refund")

    def chefs(self) -> List[StaffMember]:
        return _many(StaffMember, self._request("GET", "/admin/staff/chefs"))

    def waiters(self) -> List[StaffMember]:
        return _many(StaffMember, self._request("GET", "/admin/staff/waiters"))

    def create_staff(self, role: str, name: str, email: str, password: str):
        path = "/admin/create-chef" if role == "CHEF" else "/admin/create-waiter"
        return self._request("POST", path, json={"name": name, "email": email, "password": password})

    def toggle_staff(self, user_id: int):
        return self._request("PUT", f"/admin/staff/{user_id}/toggle")

    def delete_staff(self, user_id: int):
        return self._request("DELETE", f"/admin/staff/{user_id}")

    def admin_menu(self) -> List[MenuItem]:
        return _many(MenuItem, self._request("GET", "/admin/menu"))

    def create_menu_item(self, item: Dict[str, Any]):
        return self._request("POST", "/admin/menu", json=item)

    def update_menu_item(self, item_id: int, item: Dict[str, Any]):
        return self._request("PUT", f"/admin/menu/{item_id}", json=item)

    def delete_menu_item(self, item_id: int):
        return self._request("DELETE", f"/admin/menu/{item_id}")

    def all_bookings(self) -> List[Booking]:
        return _many(Booking, self._request("GET", "/bookings/admin/all"))

    def update_booking_status(self, booking_id: int, status: str):
        return self._request("PUT", f"/bookings/admin/{booking_id}/status", json={"status": status})

    # ============= CHEF =============
    def chef_new_orders(self) -> List[Order]:
        return _many(Order, self._request("GET", "/chef/orders/new"))

    def chef_active_orders(self) -> List[Order]:
        return _many(Order, self._request("GET", "/chef/orders/active"))

    def chef_completed_today(self) -> List[Order]:
        return _many(Order, self._request("GET", "/chef/orders/completed-today"))

    def start_preparation(self, order_id: int):
        return self._request("POST", f"/chef/orders/{order_id}/start")

    def mark_ready(self, order_id: int):
        return self._request("PUT", f"/chef/orders/{order_id}/ready")

    # ============= WAITER =============
    def waiter_preparing_orders(self) -> List[Order]:
        return _many(Order, self._request("GET", "/waiter/orders/preparing"))

    def waiter_ready_orders(self) -> List[Order]:
        return _many(Order, self._request("GET", "/waiter/orders/ready"))

    def mark_served(self, order_id: int):
        return self._request("PUT", f"/waiter/orders/{order_id}/serve")

    # ============= FEEDBACK =============
    def create_feedback(self, feedback: Dict[str, Any]):
        return self._request("POST", "/feedback", json=feedback)

    def can_submit_feedback(self, order_id: int) -> bool:
        data = self._request("GET", f"/feedback/can-submit/{order_id}")
        if isinstance(data, dict):
            return bool(data.get("canSubmit", data.get("allowed", False)))
        return bool(data)


# -----------------------
# Flask binding
# -----------------------
def resolve_base_url() -> str:
    url = current_app.config.get("JAVABITE_API_URL")
    if not url:
        url = get_secret("JAVABITE_API_URL")
        if not url:
            raise RuntimeError("JAVABITE_API_URL is not configured")
        current_app.config["JAVABITE_API_URL"] = url
    return url


def build_client(cookies: Optional[Dict[str, str]] = None) -> JavaBiteClient:
    cfg = current_app.config
    factory = cfg.get("HTTP_SESSION_FACTORY") or requests.Session
    return JavaBiteClient(
        resolve_base_url(),
        http=factory(),
        timeout=cfg["API_TIMEOUT_SECONDS"],
        max_retries=cfg["API_MAX_RETRIES"],
        retry_sleep=cfg["API_RETRY_SLEEP_SECONDS"],
        cookies=cookies,
    )


def get_client() -> JavaBiteClient:
    """Client for the current request, carrying the user's backend cookies."""
    if "javabite" not in g:
        g.javabite = build_client(session.get("api_cookies"))
    return g.javabite


def _persist_cookies(response):
    client = g.pop("javabite", None)
    if client is not None:
        cookies = client.cookies()
        if cookies != session.get("api_cookies", {}):
            session["api_cookies"] = cookies
    return response


def init_app(app):
    app.after_request(_persist_cookies)
