"""
Firestore audit trail of what users do through the web app.

Each order or booking action becomes one document in ``EVENT_LOG_COLLECTION``
carrying who did it (email and role), which order or booking it touched and
the status it left that record in. Nothing is written unless
``EVENT_LOG_ENABLED`` is set, and a failed write never fails the view.
"""
import time
from typing import Any, Dict, Optional

from flask import current_app
from google.api_core.exceptions import GoogleAPICallError, RetryError
from google.auth.exceptions import DefaultCredentialsError
from google.cloud import firestore

from auth import current_user

# status an event leaves its order or booking in
STATUS_AFTER = {
    "ORDER_PLACED": "PENDING",
    "PREPARATION_STARTED": "PREPARING",
    "ORDER_READY": "READY",
    "ORDER_SERVED": "COMPLETED",
    "ORDER_CANCELLED_BY_CUSTOMER": "CANCELLED",
    "ORDER_CANCELLED_BY_ADMIN": "CANCELLED",
    "BOOKING_CREATED": "CONFIRMED",
    "BOOKING_CANCELLED": "CANCELLED",
}


class EventLogError(Exception):
    """Firestore kept failing for one event."""


def get_db() -> firestore.Client:
    db = current_app.extensions.get("javabite_firestore")
    if db is None:
        db = firestore.Client(database=current_app.config["FIRESTORE_DB_ID"])
        current_app.extensions["javabite_firestore"] = db
    return db


def build_event(event: str, order_id: Optional[int] = None, booking_id: Optional[int] = None,
                status: Optional[str] = None,
                details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    user = current_user()
    return {
        "event": event,
        "order_id": order_id,
        "booking_id": booking_id,
        "status": status or STATUS_AFTER.get(event),
        "actor_email": user.email if user else None,
        "actor_role": user.role if user else None,
        "details": details or {},
        "created_at": firestore.SERVER_TIMESTAMP,
    }


def write_event(doc: Dict[str, Any]) -> str:
    """Add ``doc`` to the event collection, retrying transient Firestore errors."""
    cfg = current_app.config
    attempts = max(1, cfg["EVENT_LOG_MAX_RETRIES"])
    events = get_db().collection(cfg["EVENT_LOG_COLLECTION"])

    last_err = None
    for attempt in range(1, attempts + 1):
        try:
            ref = events.document()
            ref.set(doc)
            return ref.id
        except (GoogleAPICallError, RetryError) as e:
            last_err = e
            print(f"[Firestore] {doc['event']} write failed (attempt {attempt}/{attempts}): {e}")
            if attempt < attempts:
                time.sleep(cfg["EVENT_LOG_RETRY_SLEEP_SECONDS"] * attempt)

    raise EventLogError(f"{doc['event']} not written after {attempts} attempts: {last_err}")


def record(event: str, order_id: Optional[int] = None, booking_id: Optional[int] = None,
           status: Optional[str] = None,
           details: Optional[Dict[str, Any]] = None) -> Optional[str]:
    if not current_app.config.get("EVENT_LOG_ENABLED"):
        return None

    doc = build_event(event, order_id, booking_id, status, details)
    try:
        doc_id = write_event(doc)
    except (EventLogError, DefaultCredentialsError) as e:
        print(f"[Firestore] {event} not recorded: {e}")
        return None

    print(f"[Firestore] recorded {event} (order={order_id}, booking={booking_id}): {doc_id}")
    return doc_id
