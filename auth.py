from functools import wraps
from typing import Optional

from flask import session, redirect, url_for, flash, g

from api_client import get_client, NotAuthenticated, JavaBiteError
from models import Identity

# -----------------------
# Session store
# -----------------------
def current_user() -> Optional[Identity]:
    if "identity" not in g:
        data = session.get("user")
        g.identity = Identity.model_validate(data) if data else None
    return g.identity


def set_identity(user: Identity):
    session["user"] = user.model_dump()
    g.identity = user


def clear_identity():
    session.pop("user", None)
    session.pop("api_cookies", None)
    g.identity = None


def login(email: str, password: str) -> Identity:
    user = get_client().login(email, password)
    set_identity(user)
    return user


def logout():
    client = get_client()
    try:
        client.logout()
    except JavaBiteError as e:
        # the local session is dropped either way
        print(f"[Auth] logout call failed: {e.message}")
    finally:
        client.forget_cookies()
        clear_identity()


def probe_identity():
    """Restore the identity through the "who am I" call when only backend cookies survive."""
    if session.get("user") or not session.get("api_cookies"):
        return
    try:
        set_identity(get_client().me())
    except NotAuthenticated:
        get_client().forget_cookies()
        clear_identity()
    except JavaBiteError as e:
        print(f"[Auth] identity probe failed: {e.message}")


# -----------------------
# Decorators
# -----------------------
def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if current_user() is None:
            flash("Please login first.")
            return redirect(url_for("web.login"))
        return fn(*args, **kwargs)
    return wrapper


def role_required(*roles):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = current_user()
            if user is None:
                flash("Please login first.")
                return redirect(url_for("web.login"))
            if user.role not in roles:
                flash("You do not have access to that page.")
                return redirect(url_for("web.menu"))
            return fn(*args, **kwargs)
        return wrapper
    return decorator


admin_required = role_required("ADMIN")
