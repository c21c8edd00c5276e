from __future__ import annotations

import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from flask import Blueprint, current_app, flash, g, redirect, render_template, request, session, url_for

from app.crm.api_client import ApiError, api_client
from app.crm.audit import record_event
from app.crm.schema import Reader, SchemaError, ValidationError

bp = Blueprint("auth", __name__)
_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds

SESSION_KEY = "auth"


@dataclass(frozen=True)
class StaffUser:
    id: str
    email: str
    first_name: str
    last_name: str | None
    role: str | None

    @property
    def display_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p) or self.email

    @classmethod
    def from_api(cls, raw: Any) -> "StaffUser":
        r = Reader("user", raw)
        user_id = r.identifier("id")
        email = r.email("email")
        first_name = r.string("firstName", optional=True) or ""
        last_name = r.string("lastName", optional=True, nullable=True)
        role = r.string("role", optional=True, nullable=True)
        r.check()
        # Unknown roles are kept so the permission gate can deny them.
        return cls(id=str(user_id), email=str(email), first_name=first_name, last_name=last_name, role=role)

    def to_session(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "role": self.role,
        }


def _check_rate_limit(ip: str) -> bool:
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=_LOGIN_RATE_WINDOW)
    _login_attempts[ip] = [t for t in _login_attempts[ip] if t > cutoff]
    return len(_login_attempts[ip]) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts[ip].append(datetime.utcnow())


def set_auth(user: StaffUser, token: str) -> None:
    session[SESSION_KEY] = {"user": user.to_session(), "token": token}
    g.current_user = user
    g.api_token = token


def clear_auth() -> None:
    session.pop(SESSION_KEY, None)
    g.current_user = None
    g.api_token = None


def load_current_user() -> None:
    """
    Rebuilds g.current_user and g.api_token from the signed session cookie.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    g.current_user = None
    g.api_token = None
    if request.path.startswith(("/static/", "/health", "/healthz")):
        return

    stored = session.get(SESSION_KEY)
    if not stored:
        return
    token = stored.get("token") if isinstance(stored, dict) else None
    if not token:
        session.pop(SESSION_KEY, None)
        return
    try:
        g.current_user = StaffUser.from_api(stored.get("user"))
        g.api_token = token
    except SchemaError as e:
        current_app.logger.warning("Discarding malformed session user (request_id=%s): %s", g.request_id, e)
        session.pop(SESSION_KEY, None)


def _safe_next(nxt: str) -> str | None:
    # Only local paths; avoids open redirects.
    if nxt.startswith("/") and not nxt.startswith("//"):
        return nxt
    return None


@bp.get("/login")
def login_get():
    if getattr(g, "current_user", None):
        return redirect(url_for("routes.index"))
    nxt = (request.args.get("next") or "").strip()
    return render_template("auth/login.html", next=nxt)


@bp.post("/login")
def login_post():
    email = (request.form.get("email") or "").strip().lower()
    password = request.form.get("password") or ""
    nxt = (request.form.get("next") or "").strip()
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        flash("Too many login attempts. Please wait 5 minutes.", "danger")
        return redirect(url_for("auth.login_get", next=nxt or None))

    _record_attempt(ip)

    if not email or not password:
        flash("Email and password are required.", "danger")
        return redirect(url_for("auth.login_get", next=nxt or None))

    try:
        result = api_client().with_token(None).login(email=email, password=password)
        user = StaffUser.from_api(result.get("user"))
        token = result.get("token")
        if not token or not isinstance(token, str):
            raise SchemaError("login response", [ValidationError("token", "Field is required.")])
    except ApiError as e:
        current_app.logger.info("Login rejected (email=%s status=%s)", email, e.status)
        record_event(
            actor=None,
            action="auth.login_failed",
            entity_type="User",
            entity_id=email,
            reason=e.message[:512],
            metadata={"email": email, "status": e.status},
        )
        if e.status is not None and e.status < 500:
            flash("Invalid credentials.", "danger")
        else:
            flash("Login service unavailable. Please try again.", "danger")
        return redirect(url_for("auth.login_get", next=nxt or None))
    except SchemaError as e:
        current_app.logger.error("Login response malformed (email=%s request_id=%s): %s", email, g.request_id, e)
        flash("Login failed: unexpected response from the server.", "danger")
        return redirect(url_for("auth.login_get", next=nxt or None))

    session.clear()
    session.permanent = True
    set_auth(user, token)
    _login_attempts[ip].clear()
    record_event(actor=user, action="auth.login", entity_type="User", entity_id=user.id)
    target = _safe_next(nxt)
    if target:
        return redirect(target)
    return redirect(url_for("routes.index"))


@bp.post("/logout")
def logout():
    user = getattr(g, "current_user", None)
    if user:
        record_event(actor=user, action="auth.logout", entity_type="User", entity_id=user.id)
    clear_auth()
    return redirect(url_for("auth.login_get"))
