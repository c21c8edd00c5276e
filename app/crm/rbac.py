from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import abort, flash, g, redirect, request, url_for

INVITE_USERS = "invite_users"
VIEW_CUSTOMERS = "view_customers"
VIEW_TRANSACTIONS = "view_transactions"
VIEW_DASHBOARD = "view_dashboard"

ROLE_ADMIN = "admin"
ROLE_CUSTOMER_SERVICE = "customer_service"

ROLES: dict[str, str] = {
    ROLE_ADMIN: "Admin",
    ROLE_CUSTOMER_SERVICE: "Customer Service",
}

ROLE_PERMISSIONS: dict[str, tuple[str, ...]] = {
    ROLE_ADMIN: (INVITE_USERS, VIEW_CUSTOMERS, VIEW_TRANSACTIONS, VIEW_DASHBOARD),
    ROLE_CUSTOMER_SERVICE: (VIEW_CUSTOMERS, VIEW_TRANSACTIONS, VIEW_DASHBOARD),
}


def has_permission(role: str | None, permission: str) -> bool:
    if not role:
        return False
    return permission in ROLE_PERMISSIONS.get(role, ())


def get_permissions(role: str | None) -> list[str]:
    if not role:
        return []
    return list(ROLE_PERMISSIONS.get(role, ()))


def user_has_permission(user: Any, permission: str) -> bool:
    if not user:
        return False
    return has_permission(getattr(user, "role", None), permission)


def require_permission(permission: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user = getattr(g, "current_user", None)
            # Unauthenticated → login, then back here.
            if not user:
                nxt = request.full_path or request.path
                if nxt.endswith("?"):
                    nxt = nxt[:-1]
                return redirect(url_for("auth.login_get", next=nxt))
            if not user_has_permission(user, permission):
                g.missing_permission = permission
                # Authenticated but unauthorized → back to the dashboard when it is reachable.
                if permission != VIEW_DASHBOARD and user_has_permission(user, VIEW_DASHBOARD):
                    flash("You do not have access to that page.", "danger")
                    return redirect(url_for("routes.index"))
                abort(403)
            return fn(*args, **kwargs)

        return wrapped

    return decorator
