from __future__ import annotations

from flask import Blueprint, current_app, flash, g, redirect, render_template, request, url_for

from app.crm.api_client import ApiError, ApiUnauthorized
from app.crm.modules.invite.service import (
    MIN_PASSWORD_LENGTH,
    invite_payload_from_form,
    invite_user,
    validate_invite_payload,
)
from app.crm.rbac import INVITE_USERS, ROLE_CUSTOMER_SERVICE, ROLES, require_permission

bp = Blueprint("invite", __name__)


def _render_form(form: dict | None = None, errors: list | None = None, status: int = 200):
    form = form or {"role": ROLE_CUSTOMER_SERVICE}
    return (
        render_template(
            "invite/form.html",
            form=form,
            errors=errors or [],
            roles=ROLES,
            min_password_length=MIN_PASSWORD_LENGTH,
        ),
        status,
    )


@bp.get("/invite")
@require_permission(INVITE_USERS)
def invite_get():
    return _render_form()


@bp.post("/invite")
@require_permission(INVITE_USERS)
def invite_post():
    payload = invite_payload_from_form(request.form)
    # The password is never echoed back into the form.
    sticky = {k: v for k, v in payload.items() if k != "password"}

    errs = validate_invite_payload(payload)
    if errs:
        return _render_form(sticky, errs, 400)

    try:
        invited = invite_user(payload, user=g.current_user)
    except ApiUnauthorized:
        raise
    except ApiError as e:
        current_app.logger.warning("Invite failed (email=%s request_id=%s): %s", payload["email"], g.request_id, e)
        flash(e.message or "Failed to invite user", "danger")
        return _render_form(sticky, status=400 if (e.status or 500) < 500 else 502)

    flash(f"Successfully invited {invited.email} as {invited.role or payload['role']}", "success")
    return redirect(url_for("invite.invite_get"))
