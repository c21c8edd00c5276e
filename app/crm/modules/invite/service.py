from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from app.crm.api_client import api_client
from app.crm.audit import record_event
from app.crm.rbac import ROLE_CUSTOMER_SERVICE, ROLES
from app.crm.schema import Reader, SchemaError, ValidationError, is_valid_email

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


@dataclass(frozen=True)
class InvitedUser:
    email: str
    role: str | None

    @classmethod
    def from_api(cls, raw: Any, *, submitted: dict[str, Any]) -> "InvitedUser":
        """
        The account already exists once the API answers, so fields the
        response omits or mangles fall back to what was submitted.
        """
        r = Reader("invited user", raw if isinstance(raw, dict) else {})
        email = r.string("email", optional=True, nullable=True)
        role = r.string("role", optional=True, nullable=True)
        if r.errors:
            logger.warning("Invite response incomplete; using submitted values: %s", SchemaError(r.record, r.errors))
        return cls(email=email or submitted["email"], role=role or submitted.get("role"))


def invite_payload_from_form(form: Any) -> dict[str, str]:
    return {
        "email": (form.get("email") or "").strip().lower(),
        "password": form.get("password") or "",
        "firstName": (form.get("firstName") or "").strip(),
        "lastName": (form.get("lastName") or "").strip(),
        "role": (form.get("role") or ROLE_CUSTOMER_SERVICE).strip(),
    }


def validate_invite_payload(payload: dict[str, Any]) -> list[ValidationError]:
    errs: list[ValidationError] = []
    if not (payload.get("firstName") or "").strip():
        errs.append(ValidationError("firstName", "First name is required."))
    email = (payload.get("email") or "").strip()
    if not email:
        errs.append(ValidationError("email", "Email is required."))
    elif not is_valid_email(email):
        errs.append(ValidationError("email", "Enter a valid email address."))
    if len(payload.get("password") or "") < MIN_PASSWORD_LENGTH:
        errs.append(ValidationError("password", f"Password must be at least {MIN_PASSWORD_LENGTH} characters long."))
    if payload.get("role") not in ROLES:
        errs.append(ValidationError("role", "Select a valid role."))
    return errs


def invite_user(payload: dict[str, Any], *, user: Any) -> InvitedUser:
    body = {
        "email": payload["email"],
        "password": payload["password"],
        "firstName": payload["firstName"],
        "role": payload["role"],
    }
    # Blank last names are omitted rather than sent as "".
    if payload.get("lastName"):
        body["lastName"] = payload["lastName"]
    result = api_client().invite_user(body)
    user = result.get("user") if isinstance(result, dict) else None
    invited = InvitedUser.from_api(user, submitted=payload)
    record_event(
        actor=user,
        action="user.invite",
        entity_type="User",
        entity_id=invited.email,
        metadata={"role": invited.role},
    )
    return invited
