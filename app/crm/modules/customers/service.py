"""
Data access for the customers pages.

Reads go through the shared query cache; writes call the API and then
invalidate the keys whose data they change:

Mutation        | Invalidates
----------------|------------------------------------------------------
create_note     | ("customer-notes", customer_id)
issue_refund    | ("customer-transactions",), ("transactions",), ("transaction",)
"""

from __future__ import annotations

import logging
from typing import Any

from flask import current_app

from app.crm.api_client import api_client
from app.crm.audit import record_event
from app.crm.modules.customers.schema import (
    Customer,
    CustomerNote,
    CustomerOverview,
    CustomerProfile,
    CustomerTransaction,
)
from app.crm.query_cache import query_cache
from app.crm.schema import ValidationError, parse_many, unwrap_list

logger = logging.getLogger(__name__)

LIST_LIMIT = 100
REFUND_REASON = "requested_by_customer"


def list_customers(*, limit: int = LIST_LIMIT) -> list[Customer]:
    params = {"limit": limit}

    def _load() -> list[Customer]:
        rows = unwrap_list(api_client().list_customers(params))
        return parse_many(Customer.from_api, rows, record="customer")

    return query_cache().fetch(("customers", params), _load)


def get_customer(customer_id: str) -> Customer:
    return query_cache().fetch(
        ("customer", customer_id),
        lambda: Customer.from_api(api_client().get_customer(customer_id)),
    )


def get_customer_overview(customer_id: str) -> CustomerOverview:
    def _load() -> CustomerOverview:
        raw = api_client().get_customer_with_transactions(customer_id)
        return CustomerOverview(
            user=CustomerProfile.from_api(raw.get("user")),
            transactions=parse_many(
                CustomerTransaction.from_api,
                raw.get("transactions") if isinstance(raw.get("transactions"), list) else [],
                record="customer transaction",
            ),
        )

    return query_cache().fetch(("customer-transactions", customer_id), _load)


def list_notes(customer_id: str) -> list[CustomerNote]:
    def _load() -> list[CustomerNote]:
        return parse_many(CustomerNote.from_api, api_client().list_notes(customer_id), record="note")

    return query_cache().fetch(
        ("customer-notes", customer_id),
        _load,
        stale_seconds=float(current_app.config.get("NOTES_STALE_SECONDS") or 0),
    )


def validate_note_content(content: str | None) -> list[ValidationError]:
    errs: list[ValidationError] = []
    if not (content or "").strip():
        errs.append(ValidationError("content", "Note cannot be empty."))
    return errs


def create_note(customer_id: str, content: str, *, user: Any) -> dict[str, Any]:
    text = content.strip()
    created = api_client().create_note(customer_id, content=text)
    query_cache().invalidate(("customer-notes", customer_id))
    record_event(
        actor=user,
        action="customer_note.create",
        entity_type="Customer",
        entity_id=customer_id,
        metadata={"note_id": created.get("id"), "length": len(text)},
    )
    return created


def issue_refund(charge_id: str, *, customer_id: str | None, user: Any, reason: str = REFUND_REASON) -> dict[str, Any]:
    result = api_client().create_refund(charge_id=charge_id, reason=reason)
    cache = query_cache()
    for prefix in (("customer-transactions",), ("transactions",), ("transaction",)):
        cache.invalidate(prefix)
    logger.info("Refund requested charge_id=%s customer_id=%s", charge_id, customer_id)
    record_event(
        actor=user,
        action="refund.create",
        entity_type="Transaction",
        entity_id=charge_id,
        reason=reason,
        metadata={"customer_id": customer_id},
    )
    return result
