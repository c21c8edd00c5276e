from __future__ import annotations

from flask import Blueprint, current_app, flash, g, redirect, render_template, request, url_for

from app.crm import formatting as fmt
from app.crm.api_client import ApiError, ApiUnauthorized
from app.crm.modules.customers.schema import LOGIN_WITH
from app.crm.modules.customers.service import (
    create_note,
    get_customer_overview,
    issue_refund,
    list_customers,
    list_notes,
    validate_note_content,
)
from app.crm.rbac import VIEW_CUSTOMERS, require_permission
from app.crm.schema import SchemaError
from app.crm.tables import ALL, Column, DataTable, SelectFilter

bp = Blueprint("customers", __name__)

CUSTOMER_TABLE = DataTable(
    [
        Column("email", "Email"),
        Column("name", "Name"),
        Column("created_at", "Created At", render=fmt.format_date),
        Column("loginWith", "Login With", badge=fmt.login_with_variant),
        Column("customer_id_np", "Customer ID NP", css="font-mono"),
        Column("status", "Status"),
        Column("unsubscribed_date", "Unsubscribed Date", render=fmt.format_date_only),
        Column("renewal_date", "Renewal Date", render=fmt.format_date_only),
        Column("retries", "Retries"),
        Column("first_transaction_date", "First Transaction", render=fmt.format_date_only),
        Column("user_type", "User Type", badge=fmt.user_type_variant),
        Column("subscription_status", "Subscription Status", badge=fmt.subscription_status_variant),
        Column("subscription_type", "Subscription Type", render=fmt.format_plan),
        Column("country", "Country"),
        Column("language", "Language", accessor=lambda c: c.language),
        Column("provider", "Provider", render=fmt.format_provider, badge=fmt.provider_variant),
    ],
    filters=[
        SelectFilter(
            "loginWith",
            "Login Method",
            ((ALL, "All Methods"),) + tuple((m, m) for m in LOGIN_WITH),
        ),
        SelectFilter(
            "email_verified",
            "Verified",
            ((ALL, "All"), ("true", "Verified"), ("false", "Not Verified")),
        ),
    ],
)


@bp.get("/customers")
@require_permission(VIEW_CUSTOMERS)
def customers_list():
    state = CUSTOMER_TABLE.state_from_args(request.args)
    error = None
    customers = []
    try:
        customers = list_customers()
    except ApiUnauthorized:
        raise
    except ApiError as e:
        current_app.logger.warning("Customer list failed (request_id=%s): %s", g.request_id, e)
        error = e.message
    table_page = CUSTOMER_TABLE.apply(customers, state)
    return render_template(
        "customers/list.html",
        table=CUSTOMER_TABLE,
        state=state,
        page=table_page,
        error=error,
    )


@bp.get("/customers/<customer_id>")
@require_permission(VIEW_CUSTOMERS)
def customer_detail(customer_id: str):
    error = None
    overview = None
    try:
        overview = get_customer_overview(customer_id)
    except ApiUnauthorized:
        raise
    except (ApiError, SchemaError) as e:
        current_app.logger.warning("Customer detail failed (customer_id=%s request_id=%s): %s", customer_id, g.request_id, e)
        error = "Failed to load customer data. Please try again."

    # Notes only drive the indicator on the Notes button; a failure here is not fatal.
    has_notes = False
    try:
        has_notes = bool(list_notes(customer_id))
    except ApiUnauthorized:
        raise
    except (ApiError, SchemaError) as e:
        current_app.logger.info("Notes indicator unavailable (customer_id=%s): %s", customer_id, e)

    confirm = (request.args.get("confirm") or "").strip() or None
    return render_template(
        "customers/detail.html",
        customer_id=customer_id,
        overview=overview,
        error=error,
        has_notes=has_notes,
        confirm=confirm,
        back_args=_back_args(),
    )


@bp.post("/customers/<customer_id>/refund")
@require_permission(VIEW_CUSTOMERS)
def customer_refund(customer_id: str):
    back = _back_args()
    charge_id = (request.form.get("charge_id") or "").strip()
    if not charge_id:
        flash("Refund failed. Please try again.", "danger")
        return redirect(url_for("customers.customer_detail", customer_id=customer_id, **back))

    try:
        overview = get_customer_overview(customer_id)
    except ApiUnauthorized:
        raise
    except (ApiError, SchemaError) as e:
        current_app.logger.warning("Refund pre-check failed (customer_id=%s): %s", customer_id, e)
        flash("Refund failed. Please try again.", "danger")
        return redirect(url_for("customers.customer_detail", customer_id=customer_id, **back))

    if overview.refundable(charge_id) is None:
        current_app.logger.warning(
            "Refund refused: charge %s not refundable for customer %s (request_id=%s)",
            charge_id,
            customer_id,
            g.request_id,
        )
        flash("This transaction cannot be refunded.", "danger")
        return redirect(url_for("customers.customer_detail", customer_id=customer_id, **back))

    try:
        issue_refund(charge_id, customer_id=customer_id, user=g.current_user)
    except ApiUnauthorized:
        raise
    except ApiError as e:
        current_app.logger.error("Refund failed (charge_id=%s request_id=%s): %s", charge_id, g.request_id, e)
        flash("Refund failed. Please try again.", "danger")
        return redirect(url_for("customers.customer_detail", customer_id=customer_id, **back))

    flash("Refund processed successfully!", "success")
    return redirect(url_for("customers.customer_detail", customer_id=customer_id, **back))


@bp.get("/customers/<customer_id>/notes")
@require_permission(VIEW_CUSTOMERS)
def customer_notes(customer_id: str):
    notes = []
    error = None
    try:
        notes = list_notes(customer_id)
    except ApiUnauthorized:
        raise
    except (ApiError, SchemaError) as e:
        current_app.logger.warning("Notes load failed (customer_id=%s request_id=%s): %s", customer_id, g.request_id, e)
        error = "Failed to load notes. Please try again."
    return render_template(
        "customers/notes.html",
        customer_id=customer_id,
        notes=notes,
        error=error,
    )


@bp.post("/customers/<customer_id>/notes")
@require_permission(VIEW_CUSTOMERS)
def customer_note_add(customer_id: str):
    content = request.form.get("content") or ""
    errs = validate_note_content(content)
    if errs:
        flash("; ".join(e.message for e in errs), "danger")
        return redirect(url_for("customers.customer_notes", customer_id=customer_id))
    try:
        create_note(customer_id, content, user=g.current_user)
    except ApiUnauthorized:
        raise
    except ApiError as e:
        current_app.logger.error("Note create failed (customer_id=%s request_id=%s): %s", customer_id, g.request_id, e)
        flash("Failed to add note. Please try again.", "danger")
        return redirect(url_for("customers.customer_notes", customer_id=customer_id))
    flash("Note added.", "success")
    return redirect(url_for("customers.customer_notes", customer_id=customer_id))


def _back_args() -> dict[str, str]:
    """Carry list filters through the detail page so "Back" restores them."""
    keep = ("q", "page") + tuple(f.key for f in CUSTOMER_TABLE.filters)
    return {k: v for k, v in request.args.items() if k in keep and v}
