from __future__ import annotations

from flask import Blueprint, current_app, flash, g, redirect, render_template, request, url_for

from app.crm import formatting as fmt
from app.crm.api_client import ApiError, ApiUnauthorized
from app.crm.modules.transactions.schema import PAYMENT_TYPES, TRANSACTION_STATUSES, TRANSACTION_TYPES
from app.crm.modules.transactions.service import get_transaction, list_transactions
from app.crm.rbac import VIEW_TRANSACTIONS, require_permission
from app.crm.schema import SchemaError
from app.crm.tables import ALL, Column, DataTable, SelectFilter

bp = Blueprint("transactions", __name__)

TRANSACTION_TABLE = DataTable(
    [
        Column("email", "Email"),
        Column("id_transaction", "Transaction ID", css="font-mono"),
        Column("subscription_id", "Subscription ID", css="font-mono"),
        Column("subscription_plan", "Subscription Plan", render=fmt.format_plan),
        Column("subscription_status", "Subscription Status"),
        Column("created_at", "Created At", render=fmt.format_date),
        Column("transaction_type", "Transaction Type", badge=fmt.transaction_type_variant),
        Column("transaction_status", "Transaction Status", render=fmt.format_status, badge=fmt.status_variant),
        Column("amount", "Amount", render_row=lambda t: fmt.format_currency(t.amount, t.currency)),
        Column("currency", "Currency"),
        Column("country", "Country"),
        Column("provider", "Provider", render=fmt.format_provider, badge=fmt.provider_variant),
        Column("payment_type", "Payment Type", badge=fmt.payment_type_variant),
        Column("normalized_card_brand", "Card Brand"),
        Column("card_holder_name", "Card Holder"),
        Column("bin", "BIN", css="font-mono"),
        Column("last_4", "Last 4", css="font-mono"),
        Column("payment_date", "Payment Date", render=fmt.format_date_only),
        Column("next_transaction_date", "Next Transaction", render=fmt.format_date_only),
        Column("refund_date", "Refund Date", render=fmt.format_date_only),
        Column("updated_at", "Updated At", render=fmt.format_date),
    ],
    filters=[
        SelectFilter(
            "transaction_status",
            "Status",
            ((ALL, "All Statuses"),) + tuple((s, fmt.format_status(s)) for s in TRANSACTION_STATUSES),
        ),
        SelectFilter(
            "transaction_type",
            "Type",
            ((ALL, "All Types"),) + tuple((t, t.capitalize()) for t in TRANSACTION_TYPES),
        ),
        SelectFilter(
            "payment_type",
            "Payment Type",
            ((ALL, "All Payment Types"),) + tuple((t, t.capitalize()) for t in PAYMENT_TYPES),
        ),
    ],
    search_placeholder="Search transactions...",
)


@bp.get("/transactions")
@require_permission(VIEW_TRANSACTIONS)
def transactions_list():
    state = TRANSACTION_TABLE.state_from_args(request.args)
    error = None
    transactions = []
    try:
        transactions = list_transactions()
    except ApiUnauthorized:
        raise
    except ApiError as e:
        current_app.logger.warning("Transaction list failed (request_id=%s): %s", g.request_id, e)
        error = e.message
    return render_template(
        "transactions/list.html",
        table=TRANSACTION_TABLE,
        state=state,
        page=TRANSACTION_TABLE.apply(transactions, state),
        error=error,
    )


@bp.get("/transactions/<transaction_id>")
@require_permission(VIEW_TRANSACTIONS)
def transaction_detail(transaction_id: str):
    try:
        tx = get_transaction(transaction_id)
    except ApiUnauthorized:
        raise
    except (ApiError, SchemaError) as e:
        current_app.logger.warning("Transaction detail failed (id=%s request_id=%s): %s", transaction_id, g.request_id, e)
        flash("Transaction not found or could not be loaded.", "danger")
        return redirect(url_for("transactions.transactions_list"))
    return render_template("transactions/detail.html", tx=tx, columns=TRANSACTION_TABLE.columns)
