from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from app.crm.schema import Reader

TRANSACTION_STATUSES = ("success", "failed", "in_process", "waiting_user_interaction")
TRANSACTION_TYPES = ("payment", "refund", "chargeback", "rdr")
PAYMENT_TYPES = ("initial", "recurring", "upgrade")
SUBSCRIPTION_PLANS = ("1", "3", "12")
PROVIDERS = ("stripe", "macropay")


@dataclass(frozen=True)
class Transaction:
    id: str
    id_transaction: str
    customer_id: str
    subscription_id: str
    amount: float | int
    currency: str
    payment_type: str
    transaction_type: str
    transaction_status: str
    payment_date: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    email: str | None = None
    subscription_plan: str | None = None
    subscription_status: str | None = None
    country: str | None = None
    provider: str | None = None
    normalized_card_brand: str | None = None
    card_holder_name: str | None = None
    bin: str | None = None
    last_4: str | None = None
    next_transaction_date: str | None = None
    refund_date: str | None = None
    id_order: str | None = None

    @classmethod
    def from_api(cls, raw: Any) -> "Transaction":
        r = Reader("transaction", raw)
        values = dict(
            id=r.identifier("id"),
            id_transaction=r.string("id_transaction"),
            customer_id=r.identifier("customer_id"),
            subscription_id=r.string("subscription_id"),
            amount=r.number("amount"),
            currency=r.string("currency"),
            payment_type=r.picklist("payment_type", PAYMENT_TYPES),
            transaction_type=r.picklist("transaction_type", TRANSACTION_TYPES),
            transaction_status=r.picklist("transaction_status", TRANSACTION_STATUSES),
            payment_date=r.string("payment_date", nullable=True),
            created_at=r.string("created_at", nullable=True),
            updated_at=r.string("updated_at", nullable=True),
            email=r.string("email", optional=True),
            subscription_plan=r.picklist("subscription_plan", SUBSCRIPTION_PLANS, optional=True),
            subscription_status=r.string("subscription_status", optional=True),
            country=r.string("country", optional=True),
            provider=r.picklist("provider", PROVIDERS, optional=True),
            normalized_card_brand=r.string("normalized_card_brand", optional=True),
            card_holder_name=r.string("card_holder_name", optional=True),
            bin=r.string("bin", optional=True),
            last_4=r.string("last_4", optional=True),
            next_transaction_date=r.string("next_transaction_date", optional=True, nullable=True),
            refund_date=r.string("refund_date", optional=True, nullable=True),
            id_order=r.string("id_order", optional=True),
        )
        r.check()
        return cls(**values)
