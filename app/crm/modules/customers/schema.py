from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from app.crm.schema import Reader
from app.crm.modules.transactions.schema import (
    PAYMENT_TYPES,
    PROVIDERS,
    TRANSACTION_STATUSES,
    TRANSACTION_TYPES,
)

LOGIN_WITH = ("Google", "Facebook", "Apple", "Email")
USER_TYPES = ("free", "pro")
SUBSCRIPTION_STATUSES = ("Active", "Paying", "Unsubscribed", "Non renewal")
SUBSCRIPTION_TYPES = ("1", "3", "12")


@dataclass(frozen=True)
class Customer:
    id: str
    email: str
    name: str
    email_verified: bool
    loginWith: str
    company_name: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None
    subscription_id: str | None = None
    customer_id_np: str | None = None
    status: str | None = None
    unsubscribed_date: str | None = None
    renewal_date: str | None = None
    retries: int | None = None
    first_transaction_date: str | None = None
    user_type: str | None = None
    subscription_status: str | None = None
    subscription_type: str | None = None
    language_communication: str | None = None
    language_registration: str | None = None
    provider: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def language(self) -> str | None:
        return self.language_communication or self.language_registration

    @classmethod
    def from_api(cls, raw: Any) -> "Customer":
        r = Reader("customer", raw)
        values = dict(
            id=r.identifier("id"),
            email=r.email("email"),
            name=r.string("name"),
            email_verified=r.boolean("email_verified"),
            loginWith=r.picklist("loginWith", LOGIN_WITH),
            company_name=r.string("company_name", optional=True),
            address=r.string("address", optional=True),
            city=r.string("city", optional=True),
            state=r.string("state", optional=True),
            postal_code=r.string("postal_code", optional=True),
            country=r.string("country", optional=True, nullable=True),
            subscription_id=r.string("subscription_id", optional=True),
            customer_id_np=r.string("customer_id_np", optional=True, nullable=True),
            status=r.string("status", optional=True, nullable=True),
            unsubscribed_date=r.string("unsubscribed_date", optional=True, nullable=True),
            renewal_date=r.string("renewal_date", optional=True, nullable=True),
            retries=r.integer("retries"),
            first_transaction_date=r.string("first_transaction_date", optional=True, nullable=True),
            user_type=r.picklist("user_type", USER_TYPES, optional=True),
            subscription_status=r.picklist("subscription_status", SUBSCRIPTION_STATUSES, optional=True),
            subscription_type=r.picklist("subscription_type", SUBSCRIPTION_TYPES, optional=True),
            language_communication=r.string("language_communication", optional=True, nullable=True),
            language_registration=r.string("language_registration", optional=True, nullable=True),
            provider=r.picklist("provider", PROVIDERS, optional=True),
            created_at=r.string("created_at", nullable=True),
            updated_at=r.string("updated_at", nullable=True),
        )
        r.check()
        return cls(**values)


@dataclass(frozen=True)
class CustomerTransaction:
    id: str
    id_transaction: str
    amount: float | int
    currency: str
    transaction_type: str
    transaction_status: str
    payment_type: str
    payment_date: str | None = None
    created_at: str | None = None
    can_refund: bool = False
    refund_status: str | None = None

    @property
    def display_date(self) -> str | None:
        return self.payment_date or self.created_at

    @property
    def is_refunded(self) -> bool:
        return self.refund_status == "refunded"

    @classmethod
    def from_api(cls, raw: Any) -> "CustomerTransaction":
        r = Reader("transaction", raw)
        values = dict(
            id=r.identifier("id"),
            id_transaction=r.string("id_transaction"),
            amount=r.number("amount"),
            currency=r.string("currency"),
            transaction_type=r.picklist("transaction_type", TRANSACTION_TYPES),
            transaction_status=r.picklist("transaction_status", TRANSACTION_STATUSES),
            payment_type=r.picklist("payment_type", PAYMENT_TYPES),
            payment_date=r.string("payment_date", optional=True, nullable=True),
            created_at=r.string("created_at", optional=True, nullable=True),
            can_refund=r.boolean("can_refund", optional=True),
            refund_status=r.string("refund_status", optional=True, nullable=True),
        )
        r.check()
        return cls(**values)


@dataclass(frozen=True)
class CustomerProfile:
    email: str
    company_name: str | None = None
    created_at: str | None = None
    language: str | None = None

    @classmethod
    def from_api(cls, raw: Any) -> "CustomerProfile":
        r = Reader("customer profile", raw)
        values = dict(
            email=r.string("email"),
            company_name=r.string("company_name", optional=True, nullable=True),
            created_at=r.string("created_at", optional=True, nullable=True),
            language=r.string("language", optional=True, nullable=True),
        )
        r.check()
        return cls(**values)


@dataclass(frozen=True)
class CustomerOverview:
    user: CustomerProfile
    transactions: list[CustomerTransaction]

    def refundable(self, charge_id: str) -> CustomerTransaction | None:
        for tx in self.transactions:
            if tx.id_transaction == charge_id and tx.can_refund:
                return tx
        return None


@dataclass(frozen=True)
class CustomerNote:
    id: str
    content: str
    author: str | None = None
    created_at: str | None = None

    @classmethod
    def from_api(cls, raw: Any) -> "CustomerNote":
        r = Reader("note", raw)
        values = dict(
            id=r.identifier("id"),
            content=r.string("content"),
            author=r.string("author", optional=True, nullable=True),
            created_at=r.string("created_at", optional=True, nullable=True),
        )
        r.check()
        return cls(**values)
