from __future__ import annotations

import copy

import pytest

from app.crm import auth
from app.crm.api_client import ApiError, ApiUnauthorized

USERS = {
    "admin@example.com": ("pw", {"id": "u1", "email": "admin@example.com", "firstName": "Ada", "lastName": "Admin", "role": "admin"}),
    "cs@example.com": ("pw", {"id": 7, "email": "cs@example.com", "firstName": "Sam", "lastName": None, "role": "customer_service"}),
    "auditor@example.com": ("pw", {"id": "u9", "email": "auditor@example.com", "firstName": "Al", "role": "auditor"}),
}

CUSTOMERS = [
    {
        "id": "c1",
        "email": "ana@example.com",
        "name": "Ana Lopez",
        "email_verified": True,
        "loginWith": "Google",
        "country": "MX",
        "provider": "stripe",
        "user_type": "pro",
        "subscription_status": "Active",
        "subscription_type": "12",
        "language_communication": "es",
        "created_at": "2024-01-15T10:30:00Z",
        "updated_at": "2024-01-15T10:30:00Z",
    },
    {
        "id": 2,
        "email": "bob@example.com",
        "name": "Bob Smith",
        "email_verified": False,
        "loginWith": "Email",
        "created_at": "2024-02-01T08:00:00Z",
        "updated_at": None,
    },
    # Dropped by validation.
    {
        "id": "c3",
        "email": "not-an-email",
        "name": "Broken Row",
        "email_verified": True,
        "loginWith": "Email",
        "created_at": None,
        "updated_at": None,
    },
]

OVERVIEWS = {
    "c1": {
        "user": {"email": "ana@example.com", "company_name": "Acme", "created_at": "2024-01-15T10:30:00Z", "language": "es"},
        "transactions": [
            {
                "id": "t1",
                "id_transaction": "ch_1",
                "amount": 1999,
                "currency": "USD",
                "transaction_type": "payment",
                "transaction_status": "success",
                "payment_type": "initial",
                "payment_date": "2024-02-01T12:00:00Z",
                "can_refund": True,
            },
            {
                "id": "t2",
                "id_transaction": "ch_2",
                "amount": 1999,
                "currency": "USD",
                "transaction_type": "payment",
                "transaction_status": "success",
                "payment_type": "recurring",
                "payment_date": "2024-03-01T12:00:00Z",
                "can_refund": False,
                "refund_status": "refunded",
            },
        ],
    },
}

NOTES = {
    "c1": [{"id": 1, "content": "Called about billing", "author": "Ada Admin", "created_at": "2024-03-02T09:00:00Z"}],
}


def make_transaction(i: int, **overrides) -> dict:
    row = {
        "id": f"t{i}",
        "id_transaction": f"ch_{i}",
        "customer_id": "c1",
        "subscription_id": f"sub_{i}",
        "amount": 1999,
        "currency": "USD",
        "payment_type": "recurring",
        "transaction_type": "payment",
        "transaction_status": "success",
        "payment_date": "2024-02-01T12:00:00Z",
        "created_at": "2024-02-01T12:00:00Z",
        "updated_at": "2024-02-01T12:00:00Z",
        "email": "ana@example.com",
        "provider": "stripe",
    }
    row.update(overrides)
    return row


class FakeApi:
    """
    In-memory stand-in for CrmApiClient. Records every call; `errors` maps a
    method name to the exception that method should raise.
    """

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.tokens: list[str | None] = []
        self.errors: dict[str, Exception] = {}
        self.customers = copy.deepcopy(CUSTOMERS)
        self.overviews = copy.deepcopy(OVERVIEWS)
        self.notes = copy.deepcopy(NOTES)
        self.transactions = [make_transaction(i) for i in range(1, 13)]
        self.transactions[1].update(transaction_status="failed")
        self.transactions[2].update(transaction_type="refund", amount=500)

    def with_token(self, token):
        self.tokens.append(token)
        return self

    def _call(self, name: str, *args) -> None:
        self.calls.append((name,) + args)
        err = self.errors.get(name)
        if err is not None:
            raise err

    def count(self, name: str) -> int:
        return sum(1 for c in self.calls if c[0] == name)

    def login(self, *, email, password):
        self._call("login", email)
        known = USERS.get(email)
        if known is None or known[0] != password:
            raise ApiUnauthorized("Invalid email or password", status=401)
        return {"user": dict(known[1]), "token": f"tok-{email}"}

    def invite_user(self, payload):
        self._call("invite_user", dict(payload))
        return {"user": {"email": payload["email"], "role": payload["role"]}}

    def list_customers(self, params=None):
        self._call("list_customers", params)
        return {"data": self.customers}

    def get_customer(self, customer_id):
        self._call("get_customer", customer_id)
        for c in self.customers:
            if str(c["id"]) == customer_id:
                return c
        raise ApiError("Customer not found", status=404)

    def get_customer_with_transactions(self, customer_id):
        self._call("get_customer_with_transactions", customer_id)
        if customer_id not in self.overviews:
            raise ApiError("Customer not found", status=404)
        return self.overviews[customer_id]

    def list_notes(self, customer_id):
        self._call("list_notes", customer_id)
        return list(self.notes.get(customer_id, []))

    def create_note(self, customer_id, *, content):
        self._call("create_note", customer_id, content)
        note = {"id": 100 + self.count("create_note"), "content": content, "author": "Ada Admin", "created_at": "2024-04-01T10:00:00Z"}
        self.notes.setdefault(customer_id, []).insert(0, note)
        return note

    def create_refund(self, *, charge_id, reason):
        self._call("create_refund", charge_id, reason)
        return {"id": "re_1", "status": "succeeded"}

    def list_transactions(self, params=None):
        self._call("list_transactions", params)
        return {"data": self.transactions}

    def get_transaction(self, transaction_id):
        self._call("get_transaction", transaction_id)
        for t in self.transactions:
            if t["id"] == transaction_id:
                return t
        raise ApiError("Transaction not found", status=404)


@pytest.fixture(autouse=True)
def _reset_login_attempts():
    auth._login_attempts.clear()
    yield
    auth._login_attempts.clear()


@pytest.fixture()
def fake_api():
    return FakeApi()


@pytest.fixture()
def app(tmp_path, monkeypatch, fake_api):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("API_URL", "http://api.test")
    for k in ("VITE_API_URL", "API_RETRIES", "CACHE_STALE_SECONDS", "NOTES_STALE_SECONDS"):
        monkeypatch.delenv(k, raising=False)

    from app.crm import create_app

    app = create_app()
    app.config["TESTING"] = True
    app.extensions["crm_api"] = fake_api
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def login(client, email: str = "admin@example.com", password: str = "pw", **extra):
    return client.post("/auth/login", data={"email": email, "password": password, **extra})


def csrf_token(client) -> str:
    with client.session_transaction() as sess:
        return sess.setdefault("csrf_token", "test-csrf-token")
