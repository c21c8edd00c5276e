from __future__ import annotations

from app.crm.api_client import api_client
from app.crm.modules.transactions.schema import Transaction
from app.crm.query_cache import query_cache
from app.crm.schema import parse_many, unwrap_list

LIST_LIMIT = 100


def list_transactions(*, limit: int = LIST_LIMIT) -> list[Transaction]:
    params = {"limit": limit}

    def _load() -> list[Transaction]:
        rows = unwrap_list(api_client().list_transactions(params))
        return parse_many(Transaction.from_api, rows, record="transaction")

    return query_cache().fetch(("transactions", params), _load)


def get_transaction(transaction_id: str) -> Transaction:
    return query_cache().fetch(
        ("transaction", transaction_id),
        lambda: Transaction.from_api(api_client().get_transaction(transaction_id)),
    )
