from dataclasses import dataclass

from app.crm.tables import ALL, Column, DataTable, SelectFilter, TableState


@dataclass
class Row:
    id: str
    email: str
    status: str | None
    verified: bool


def _rows(n: int) -> list[Row]:
    return [Row(id=str(i), email=f"user{i}@example.com", status="failed" if i % 5 == 0 else "success", verified=i % 2 == 0) for i in range(1, n + 1)]


TABLE = DataTable(
    [
        Column("email", "Email"),
        Column("status", "Status", render=lambda v: (v or "-").upper()),
    ],
    filters=[
        SelectFilter("status", "Status", ((ALL, "All"), ("success", "Success"), ("failed", "Failed"))),
        SelectFilter("verified", "Verified", ((ALL, "All"), ("true", "Verified"), ("false", "Not Verified"))),
    ],
)


def test_column_text_and_dash():
    email, status = TABLE.columns
    assert email.text(Row("1", "a@example.com", None, True)) == "a@example.com"
    assert email.text({"email": None}) == "-"
    assert status.text(Row("1", "a@example.com", "failed", True)) == "FAILED"


def test_column_accessor_and_badge():
    col = Column("amount", "Amount", accessor=lambda r: r["amount"] * 2, badge=lambda v: "default")
    assert col.value({"amount": 2}) == 4
    assert col.variant({"amount": 2}) == "default"
    assert Column("x", "X", badge=lambda v: "default").variant({"x": ""}) is None


def test_state_from_args_normalizes():
    state = TABLE.state_from_args({"q": "  Ana ", "status": "all", "verified": "true", "page": "3"})
    assert state.q == "Ana"
    assert state.filters == {"verified": "true"}
    assert state.page == 3
    assert state.is_filtered

    state = TABLE.state_from_args({"status": "bogus", "page": "abc"})
    assert state.filters == {}
    assert state.page == 1
    assert not state.is_filtered

    assert TABLE.state_from_args({"page": "-4"}).page == 1


def test_global_search_is_case_insensitive_substring():
    rows = _rows(12)
    page = TABLE.apply(rows, TableState(q="USER1"))
    assert [r.id for r in page.rows] == ["1", "10", "11", "12"]


def test_search_matches_raw_values_of_columns_only():
    table = DataTable(
        [
            Column("email", "Email"),
            Column("amount", "Amount", render_row=lambda r: f"${r['amount'] / 100:.2f}"),
        ]
    )
    rows = [{"id": "99", "email": "z@example.com", "amount": 1999}]
    assert table.columns[1].text(rows[0]) == "$19.99"
    assert table.apply(rows, TableState(q="1999")).total == 1
    assert table.apply(rows, TableState(q="$19.99")).total == 0
    # The id is not a column.
    assert table.apply([dict(rows[0], amount=1)], TableState(q="99")).total == 0


def test_select_filters_are_exact_and_combine():
    rows = _rows(20)
    page = TABLE.apply(rows, TableState(filters={"status": "failed"}))
    assert [r.id for r in page.rows] == ["5", "10", "15", "20"]

    page = TABLE.apply(rows, TableState(filters={"status": "failed", "verified": "false"}))
    assert [r.id for r in page.rows] == ["5", "15"]


def test_pagination_pages_of_ten():
    rows = _rows(23)
    first = TABLE.apply(rows, TableState())
    assert len(first.rows) == 10
    assert first.page_count == 3
    assert first.total == 23
    assert not first.has_prev and first.has_next

    last = TABLE.apply(rows, TableState(page=3))
    assert [r.id for r in last.rows] == ["21", "22", "23"]
    assert last.has_prev and not last.has_next


def test_page_past_the_end_is_clamped():
    page = TABLE.apply(_rows(23), TableState(page=9))
    assert page.page == 3
    assert len(page.rows) == 3


def test_empty_table_has_one_page():
    page = TABLE.apply([], TableState(q="nothing"))
    assert page.rows == []
    assert page.page == 1
    assert page.page_count == 1
    assert not page.has_next


def test_state_args_keep_filters():
    state = TableState(q="ana", filters={"status": "failed"}, page=2)
    assert state.args() == {"q": "ana", "status": "failed", "page": 2}
    assert state.args(page=3)["page"] == 3
    assert "page" not in state.args(page=None)
    assert TableState().args() == {}
