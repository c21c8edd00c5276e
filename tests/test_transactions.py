from app.crm.api_client import ApiError

from conftest import login


def test_list_paginates_by_ten(client, fake_api):
    login(client, email="cs@example.com")
    r = client.get("/transactions")
    assert r.status_code == 200
    assert b"Page 1 of 2" in r.data
    assert b"Showing 10 of 12 row(s)" in r.data
    assert b"ch_10" in r.data
    assert b"ch_11" not in r.data

    r = client.get("/transactions?page=2")
    assert b"Page 2 of 2" in r.data
    assert b"ch_11" in r.data

    r = client.get("/transactions?page=99")
    assert b"Page 2 of 2" in r.data
    assert fake_api.count("list_transactions") == 1


def test_filters_by_status_and_type(client):
    login(client)
    r = client.get("/transactions?transaction_status=failed")
    assert b"Showing 1 of 1 row(s)" in r.data
    assert b"ch_2" in r.data

    r = client.get("/transactions?transaction_type=refund&transaction_status=all")
    assert b"Showing 1 of 1 row(s)" in r.data
    assert b"$5.00" in r.data
    assert b"text-destructive" in r.data

    r = client.get("/transactions?payment_type=initial")
    assert b"No results." in r.data


def test_search_matches_raw_amount(client):
    login(client)
    r = client.get("/transactions?q=1999")
    assert b"No results." not in r.data
    assert b"Showing 10 of 11 row(s)" in r.data
    assert b"$19.99" in r.data

    r = client.get("/transactions?q=500")
    assert b"Showing 1 of 1 row(s)" in r.data
    assert b"$5.00" in r.data

    # Formatted text is display only.
    r = client.get("/transactions?q=$5.00")
    assert b"No results." in r.data


def test_list_error_is_shown_inline(client, fake_api):
    login(client)
    fake_api.errors["list_transactions"] = ApiError("Gateway timeout", status=504)
    r = client.get("/transactions")
    assert r.status_code == 200
    assert b"Error loading transactions: Gateway timeout" in r.data


def test_detail(client, fake_api):
    login(client)
    r = client.get("/transactions/t1")
    assert r.status_code == 200
    assert b"ch_1" in r.data
    assert b"View customer" in r.data
    client.get("/transactions/t1")
    assert fake_api.count("get_transaction") == 1


def test_detail_not_found_redirects(client):
    login(client)
    r = client.get("/transactions/t404", follow_redirects=True)
    assert b"Transaction not found or could not be loaded." in r.data
