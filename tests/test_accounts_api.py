from __future__ import annotations

from decimal import Decimal

from finance_planner import models


def _create_account(client, user_id: int, name: str, initial="0", type_="general", **extra):
    res = client.post(
        "/api/accounts",
        json={"user_id": user_id, "name": name, "type": type_, "initial_balance": initial, **extra},
    )
    assert res.status_code == 201, res.text
    return res.json()


def _get_account(client, user_id: int, account_id: int):
    res = client.get(f"/api/accounts/{account_id}", params={"user_id": user_id})
    assert res.status_code == 200
    return res.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_new_account_starts_at_initial_balance(client, user_id):
    acc = _create_account(client, user_id, "Wallet", "150.5", type_="cash")
    assert Decimal(acc["initial_balance"]) == Decimal("150.50")
    assert Decimal(acc["current_balance"]) == Decimal("150.50")
    assert acc["type"] == "cash"


def test_duplicate_account_name_conflicts(client, user_id):
    _create_account(client, user_id, "Main")
    res = client.post("/api/accounts", json={"user_id": user_id, "name": "Main", "type": "general"})
    assert res.status_code == 409


def test_credit_fields_only_on_credit_accounts(client, user_id):
    res = client.post(
        "/api/accounts",
        json={"user_id": user_id, "name": "Savings", "type": "savings", "credit_limit": 1000},
    )
    assert res.status_code == 422

    card = _create_account(
        client, user_id, "Card", type_="credit_card", credit_limit="5000", balance_display="available_credit", payment_due_day=5
    )
    assert card["balance_display"] == "available_credit"
    assert card["payment_due_day"] == 5


def test_changing_initial_balance_shifts_current_balance(client, user_id):
    acc = _create_account(client, user_id, "Bank", "1000")
    client.post(
        "/api/transactions",
        json={"user_id": user_id, "type": "expense", "amount": 100, "source_account_id": acc["id"]},
    )
    res = client.patch(f"/api/accounts/{acc['id']}", params={"user_id": user_id}, json={"initial_balance": 1200})
    assert res.status_code == 200
    body = res.json()
    assert Decimal(body["initial_balance"]) == Decimal("1200.00")
    assert Decimal(body["current_balance"]) == Decimal("1100.00")


def test_current_balance_cannot_be_patched(client, user_id):
    acc = _create_account(client, user_id, "Bank")
    res = client.patch(f"/api/accounts/{acc['id']}", params={"user_id": user_id}, json={"current_balance": 5})
    assert res.status_code == 422


def test_reconcile_endpoint(client, user_id, db_session):
    acc = _create_account(client, user_id, "Bank", "10")
    row = db_session.get(models.Account, acc["id"])
    row.current_balance = Decimal("99")
    db_session.commit()

    res = client.post(f"/api/accounts/{acc['id']}/reconcile", params={"user_id": user_id})
    assert res.status_code == 200
    body = res.json()
    assert body["adjusted"] is True
    assert Decimal(body["ledger_balance"]) == Decimal("10.00")
    assert Decimal(_get_account(client, user_id, acc["id"])["current_balance"]) == Decimal("10.00")


def test_delete_account_with_transactions_conflicts(client, user_id):
    acc = _create_account(client, user_id, "Bank", "10")
    tx = client.post(
        "/api/transactions",
        json={"user_id": user_id, "type": "income", "amount": 5, "destination_account_id": acc["id"]},
    ).json()
    assert client.delete(f"/api/accounts/{acc['id']}", params={"user_id": user_id}).status_code == 409

    assert client.delete(f"/api/transactions/{tx['id']}", params={"user_id": user_id}).status_code == 204
    assert client.delete(f"/api/accounts/{acc['id']}", params={"user_id": user_id}).status_code == 204
    assert client.get(f"/api/accounts/{acc['id']}", params={"user_id": user_id}).status_code == 404


def test_accounts_are_scoped_to_their_owner(client, user_id, db_session):
    other = models.User(email="other@example.com", is_active=True)
    db_session.add(other)
    db_session.commit()
    acc = _create_account(client, other.id, "Theirs")

    assert client.get(f"/api/accounts/{acc['id']}", params={"user_id": user_id}).status_code == 404
    assert client.get("/api/accounts", params={"user_id": user_id}).json() == []
    assert client.get("/api/accounts", params={"user_id": 999}).status_code == 404


def test_explicit_null_on_required_fields_is_rejected(client, user_id):
    acc = _create_account(client, user_id, "Bank", "1000")
    for field in ("name", "type", "initial_balance", "is_active"):
        res = client.patch(f"/api/accounts/{acc['id']}", params={"user_id": user_id}, json={field: None})
        assert res.status_code == 422, field

    body = _get_account(client, user_id, acc["id"])
    assert body["name"] == "Bank"
    assert Decimal(body["initial_balance"]) == Decimal("1000.00")
    assert Decimal(body["current_balance"]) == Decimal("1000.00")
