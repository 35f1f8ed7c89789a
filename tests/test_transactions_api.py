from __future__ import annotations

from decimal import Decimal

from finance_planner import models


def _account(client, user_id: int, name: str, initial="0"):
    return client.post(
        "/api/accounts",
        json={"user_id": user_id, "name": name, "type": "general", "initial_balance": initial},
    ).json()


def _balances(client, user_id: int) -> dict[str, Decimal]:
    res = client.get("/api/accounts", params={"user_id": user_id})
    assert res.status_code == 200
    return {a["name"]: Decimal(a["current_balance"]) for a in res.json()}


def test_income_then_expense_to_transfer(client, user_id):
    a = _account(client, user_id, "A", "1000")
    b = _account(client, user_id, "B")

    r = client.post(
        "/api/transactions",
        json={
            "user_id": user_id,
            "type": "income",
            "amount": 500,
            "destination_account_id": a["id"],
            "transaction_date": "2024-01-05",
            "payee": "Employer",
            "payment_method": "bank_transfer",
        },
    )
    assert r.status_code == 201, r.text
    assert r.json()["status"] == "uncleared"
    assert _balances(client, user_id) == {"A": Decimal("1500.00"), "B": Decimal("0.00")}

    r = client.post(
        "/api/transactions",
        json={"user_id": user_id, "type": "expense", "amount": 200, "source_account_id": a["id"]},
    )
    tx = r.json()
    assert _balances(client, user_id)["A"] == Decimal("1300.00")

    u = client.patch(
        f"/api/transactions/{tx['id']}",
        params={"user_id": user_id},
        json={"type": "transfer", "destination_account_id": b["id"]},
    )
    assert u.status_code == 200
    assert u.json()["type"] == "transfer"
    assert _balances(client, user_id) == {"A": Decimal("1300.00"), "B": Decimal("200.00")}


def test_delete_transfer_restores_balances(client, user_id):
    a = _account(client, user_id, "A", "1000")
    b = _account(client, user_id, "B", "0")
    tx = client.post(
        "/api/transactions",
        json={
            "user_id": user_id,
            "type": "transfer",
            "amount": 300,
            "source_account_id": a["id"],
            "destination_account_id": b["id"],
        },
    ).json()
    assert _balances(client, user_id) == {"A": Decimal("700.00"), "B": Decimal("300.00")}

    res = client.delete(f"/api/transactions/{tx['id']}", params={"user_id": user_id})
    assert res.status_code == 204
    assert _balances(client, user_id) == {"A": Decimal("1000.00"), "B": Decimal("0.00")}


def test_validation_errors(client, user_id):
    a = _account(client, user_id, "A")
    res = client.post(
        "/api/transactions",
        json={"user_id": user_id, "type": "expense", "amount": -1, "source_account_id": a["id"]},
    )
    assert res.status_code == 422

    res = client.post(
        "/api/transactions",
        json={
            "user_id": user_id,
            "type": "transfer",
            "amount": 10,
            "source_account_id": a["id"],
            "destination_account_id": a["id"],
        },
    )
    assert res.status_code == 422

    res = client.post(
        "/api/transactions",
        json={"user_id": user_id, "type": "income", "amount": 10, "destination_account_id": 777},
    )
    assert res.status_code == 400
    assert _balances(client, user_id) == {"A": Decimal("0.00")}


def test_failed_update_leaves_balances_untouched(client, user_id):
    a = _account(client, user_id, "A", "100")
    tx = client.post(
        "/api/transactions",
        json={"user_id": user_id, "type": "expense", "amount": 40, "source_account_id": a["id"]},
    ).json()

    res = client.patch(
        f"/api/transactions/{tx['id']}",
        params={"user_id": user_id},
        json={"amount": 10, "source_account_id": 555},
    )
    assert res.status_code == 400
    assert _balances(client, user_id) == {"A": Decimal("60.00")}
    got = client.get(f"/api/transactions/{tx['id']}", params={"user_id": user_id}).json()
    assert Decimal(got["amount"]) == Decimal("40.00")


def test_foreign_account_is_forbidden(client, user_id, db_session):
    other = models.User(email="other@example.com", is_active=True)
    db_session.add(other)
    db_session.commit()
    theirs = _account(client, other.id, "Theirs")

    res = client.post(
        "/api/transactions",
        json={"user_id": user_id, "type": "income", "amount": 10, "destination_account_id": theirs["id"]},
    )
    assert res.status_code == 403


def test_list_filters(client, user_id):
    a = _account(client, user_id, "A")
    b = _account(client, user_id, "B")
    for day, kind, acc in (("2024-01-01", "income", a), ("2024-02-01", "income", b), ("2024-03-01", "expense", a)):
        field = "destination_account_id" if kind == "income" else "source_account_id"
        client.post(
            "/api/transactions",
            json={"user_id": user_id, "type": kind, "amount": 1, field: acc["id"], "transaction_date": day},
        )

    by_account = client.get("/api/transactions", params={"user_id": user_id, "account_id": a["id"]}).json()
    assert [t["transaction_date"] for t in by_account] == ["2024-03-01", "2024-01-01"]

    incomes = client.get("/api/transactions", params={"user_id": user_id, "type": "income"}).json()
    assert len(incomes) == 2

    window = client.get(
        "/api/transactions", params={"user_id": user_id, "start": "2024-01-15", "end": "2024-02-15"}
    ).json()
    assert [t["transaction_date"] for t in window] == ["2024-02-01"]


def test_explicit_null_on_required_fields_is_rejected(client, user_id):
    a = _account(client, user_id, "A", "1000")
    tx = client.post(
        "/api/transactions",
        json={"user_id": user_id, "type": "expense", "amount": 200, "source_account_id": a["id"]},
    ).json()

    for field in ("amount", "transaction_date", "status", "type"):
        res = client.patch(f"/api/transactions/{tx['id']}", params={"user_id": user_id}, json={field: None})
        assert res.status_code == 422, field

    got = client.get(f"/api/transactions/{tx['id']}", params={"user_id": user_id}).json()
    assert Decimal(got["amount"]) == Decimal("200.00")
    assert _balances(client, user_id) == {"A": Decimal("800.00")}


def test_nullable_fields_can_still_be_cleared(client, user_id):
    a = _account(client, user_id, "A")
    tx = client.post(
        "/api/transactions",
        json={"user_id": user_id, "type": "income", "amount": 5, "destination_account_id": a["id"], "payee": "Shop"},
    ).json()
    res = client.patch(f"/api/transactions/{tx['id']}", params={"user_id": user_id}, json={"payee": None})
    assert res.status_code == 200
    assert res.json()["payee"] is None
