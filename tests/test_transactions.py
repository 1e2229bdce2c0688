"""Tests for the transaction ledger, withdrawals and operator settlement."""

from datetime import timedelta
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError

from app.core.database import SessionLocal
from app.db.repositories.transaction_repository import TransactionRepository
from app.models import Transaction
from conftest import ADMIN_HEADERS, START, register, set_balances, load_profile, add_frozen_sale, open_lots


def add_transaction(user_id, **fields):
    values = {
        "type": "deposit",
        "amount": Decimal("1"),
        "status": "completed",
        "currency_type": "eth",
        "created_at": START,
    }
    values.update(fields)
    session = SessionLocal()
    try:
        transaction = Transaction(user_id=user_id, **values)
        session.add(transaction)
        session.commit()
        return transaction.id
    finally:
        session.close()


def load_transaction(transaction_id):
    session = SessionLocal()
    try:
        return session.query(Transaction).filter(Transaction.id == transaction_id).one()
    finally:
        session.close()


def test_cursor_pagination(client):
    """Each page holds rows strictly older than the cursor."""
    user_id, headers = register(client)
    for i in range(12):
        add_transaction(user_id, amount=Decimal(i + 1), created_at=START - timedelta(minutes=i))

    seen = []
    params = {"limit": 5}
    pages = 0
    while True:
        page = client.get("/api/transactions", params=params, headers=headers).json()
        pages += 1
        seen.extend(Decimal(tx["amount"]) for tx in page["transactions"])
        if not page["has_more"]:
            assert page["next_cursor"] is None
            break
        params = {"limit": 5, "before": page["next_cursor"]}

    assert pages == 3
    assert seen == [Decimal(i + 1) for i in range(12)]


def test_cursor_pagination_with_equal_timestamps(client):
    """Rows sharing a timestamp are split across pages without loss."""
    user_id, headers = register(client)
    ids = {add_transaction(user_id, amount=Decimal(i + 1)) for i in range(7)}

    seen = []
    params = {"limit": 3}
    while True:
        page = client.get("/api/transactions", params=params, headers=headers).json()
        seen.extend(tx["id"] for tx in page["transactions"])
        if not page["has_more"]:
            break
        params = {"limit": 3, "before": page["next_cursor"], "before_id": page["next_cursor_id"]}

    assert len(seen) == 7
    assert set(seen) == ids


def test_rows_are_formatted(client, clock):
    user_id, headers = register(client)
    add_transaction(user_id, type="withdraw", amount=Decimal("0.5"), status="pending")
    add_transaction(
        user_id,
        type="sale",
        amount=Decimal("0.975"),
        is_frozen=True,
        frozen_until=START + timedelta(days=15),
        created_at=START - timedelta(days=1),
    )

    rows = client.get("/api/transactions", params={"compact": "true"}, headers=headers).json()["transactions"]

    assert rows[0]["amount_display"] == "-0.5"
    assert rows[0]["status_label"] == "Pend."
    assert rows[0]["date_display"] == "15/03"
    assert rows[0]["badges"] == ["pending"]
    assert rows[1]["amount_display"] == "+0.975"
    assert rows[1]["frozen_until_display"] == "30/03/2024"
    assert rows[1]["badges"] == ["frozen"]


def test_type_filter_replaces_the_list(client):
    user_id, headers = register(client)
    for i in range(25):
        add_transaction(user_id, type="deposit", created_at=START - timedelta(minutes=i))
    add_transaction(user_id, type="exchange", created_at=START + timedelta(minutes=1))

    deposits = client.get("/api/transactions", params={"filter": "deposit"}, headers=headers).json()
    exchanges = client.get("/api/transactions", params={"filter": "exchange"}, headers=headers).json()

    assert len(deposits["transactions"]) == 20
    assert {tx["type"] for tx in deposits["transactions"]} == {"deposit"}
    assert [tx["type"] for tx in exchanges["transactions"]] == ["exchange"]


def test_search_applies_to_fetched_page(client):
    user_id, headers = register(client)
    add_transaction(user_id, type="deposit", amount=Decimal("1.5"))
    add_transaction(user_id, type="withdraw", amount=Decimal("3"), created_at=START - timedelta(minutes=1))

    rows = client.get("/api/transactions", params={"search": "withd"}, headers=headers).json()["transactions"]
    assert [tx["type"] for tx in rows] == ["withdraw"]


def test_listing_degrades_to_empty_on_query_error(client, monkeypatch):
    _, headers = register(client)

    def broken(*args, **kwargs):
        raise SQLAlchemyError("database unavailable")

    monkeypatch.setattr(TransactionRepository, "get_page", broken)

    response = client.get("/api/transactions", headers=headers)
    assert response.status_code == 200
    assert response.json() == {
        "transactions": [], "has_more": False, "next_cursor": None, "next_cursor_id": None,
    }


def test_totals_count_completed_rows_only(client):
    user_id, headers = register(client)
    add_transaction(user_id, type="deposit", amount=Decimal("1"))
    add_transaction(user_id, type="deposit", amount=Decimal("2"))
    add_transaction(user_id, type="deposit", amount=Decimal("5"), status="pending")
    add_transaction(user_id, type="withdraw", amount=Decimal("0.5"))

    totals = client.get("/api/transactions/totals", headers=headers).json()
    assert Decimal(totals["total_deposits"]) == Decimal("3")
    assert Decimal(totals["total_withdrawals"]) == Decimal("0.5")


def test_frozen_balances(client):
    user_id, headers = register(client)
    set_balances(user_id, frozen_balance="2")
    tx_id = add_frozen_sale(user_id, "2")

    body = client.get("/api/transactions/frozen", headers=headers).json()
    assert Decimal(body["frozen_balance"]) == Decimal("2")
    assert body["unfreezing"] == [{
        "transaction_id": tx_id,
        "amount": body["unfreezing"][0]["amount"],
        "currency_type": "eth",
        "unfreeze_date": "2024-03-30T10:00:00",
        "days_left": 15,
    }]


def test_withdraw_validation(client):
    user_id, headers = register(client)
    set_balances(user_id, balance="1")

    def withdraw(**payload):
        return client.post("/api/transactions/withdraw", json=payload, headers=headers)

    assert withdraw(amount="0", wallet_address="0xabc").json()["message"] == \
        "Please enter a valid amount greater than 0"
    assert withdraw(amount="2", wallet_address="0xabc").json()["message"] == "Insufficient funds"
    assert withdraw(amount="0.5").json()["message"] == "Please enter a wallet address for the withdrawal"

    response = withdraw(amount="0.5", wallet_address="0xabc")
    assert response.status_code == 201
    assert response.json()["status"] == "pending"
    # pending requests do not move money
    assert load_profile(user_id).balance == Decimal("1")


def test_operator_routes_require_admin_key(client):
    user_id, _ = register(client)
    tx_id = add_transaction(user_id, status="pending")

    response = client.post(f"/api/admin/transactions/{tx_id}/settle", json={"status": "completed"})
    assert response.status_code == 403

    response = client.post(
        f"/api/admin/transactions/{tx_id}/settle",
        json={"status": "completed"},
        headers={"X-Admin-Key": "wrong"},
    )
    assert response.status_code == 403


def test_settle_deposit_and_withdrawal(client):
    user_id, _ = register(client)
    deposit_id = add_transaction(user_id, type="deposit", amount=Decimal("3"), status="pending")
    withdraw_id = add_transaction(user_id, type="withdraw", amount=Decimal("1"), status="pending")

    settled = client.post(f"/api/admin/transactions/{deposit_id}/settle", json={"status": "completed"},
                          headers=ADMIN_HEADERS)
    assert settled.status_code == 200
    assert settled.json()["status"] == "completed"

    client.post(f"/api/admin/transactions/{withdraw_id}/settle", json={"status": "completed"},
                headers=ADMIN_HEADERS)
    assert load_profile(user_id).balance == Decimal("2")

    again = client.post(f"/api/admin/transactions/{deposit_id}/settle", json={"status": "failed"},
                        headers=ADMIN_HEADERS)
    assert again.status_code == 400
    assert again.json()["message"] == "Transaction is already completed"


def test_failed_settlement_moves_no_money(client):
    user_id, _ = register(client)
    deposit_id = add_transaction(user_id, type="deposit", amount=Decimal("3"), status="pending")

    client.post(f"/api/admin/transactions/{deposit_id}/settle", json={"status": "failed"}, headers=ADMIN_HEADERS)

    assert load_transaction(deposit_id).status == "failed"
    assert load_profile(user_id).balance == 0


def test_release_matured_frozen_funds(client, clock):
    """Released funds move to the available pool; the total is unchanged."""
    user_id, _ = register(client)
    set_balances(user_id, balance="1", frozen_balance="2")
    add_frozen_sale(user_id, "2")

    early = client.post("/api/admin/frozen/release", headers=ADMIN_HEADERS)
    assert early.json() == {"released": 0}

    clock.advance(days=15)
    released = client.post("/api/admin/frozen/release", headers=ADMIN_HEADERS)
    assert released.json() == {"released": 1}

    profile = load_profile(user_id)
    assert profile.balance == Decimal("3")
    assert profile.frozen_balance == 0
    assert open_lots(user_id) == []

    again = client.post("/api/admin/frozen/release", headers=ADMIN_HEADERS)
    assert again.json() == {"released": 0}
