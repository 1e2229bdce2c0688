"""Tests for placing and accepting bids."""

from datetime import timedelta
from decimal import Decimal

from app.core.database import SessionLocal
from app.models import Bid, Profile, Transaction
from conftest import START, register, load_profile, create_listed_nft, load_nft

BIDDER_A = "0x" + "a" * 40
BIDDER_B = "0x" + "B" * 40


def place(client, headers, nft_id, address, amount):
    return client.post(
        f"/api/bids/nft/{nft_id}",
        json={"bidder_address": address, "bid_amount": amount},
        headers=headers,
    )


def test_fee_preview(client):
    response = client.get("/api/bids/fee-preview", params={"amount": "2"})

    assert response.status_code == 200
    body = response.json()
    assert Decimal(body["platform_fee"]) == Decimal("0.05")
    assert Decimal(body["received_amount"]) == Decimal("1.95")
    assert body["freeze_duration_days"] == 15


def test_place_bid_moves_listing_to_available_bids(client):
    owner_id, _ = register(client)
    _, bidder = register(client, email="bidder@example.com", login="bidder")
    nft_id = create_listed_nft(owner_id=owner_id)

    response = place(client, bidder, nft_id, BIDDER_A, "1.2")

    assert response.status_code == 201
    assert response.json()["status"] == "active"
    assert response.json()["verified"] is False
    assert load_nft(nft_id).marketplace_status == "available_bids"


def test_place_bid_validation(client):
    owner_id, headers = register(client)
    nft_id = create_listed_nft(owner_id=owner_id)

    missing = place(client, headers, "no-such-nft", BIDDER_A, "1")
    assert missing.status_code == 404
    assert missing.json()["message"] == "NFT with ID no-such-nft doesn't exist"

    bad_address = place(client, headers, nft_id, "0x1234", "1")
    assert bad_address.status_code == 400
    assert bad_address.json()["message"] == "Invalid bidder address"

    zero = place(client, headers, nft_id, BIDDER_A, "0")
    assert zero.status_code == 400


def test_bids_listed_highest_first(client):
    owner_id, headers = register(client)
    nft_id = create_listed_nft(owner_id=owner_id)
    place(client, headers, nft_id, BIDDER_A, "0.5")
    place(client, headers, nft_id, BIDDER_B, "2")

    bids = client.get(f"/api/bids/nft/{nft_id}").json()
    assert [Decimal(bid["bid_amount"]) for bid in bids] == [Decimal("2"), Decimal("0.5")]

    owned = client.get("/api/bids/owned", headers=headers).json()
    assert len(owned) == 2


def test_accept_bid_settles_everything(client):
    """Accepting one bid declines the rest and credits the seller's frozen balance."""
    seller_id, seller = register(client)
    buyer_id, _ = register(client, email="buyer@example.com", login="buyer")
    nft_id = create_listed_nft(owner_id=seller_id)

    session = SessionLocal()
    try:
        session.query(Profile).filter(Profile.user_id == buyer_id).one().wallet_address = BIDDER_A
        session.commit()
    finally:
        session.close()

    winning = place(client, seller, nft_id, BIDDER_A.upper().replace("0X", "0x"), "2").json()
    losing = place(client, seller, nft_id, BIDDER_B, "1").json()

    response = client.post(f"/api/bids/{winning['id']}/accept", headers=seller)
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["status"] == "settled"
    assert Decimal(body["breakdown"]["received_amount"]) == Decimal("1.95")

    session = SessionLocal()
    try:
        statuses = {bid.id: bid.status for bid in session.query(Bid).all()}
        sale = session.query(Transaction).filter(Transaction.user_id == seller_id).one()
    finally:
        session.close()

    assert statuses == {winning["id"]: "accepted", losing["id"]: "declined"}
    assert sale.type == "sale"
    assert sale.currency_type == "eth"
    assert sale.frozen_until == START + timedelta(days=15)
    assert load_profile(seller_id).frozen_balance == Decimal("1.95")

    nft = load_nft(nft_id)
    assert nft.owner_id == buyer_id
    assert nft.for_sale is False
    assert nft.marketplace_status == "sold"


def test_accept_bid_without_matching_profile_leaves_nft_unowned(client):
    seller_id, seller = register(client)
    nft_id = create_listed_nft(owner_id=seller_id)
    bid = place(client, seller, nft_id, BIDDER_B, "1").json()

    client.post(f"/api/bids/{bid['id']}/accept", headers=seller)

    assert load_nft(nft_id).owner_id is None


def test_bid_from_sellers_own_wallet_is_refused(client):
    seller_id, seller = register(client)
    nft_id = create_listed_nft(owner_id=seller_id)
    session = SessionLocal()
    try:
        session.query(Profile).filter(Profile.user_id == seller_id).one().wallet_address = BIDDER_A
        session.commit()
    finally:
        session.close()
    bid = place(client, seller, nft_id, BIDDER_A, "1").json()

    response = client.post(f"/api/bids/{bid['id']}/accept", headers=seller)

    assert response.status_code == 400
    assert response.json()["message"] == "You cannot accept a bid from your own wallet"
    nft = load_nft(nft_id)
    assert nft.owner_id == seller_id
    assert nft.for_sale is True
    assert load_profile(seller_id).frozen_balance == 0


def test_only_owner_can_accept(client):
    seller_id, seller = register(client)
    _, stranger = register(client, email="eve@example.com", login="eve")
    nft_id = create_listed_nft(owner_id=seller_id)
    bid = place(client, seller, nft_id, BIDDER_A, "1").json()

    response = client.post(f"/api/bids/{bid['id']}/accept", headers=stranger)
    assert response.status_code == 403
    assert load_profile(seller_id).frozen_balance == 0


def test_bid_cannot_be_accepted_after_sale(client):
    seller_id, seller = register(client)
    nft_id = create_listed_nft(owner_id=seller_id)
    first = place(client, seller, nft_id, BIDDER_A, "1").json()
    second = place(client, seller, nft_id, BIDDER_B, "2").json()
    client.post(f"/api/bids/{second['id']}/accept", headers=seller)

    response = client.post(f"/api/bids/{first['id']}/accept", headers=seller)
    # the NFT changed hands, so the seller no longer owns it
    assert response.status_code == 403
