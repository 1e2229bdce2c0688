"""Tests for the profile view, wallet address and KYC uploads."""

import re
from decimal import Decimal

import pytest

from app.utils import r2_storage
from conftest import ADMIN_HEADERS, register, set_balances, load_profile

PNG = ("passport.png", b"\x89PNG fake image bytes", "image/png")


@pytest.fixture
def storage(monkeypatch):
    """Record uploads instead of talking to object storage."""
    uploads = []
    deleted = []

    def fake_upload(file_content, file_extension, content_type, folder=None):
        key = f"kyc_documents/doc-{len(uploads)}.{file_extension}"
        uploads.append({"key": key, "content": file_content, "content_type": content_type})
        return {"public_url": f"https://files.example.com/{key}", "key": key}

    monkeypatch.setattr(r2_storage, "upload_file_directly", fake_upload)
    monkeypatch.setattr(r2_storage, "delete_file", lambda key: deleted.append(key) or True)
    return {"uploads": uploads, "deleted": deleted}


def test_profile_totals(client):
    user_id, headers = register(client)
    set_balances(user_id, balance="1.5", frozen_balance="0.5", usdt_balance="100", frozen_usdt_balance="25")

    body = client.get("/api/profile", headers=headers).json()

    assert Decimal(body["total_balance"]) == Decimal("2")
    assert Decimal(body["total_usdt_balance"]) == Decimal("125")
    assert Decimal(body["total_deposits"]) == 0
    assert body["kyc_status"] == "not_started"
    assert body["verified"] is False


def test_wallet_address_is_created_once(client):
    _, headers = register(client)

    first = client.post("/api/profile/wallet-address", headers=headers).json()
    second = client.post("/api/profile/wallet-address", headers=headers).json()

    assert re.fullmatch(r"0x[0-9a-f]{40}", first["wallet_address"])
    assert first["created"] is True
    assert second == {"wallet_address": first["wallet_address"], "created": False}


def test_kyc_identity_then_address(client, storage):
    user_id, headers = register(client)

    identity = client.post("/api/profile/kyc/identity", files={"file": PNG}, headers=headers)
    assert identity.status_code == 200
    assert identity.json()["kyc_status"] == "identity_submitted"

    address = client.post("/api/profile/kyc/address", files={"file": PNG}, headers=headers)
    assert address.status_code == 200
    assert address.json()["kyc_status"] == "under_review"

    profile = load_profile(user_id)
    assert profile.kyc_identity_doc == "kyc_documents/doc-0.png"
    assert profile.kyc_address_doc == "kyc_documents/doc-1.png"
    assert storage["uploads"][0]["content_type"] == "image/png"


def test_kyc_address_requires_identity_first(client, storage):
    _, headers = register(client)

    response = client.post("/api/profile/kyc/address", files={"file": PNG}, headers=headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Please submit your identity document first"
    assert storage["uploads"] == []


def test_kyc_rejects_unsupported_files(client, storage):
    _, headers = register(client)

    response = client.post(
        "/api/profile/kyc/identity",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        headers=headers,
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Document must be a JPEG, PNG or PDF file"


def test_resubmitting_identity_replaces_previous_document(client, storage):
    _, headers = register(client)

    client.post("/api/profile/kyc/identity", files={"file": PNG}, headers=headers)
    client.post("/api/profile/kyc/identity", files={"file": PNG}, headers=headers)

    assert storage["deleted"] == ["kyc_documents/doc-0.png"]


def test_verified_profile_cannot_resubmit(client, storage):
    user_id, headers = register(client)
    client.post("/api/profile/kyc/identity", files={"file": PNG}, headers=headers)
    client.post("/api/profile/kyc/address", files={"file": PNG}, headers=headers)

    review = client.post(f"/api/admin/kyc/{user_id}/review", json={"approved": True}, headers=ADMIN_HEADERS)
    assert review.json()["kyc_status"] == "verified"
    assert load_profile(user_id).verified is True

    response = client.post("/api/profile/kyc/identity", files={"file": PNG}, headers=headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Your identity is already verified"


def test_rejected_kyc_can_start_again(client, storage):
    user_id, headers = register(client)
    client.post("/api/profile/kyc/identity", files={"file": PNG}, headers=headers)
    client.post("/api/profile/kyc/address", files={"file": PNG}, headers=headers)
    client.post(f"/api/admin/kyc/{user_id}/review", json={"approved": False, "reason": "Blurry photo"},
                headers=ADMIN_HEADERS)

    profile = client.get("/api/profile", headers=headers).json()
    assert profile["kyc_status"] == "rejected"
    assert profile["kyc_rejection_reason"] == "Blurry photo"

    again = client.post("/api/profile/kyc/identity", files={"file": PNG}, headers=headers)
    assert again.json()["kyc_status"] == "identity_submitted"


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"
