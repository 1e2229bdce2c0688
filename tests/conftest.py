"""Shared fixtures: in-memory database, controllable clock and an API client."""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ADMIN_API_KEY"] = "test-admin-key"
os.environ["SECRET_KEY"] = "test-secret-key-with-at-least-32-characters"
os.environ["DEBUG"] = "true"

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
import requests
from fastapi.testclient import TestClient

from app.core import exchange_rate
from app.core.clock import get_clock
from app.core.database import Base, SessionLocal, engine
from app.main import app
from app.models import Profile, NFT, MarketplaceStatus, Transaction, FrozenLot

ADMIN_HEADERS = {"X-Admin-Key": "test-admin-key"}
START = datetime(2024, 3, 15, 10, 0, 0)


class FakeClock:
    """Clock whose time only moves when a test moves it."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def reset_database():
    """Fresh tables for every test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(autouse=True)
def offline_exchange_rate(monkeypatch):
    """The price API is never reachable from tests unless a test says so."""
    def unreachable(*args, **kwargs):
        raise requests.ConnectionError("network disabled in tests")

    monkeypatch.setattr(exchange_rate.requests, "get", unreachable)
    exchange_rate.exchange_rate_provider.invalidate()
    yield
    exchange_rate.exchange_rate_provider.invalidate()


@pytest.fixture
def clock():
    fake = FakeClock(START)
    app.dependency_overrides[get_clock] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_clock, None)


@pytest.fixture
def client(clock):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


def register(client, email="alice@example.com", login="alice", password="password123"):
    """Register a user through the API; returns (user_id, auth headers)."""
    response = client.post("/api/auth/register", json={
        "email": email,
        "password": password,
        "login": login,
        "nickname": login.title(),
        "birthDate": "1990-01-01",
        "country": "Portugal",
    })
    assert response.status_code == 201, response.text
    body = response.json()
    return body["user"]["id"], {"Authorization": f"Bearer {body['token']}"}


def load_profile(user_id) -> Profile:
    session = SessionLocal()
    try:
        return session.query(Profile).filter(Profile.user_id == user_id).one()
    finally:
        session.close()


def set_balances(user_id, **balances):
    session = SessionLocal()
    try:
        profile = session.query(Profile).filter(Profile.user_id == user_id).one()
        for field, value in balances.items():
            setattr(profile, field, Decimal(str(value)))
        session.commit()
    finally:
        session.close()


def create_listed_nft(owner_id=None, price="1.5", name="Pixel Ape", created_at=START):
    session = SessionLocal()
    try:
        nft = NFT(
            name=name,
            image="https://cdn.example.com/ape.png",
            price=price,
            creator="Studio",
            owner_id=owner_id,
            for_sale=True,
            marketplace="OpenSea",
            marketplace_status=MarketplaceStatus.WAITING_FOR_BIDS.value,
            created_at=created_at,
        )
        session.add(nft)
        session.commit()
        return nft.id
    finally:
        session.close()


def load_nft(nft_id) -> NFT:
    session = SessionLocal()
    try:
        return session.query(NFT).filter(NFT.id == nft_id).one()
    finally:
        session.close()


def add_frozen_sale(user_id, amount, created_at=START, days=15):
    """Seed a completed sale whose proceeds are frozen; returns the sale id"""
    session = SessionLocal()
    try:
        release_at = created_at + timedelta(days=days)
        sale = Transaction(
            user_id=user_id,
            type="sale",
            amount=Decimal(amount),
            status="completed",
            currency_type="eth",
            is_frozen=True,
            frozen_until=release_at,
            created_at=created_at,
        )
        session.add(sale)
        session.flush()
        session.add(FrozenLot(
            user_id=user_id,
            transaction_id=sale.id,
            amount=Decimal(amount),
            currency_type="eth",
            release_at=release_at,
            created_at=created_at,
        ))
        session.commit()
        return sale.id
    finally:
        session.close()


def open_lots(user_id):
    """(currency, amount) of every unreleased frozen lot"""
    session = SessionLocal()
    try:
        lots = session.query(FrozenLot).filter(
            FrozenLot.user_id == user_id,
            FrozenLot.released.is_(False),
        ).all()
        return sorted((lot.currency_type, Decimal(lot.amount)) for lot in lots)
    finally:
        session.close()
