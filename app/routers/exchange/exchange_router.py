from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from app.core.clock import Clock, get_clock
from app.core.database import get_db
from app.core.dependencies import get_current_user
from app.core.exchange_rate import ExchangeRateProvider, get_exchange_rate_provider
from app.models.transaction import ExchangeDirection, ExchangeType
from app.models.user import User
from app.models.schemas import (
    ExchangeRateResponse, ExchangeEstimateResponse, ExchangeRequest, ExchangeResponse
)
from app.services.exchange_service import ExchangeService, available_balance_display
from app.services.profile_service import ProfileService
from typing import Optional
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/rate", response_model=ExchangeRateResponse)
def get_exchange_rate(provider: ExchangeRateProvider = Depends(get_exchange_rate_provider)):
    """ETH/USD rate and its reverse; falls back to a fixed rate when the price API is down"""
    quote = provider.get_quote()
    return {
        "rate": quote.rate,
        "reverse_rate": quote.reverse_rate,
        "source": quote.source,
        "fetched_at": quote.fetched_at,
    }


@router.get("/estimate", response_model=ExchangeEstimateResponse)
def estimate_exchange(
    amount: Optional[str] = None,
    direction: ExchangeDirection = Query(ExchangeDirection.ETH_TO_USDT),
    db: Session = Depends(get_db),
    provider: ExchangeRateProvider = Depends(get_exchange_rate_provider)
):
    return ExchangeService(db).estimate(amount, direction, provider.get_quote())


@router.get("/available-balance")
def get_available_balance(
    direction: ExchangeDirection = Query(ExchangeDirection.ETH_TO_USDT),
    exchange_type: ExchangeType = Query(ExchangeType.REGULAR),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    profile = ProfileService(db).get_profile(current_user.id)
    return {"available_balance": available_balance_display(profile, direction, exchange_type)}


@router.post("", response_model=ExchangeResponse, status_code=status.HTTP_201_CREATED)
def request_exchange(
    payload: ExchangeRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    provider: ExchangeRateProvider = Depends(get_exchange_rate_provider)
):
    """Record a pending exchange at the current rate"""
    return ExchangeService(db).request_exchange(
        current_user.id,
        payload.amount,
        payload.direction,
        payload.exchange_type,
        provider.get_quote(),
        clock(),
    )
