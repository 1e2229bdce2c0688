"""
Exchange Service
ETH <-> USDT exchange requests against either the available or the frozen
pools. Requests are recorded as pending and settled by an operator.
"""

import logging
from datetime import datetime
from decimal import Decimal, ROUND_DOWN
from typing import Dict, Any, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import InsufficientFundsError, NotFoundError
from app.core.exchange_rate import RateQuote, calculate_estimated_result
from app.db.repositories.transaction_repository import TransactionRepository
from app.db.repositories.user_repository import UserRepository
from app.models.transaction import (
    Transaction,
    TransactionType,
    TransactionStatus,
    CurrencyType,
    ExchangeDirection,
    ExchangeType,
)
from app.models.user import Profile
from app.services.ledger_service import get_pool, require_positive

logger = logging.getLogger(__name__)

DISPLAY_PLACES = {
    CurrencyType.ETH.value: Decimal("0.0001"),
    CurrencyType.USDT.value: Decimal("0.01"),
}


def source_currency(direction: ExchangeDirection) -> str:
    if ExchangeDirection(direction) == ExchangeDirection.ETH_TO_USDT:
        return CurrencyType.ETH.value
    return CurrencyType.USDT.value


def available_balance_display(profile: Profile, direction: ExchangeDirection, exchange_type: ExchangeType) -> str:
    """Source pool balance, ETH to 4 places and USDT to 2"""
    currency = source_currency(direction)
    frozen = ExchangeType(exchange_type) == ExchangeType.FROZEN
    amount = get_pool(profile, currency, frozen).quantize(DISPLAY_PLACES[currency], rounding=ROUND_DOWN)
    return f"{amount} {currency.upper()}"


class ExchangeService:
    def __init__(self, db: Session):
        self.db = db
        self.users = UserRepository(db)
        self.transactions = TransactionRepository(db)

    def estimate(self, amount: Optional[str], direction: ExchangeDirection, quote: RateQuote) -> Dict[str, Any]:
        direction = ExchangeDirection(direction)
        rate = quote.rate if direction == ExchangeDirection.ETH_TO_USDT else quote.reverse_rate
        return {
            "direction": direction,
            "rate": rate,
            "estimated_result": calculate_estimated_result(amount, quote.rate, quote.reverse_rate, direction),
        }

    def request_exchange(
        self,
        user_id: str,
        amount: Decimal,
        direction: ExchangeDirection,
        exchange_type: ExchangeType,
        quote: RateQuote,
        now: datetime,
    ) -> Dict[str, Any]:
        amount = require_positive(amount)
        direction = ExchangeDirection(direction)
        frozen = ExchangeType(exchange_type) == ExchangeType.FROZEN

        profile = self.users.get_profile(user_id)
        if profile is None:
            raise NotFoundError("Profile not found")

        currency = source_currency(direction)
        if amount > get_pool(profile, currency, frozen):
            raise InsufficientFundsError("Insufficient funds")

        rate = quote.rate if direction == ExchangeDirection.ETH_TO_USDT else quote.reverse_rate
        transaction = self.transactions.add(Transaction(
            user_id=user_id,
            type=TransactionType.EXCHANGE.value,
            amount=amount,
            status=TransactionStatus.PENDING.value,
            currency_type=currency,
            is_frozen=frozen,
            is_frozen_exchange=frozen,
            exchange_direction=direction.value,
            exchange_rate=rate,
            created_at=now,
        ))
        self.db.commit()

        logger.info(
            f"Exchange {transaction.id} requested by user {user_id}: {amount} {currency.upper()} "
            f"({direction.value}, {'frozen' if frozen else 'regular'}) at {rate}"
        )
        return {
            "success": True,
            "message": "Exchange request submitted",
            "transaction_id": transaction.id,
            "estimated_result": amount * rate,
            "available_balance": available_balance_display(profile, direction, exchange_type),
        }
