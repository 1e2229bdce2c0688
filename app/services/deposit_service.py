"""
Deposit Service
Drives a deposit attempt from amount entry through hash confirmation and
review. Deadlines are stored on the session row and resolved whenever the
session is touched, so nothing runs in the background.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Any, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ValidationError, NotFoundError
from app.db.repositories.deposit_repository import DepositSessionRepository
from app.db.repositories.transaction_repository import TransactionRepository
from app.models.deposit_session import DepositSession, DepositState
from app.models.transaction import Transaction, TransactionType, TransactionStatus, CurrencyType
from app.services.ledger_service import require_positive

logger = logging.getLogger(__name__)

OPEN_STATES = {DepositState.AMOUNT_ENTRY.value, DepositState.HASH_CONFIRMATION.value}


def countdown_breakdown(deadline: Optional[datetime], now: datetime) -> Dict[str, int]:
    """Time left until ``deadline``, clamped to zero"""
    if deadline is None:
        remaining = 0
    else:
        remaining = max(0, int((deadline - now).total_seconds()))

    days, remaining = divmod(remaining, 86400)
    hours, remaining = divmod(remaining, 3600)
    minutes, seconds = divmod(remaining, 60)
    return {"days": days, "hours": hours, "minutes": minutes, "seconds": seconds}


def fraud_warning() -> Dict[str, str]:
    return {
        "title": "Rejected",
        "message": "Please contact support",
        "support_url": settings.SUPPORT_CONTACT_URL,
    }


class DepositService:
    def __init__(self, db: Session):
        self.db = db
        self.sessions = DepositSessionRepository(db)
        self.transactions = TransactionRepository(db)

    def start_session(self, user_id: str, amount: Optional[Decimal], now: datetime) -> DepositSession:
        """Open a deposit; with an amount it goes straight to hash confirmation"""
        if amount is not None:
            amount = require_positive(amount)

        session = self.sessions.add(DepositSession(
            user_id=user_id,
            state=DepositState.AMOUNT_ENTRY.value,
            created_at=now,
        ))
        if amount is not None:
            self._begin_hash_confirmation(session, amount, now)

        self.db.commit()
        logger.info(f"Deposit session {session.id} opened for user {user_id} in state {session.state}")
        return session

    def confirm_amount(self, session_id: str, user_id: str, amount: Optional[Decimal], now: datetime) -> DepositSession:
        session = self.get_session(session_id, user_id, now)
        if session.state != DepositState.AMOUNT_ENTRY.value:
            raise ValidationError("Deposit amount has already been confirmed")

        self._begin_hash_confirmation(session, require_positive(amount), now)
        self.db.commit()
        return session

    def submit_hash(self, session_id: str, user_id: str, transaction_hash: str, now: datetime) -> DepositSession:
        session = self.get_session(session_id, user_id, now)

        if session.state == DepositState.EXPIRED.value:
            raise ValidationError("Deposit window has expired")
        if session.state != DepositState.HASH_CONFIRMATION.value:
            raise ValidationError("This deposit is not awaiting a transaction hash")

        transaction_hash = (transaction_hash or "").strip()
        if len(transaction_hash) < settings.MIN_TRANSACTION_HASH_LENGTH:
            raise ValidationError("Invalid hash, please check your input")

        transaction = self.transactions.add(Transaction(
            user_id=user_id,
            type=TransactionType.DEPOSIT.value,
            amount=session.amount,
            status=TransactionStatus.PENDING.value,
            currency_type=CurrencyType.ETH.value,
            wallet_address=settings.DEPOSIT_WALLET_ADDRESS,
            transaction_hash=transaction_hash,
            created_at=now,
        ))

        session.transaction_hash = transaction_hash
        session.transaction_id = transaction.id
        session.submitted_at = now
        session.review_until = now + timedelta(seconds=settings.DEPOSIT_REVIEW_SECONDS)
        session.state = DepositState.UNDER_REVIEW.value
        self.db.commit()

        logger.info(f"Deposit session {session.id} submitted hash {transaction_hash} for review")
        return session

    def cancel(self, session_id: str, user_id: str, now: datetime) -> DepositSession:
        session = self.get_session(session_id, user_id, now)
        if session.state not in OPEN_STATES:
            raise ValidationError(f"Deposit cannot be cancelled while {session.state}")

        session.state = DepositState.CANCELLED.value
        session.expires_at = None
        self.db.commit()
        logger.info(f"Deposit session {session.id} cancelled")
        return session

    def get_session(self, session_id: str, user_id: str, now: datetime) -> DepositSession:
        session = self.sessions.get_for_user(session_id, user_id)
        if session is None:
            raise NotFoundError("Deposit session not found")

        if self._resolve_deadlines(session, now):
            self.db.commit()
        return session

    def serialize(self, session: DepositSession, now: datetime) -> Dict[str, Any]:
        counting = session.state == DepositState.HASH_CONFIRMATION.value
        return {
            "id": session.id,
            "amount": session.amount,
            "state": session.state,
            "deposit_address": settings.DEPOSIT_WALLET_ADDRESS,
            "expires_at": session.expires_at,
            "time_left": countdown_breakdown(session.expires_at if counting else None, now),
            "transaction_id": session.transaction_id,
            "review_until": session.review_until,
            "fraud_warning": fraud_warning() if session.state == DepositState.REJECTED.value else None,
        }

    def _begin_hash_confirmation(self, session: DepositSession, amount: Decimal, now: datetime) -> None:
        session.amount = amount
        session.state = DepositState.HASH_CONFIRMATION.value
        session.expires_at = now + timedelta(minutes=settings.DEPOSIT_WINDOW_MINUTES)

    def _resolve_deadlines(self, session: DepositSession, now: datetime) -> bool:
        """Apply any deadline that has passed; True when the session changed"""
        if session.state == DepositState.HASH_CONFIRMATION.value and session.expires_at and now >= session.expires_at:
            session.state = DepositState.EXPIRED.value
            logger.info(f"Deposit session {session.id} expired")
            return True

        if session.state == DepositState.UNDER_REVIEW.value and session.review_until and now >= session.review_until:
            # Review always ends in rejection; the hash is never checked on chain
            session.state = DepositState.REJECTED.value
            if session.transaction_id:
                transaction = self.transactions.get_by_id(session.transaction_id, for_update=True)
                if transaction is not None and transaction.status == TransactionStatus.PENDING.value:
                    transaction.status = TransactionStatus.FAILED.value
            logger.warning(f"Deposit session {session.id} rejected after review")
            return True

        return False
