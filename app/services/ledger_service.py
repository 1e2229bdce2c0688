"""
Ledger Service
Reads and writes the per-user transaction ledger and keeps the four balance
pools of a profile (ETH/USDT, available/frozen) consistent with it.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional, List, Dict, Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    ValidationError,
    InsufficientFundsError,
    NotFoundError,
)
from app.db.repositories.transaction_repository import TransactionRepository
from app.db.repositories.user_repository import UserRepository
from app.models.transaction import (
    Transaction,
    TransactionType,
    TransactionStatus,
    CurrencyType,
    ExchangeDirection,
    FrozenLot,
)
from app.models.user import Profile
from app.utils.transaction_format import (
    format_transaction_date,
    format_frozen_until,
    format_signed_amount,
    status_label,
    transaction_badges,
    search_transactions,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
FILTERED_PAGE_SIZE = 20

INVALID_AMOUNT_MESSAGE = "Please enter a valid amount greater than 0"


class TransactionFilter(str, Enum):
    ALL = "all"
    DEPOSIT = "deposit"
    EXCHANGE = "exchange"


def balance_field(currency: str, frozen: bool) -> str:
    """Profile attribute holding the given pool"""
    if currency == CurrencyType.USDT.value:
        return "frozen_usdt_balance" if frozen else "usdt_balance"
    return "frozen_balance" if frozen else "balance"


def get_pool(profile: Profile, currency: str, frozen: bool) -> Decimal:
    return Decimal(getattr(profile, balance_field(currency, frozen)) or 0)


def adjust_pool(profile: Profile, currency: str, frozen: bool, delta: Decimal) -> None:
    field = balance_field(currency, frozen)
    setattr(profile, field, get_pool(profile, currency, frozen) + delta)


def require_positive(amount: Optional[Decimal]) -> Decimal:
    if amount is None or not Decimal(amount).is_finite() or Decimal(amount) <= 0:
        raise ValidationError(INVALID_AMOUNT_MESSAGE)
    return Decimal(amount)


def serialize_transaction(transaction: Transaction, now: datetime, compact: bool = False) -> Dict[str, Any]:
    return {
        "id": transaction.id,
        "type": transaction.type,
        "amount": transaction.amount,
        "amount_display": format_signed_amount(transaction.type, transaction.amount),
        "status": transaction.status,
        "status_label": status_label(transaction.status, compact),
        "currency_type": transaction.currency_type,
        "item": transaction.item,
        "created_at": transaction.created_at,
        "date_display": format_transaction_date(transaction.created_at),
        "is_frozen": bool(transaction.is_frozen),
        "is_frozen_exchange": bool(transaction.is_frozen_exchange),
        "frozen_until": transaction.frozen_until,
        "frozen_until_display": format_frozen_until(transaction.frozen_until),
        "badges": transaction_badges(transaction, now),
    }


class LedgerService:
    def __init__(self, db: Session):
        self.db = db
        self.transactions = TransactionRepository(db)
        self.users = UserRepository(db)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_transactions(
        self,
        user_id: str,
        now: datetime,
        filter_type: TransactionFilter = TransactionFilter.ALL,
        before: Optional[datetime] = None,
        before_id: Optional[str] = None,
        limit: int = DEFAULT_PAGE_SIZE,
        search: Optional[str] = None,
        compact: bool = False,
    ) -> Dict[str, Any]:
        """
        One page of the ledger, newest first.

        ``deposit`` and ``exchange`` filters replace the page with up to 20
        rows of that type and do not paginate. Query failures degrade to an
        empty page.
        """
        limit = max(1, min(limit, MAX_PAGE_SIZE))

        try:
            if filter_type == TransactionFilter.ALL:
                rows = self.transactions.get_page(user_id, limit=limit, before=before, before_id=before_id)
                has_more = len(rows) == limit
            else:
                rows = self.transactions.get_page(
                    user_id, limit=FILTERED_PAGE_SIZE, transaction_type=filter_type.value
                )
                has_more = False
        except SQLAlchemyError as e:
            logger.error(f"Error fetching transactions for user {user_id}: {e}")
            self.db.rollback()
            return {"transactions": [], "has_more": False, "next_cursor": None, "next_cursor_id": None}

        last = rows[-1] if rows and has_more else None
        visible = search_transactions(rows, search)
        return {
            "transactions": [serialize_transaction(tx, now, compact) for tx in visible],
            "has_more": has_more,
            "next_cursor": last.created_at if last else None,
            "next_cursor_id": last.id if last else None,
        }

    def get_totals(self, user_id: str) -> Dict[str, Decimal]:
        return {
            "total_deposits": self.transactions.sum_completed(user_id, TransactionType.DEPOSIT),
            "total_withdrawals": self.transactions.sum_completed(user_id, TransactionType.WITHDRAW),
        }

    def get_frozen_balances(self, user_id: str, now: datetime) -> Dict[str, Any]:
        profile = self._require_profile(user_id)

        unfreezing = []
        for lot in self.transactions.get_open_lots(user_id):
            remaining = lot.release_at - now
            days_left = max(0, remaining.days + (1 if remaining.seconds or remaining.microseconds else 0))
            unfreezing.append({
                "transaction_id": lot.transaction_id,
                "amount": lot.amount,
                "currency_type": lot.currency_type,
                "unfreeze_date": lot.release_at,
                "days_left": days_left,
            })

        return {
            "frozen_balance": profile.frozen_balance,
            "frozen_usdt_balance": profile.frozen_usdt_balance,
            "unfreezing": unfreezing,
        }

    # ------------------------------------------------------------------
    # Requests (always pending)
    # ------------------------------------------------------------------

    def request_withdrawal(
        self,
        user_id: str,
        amount: Optional[Decimal],
        wallet_address: Optional[str],
        now: datetime,
    ) -> Transaction:
        amount = require_positive(amount)
        profile = self._require_profile(user_id)

        available = get_pool(profile, CurrencyType.ETH.value, frozen=False)
        if amount > available:
            raise InsufficientFundsError("Insufficient funds")

        if not wallet_address or not wallet_address.strip():
            raise ValidationError("Please enter a wallet address for the withdrawal")

        transaction = self.transactions.add(Transaction(
            user_id=user_id,
            type=TransactionType.WITHDRAW.value,
            amount=amount,
            status=TransactionStatus.PENDING.value,
            currency_type=CurrencyType.ETH.value,
            wallet_address=wallet_address.strip(),
            created_at=now,
        ))
        self.db.commit()
        logger.info(f"Withdrawal of {amount} ETH requested by user {user_id}")
        return transaction

    # ------------------------------------------------------------------
    # Frozen funds
    # ------------------------------------------------------------------

    def credit_frozen_sale(
        self,
        profile: Profile,
        amount: Decimal,
        item: Optional[str],
        now: datetime,
    ) -> Transaction:
        """
        Credit sale proceeds to the seller's frozen ETH pool, record the
        completed sale row and open the lot that will release it. The caller
        commits.
        """
        release_at = now + timedelta(days=settings.FREEZE_PERIOD_DAYS)
        adjust_pool(profile, CurrencyType.ETH.value, frozen=True, delta=amount)
        sale = self.transactions.add(Transaction(
            user_id=profile.user_id,
            type=TransactionType.SALE.value,
            amount=amount,
            status=TransactionStatus.COMPLETED.value,
            currency_type=CurrencyType.ETH.value,
            item=item,
            is_frozen=True,
            frozen_until=release_at,
            created_at=now,
        ))
        self.transactions.add_lot(FrozenLot(
            user_id=profile.user_id,
            transaction_id=sale.id,
            amount=amount,
            currency_type=CurrencyType.ETH.value,
            release_at=release_at,
            created_at=now,
        ))
        return sale

    def process_frozen_balances(self, now: datetime) -> int:
        """Move matured frozen lots into the available pools"""
        released = 0
        for lot in self.transactions.get_matured_lots(now):
            profile = self.users.get_profile(lot.user_id, for_update=True)
            if profile is None:
                logger.error(f"Frozen lot {lot.id} has no profile to release into")
                continue

            amount = Decimal(lot.amount)
            adjust_pool(profile, lot.currency_type, frozen=True, delta=-amount)
            adjust_pool(profile, lot.currency_type, frozen=False, delta=amount)
            lot.released = True
            released += 1
            logger.info(
                f"Released {amount} {lot.currency_type.upper()} from transaction "
                f"{lot.transaction_id} for user {lot.user_id}"
            )

        self.db.commit()
        return released

    # ------------------------------------------------------------------
    # Settlement (operator)
    # ------------------------------------------------------------------

    def settle_transaction(self, transaction_id: str, new_status: TransactionStatus, now: datetime) -> Transaction:
        transaction = self.transactions.get_by_id(transaction_id, for_update=True)
        if transaction is None:
            raise NotFoundError("Transaction not found")

        if transaction.status != TransactionStatus.PENDING.value:
            raise ValidationError(f"Transaction is already {transaction.status}")

        if new_status == TransactionStatus.PENDING:
            raise ValidationError("Transactions can only be settled as completed or failed")

        if new_status == TransactionStatus.COMPLETED:
            profile = self.users.get_profile(transaction.user_id, for_update=True)
            if profile is None:
                raise NotFoundError("Profile not found")
            self._apply_balance_effect(transaction, profile, now)

        transaction.status = new_status.value
        self.db.commit()
        logger.info(f"Transaction {transaction.id} settled as {new_status.value}")
        return transaction

    def _apply_balance_effect(self, transaction: Transaction, profile: Profile, now: datetime) -> None:
        amount = Decimal(transaction.amount)
        currency = transaction.currency_type or CurrencyType.ETH.value

        if transaction.type == TransactionType.DEPOSIT.value:
            adjust_pool(profile, currency, frozen=False, delta=amount)

        elif transaction.type == TransactionType.WITHDRAW.value:
            if amount > get_pool(profile, currency, frozen=False):
                raise InsufficientFundsError("Insufficient funds to complete the withdrawal")
            adjust_pool(profile, currency, frozen=False, delta=-amount)

        elif transaction.type == TransactionType.EXCHANGE.value:
            self._apply_exchange(transaction, profile, amount, now)

        else:
            raise ValidationError(f"{transaction.type} transactions are settled when they are created")

    def _apply_exchange(self, transaction: Transaction, profile: Profile, amount: Decimal, now: datetime) -> None:
        direction = ExchangeDirection(transaction.exchange_direction)
        source, target = (
            (CurrencyType.ETH.value, CurrencyType.USDT.value)
            if direction == ExchangeDirection.ETH_TO_USDT
            else (CurrencyType.USDT.value, CurrencyType.ETH.value)
        )
        rate = Decimal(transaction.exchange_rate)
        frozen = bool(transaction.is_frozen_exchange)

        if amount > get_pool(profile, source, frozen=frozen):
            raise InsufficientFundsError("Insufficient funds to complete the exchange")

        adjust_pool(profile, source, frozen=frozen, delta=-amount)
        adjust_pool(profile, target, frozen=frozen, delta=amount * rate)

        if frozen:
            self._convert_frozen_lots(transaction, source, target, amount, rate, now)

    def _convert_frozen_lots(
        self,
        transaction: Transaction,
        source: str,
        target: str,
        amount: Decimal,
        rate: Decimal,
        now: datetime,
    ) -> None:
        """
        Move frozen lots from the source to the target currency so the frozen
        pools keep matching the lots that will release them. Lots are drawn
        soonest-release first and the converted part keeps its release date.
        Ledger rows are left as recorded.
        """
        user_id = transaction.user_id
        remaining = amount
        lots: List[FrozenLot] = self.transactions.get_open_lots(user_id, currency=source)

        for lot in lots:
            if remaining <= 0:
                break

            lot_amount = Decimal(lot.amount)
            taken = min(lot_amount, remaining)
            lot.amount = lot_amount - taken
            if lot.amount == 0:
                # fully converted
                lot.released = True

            self.transactions.add_lot(FrozenLot(
                user_id=user_id,
                transaction_id=transaction.id,
                amount=taken * rate,
                currency_type=target,
                release_at=lot.release_at,
                created_at=now,
            ))
            remaining -= taken

        if remaining > 0:
            logger.warning(
                f"Frozen exchange for user {user_id} exceeded frozen lots by {remaining} {source.upper()}"
            )

    def _require_profile(self, user_id: str) -> Profile:
        profile = self.users.get_profile(user_id)
        if profile is None:
            raise NotFoundError("Profile not found")
        return profile
