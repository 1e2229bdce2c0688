"""
Display formatting for ledger rows: short dates, signed amounts, status
labels and badges, plus the free-text search applied to a fetched page.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, List, Optional, Union

from app.models.transaction import Transaction, TransactionStatus, TransactionType

DateLike = Union[datetime, str]

CREDIT_TYPES = {TransactionType.DEPOSIT.value, TransactionType.SALE.value}
DEBIT_TYPES = {TransactionType.WITHDRAW.value, TransactionType.PURCHASE.value}

STATUS_LABELS = {
    TransactionStatus.PENDING.value: "Pending",
    TransactionStatus.COMPLETED.value: "Completed",
    TransactionStatus.FAILED.value: "Failed",
}

# Narrow screens
COMPACT_STATUS_LABELS = {
    TransactionStatus.PENDING.value: "Pend.",
    TransactionStatus.COMPLETED.value: "Done",
    TransactionStatus.FAILED.value: "Fail",
}


def _to_utc(value: DateLike) -> datetime:
    """Parse ISO strings (``Z`` suffix included); naive datetimes are taken as UTC"""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def format_transaction_date(created_at: DateLike) -> str:
    """DD/MM"""
    return _to_utc(created_at).strftime("%d/%m")


def format_frozen_until(frozen_until: Optional[DateLike]) -> Optional[str]:
    """DD/MM/YYYY"""
    if frozen_until is None:
        return None
    return _to_utc(frozen_until).strftime("%d/%m/%Y")


def plain_amount(amount: Union[Decimal, str, int, float]) -> str:
    value = Decimal(str(amount))
    if value == value.to_integral_value():
        return str(value.quantize(Decimal(1)))
    return format(value.normalize(), "f")


def format_signed_amount(transaction_type: str, amount: Union[Decimal, str, int, float]) -> str:
    text = plain_amount(amount)
    if transaction_type in CREDIT_TYPES:
        return f"+{text}"
    if transaction_type in DEBIT_TYPES:
        return f"-{text}"
    return text


def status_label(status: str, compact: bool = False) -> str:
    labels = COMPACT_STATUS_LABELS if compact else STATUS_LABELS
    return labels.get(status, status)


def transaction_badges(transaction: Transaction, now: datetime) -> List[str]:
    badges = []
    if transaction.is_frozen and transaction.frozen_until is not None and _to_utc(transaction.frozen_until) > now:
        badges.append("frozen")
    if transaction.status == TransactionStatus.PENDING.value:
        badges.append("pending")
    return badges


def matches_search(transaction: Transaction, term: Optional[str]) -> bool:
    if not term or not term.strip():
        return True

    needle = term.strip().lower()
    haystack = (
        plain_amount(transaction.amount),
        transaction.type or "",
        transaction.status or "",
    )
    return any(needle in field.lower() for field in haystack)


def search_transactions(transactions: Iterable[Transaction], term: Optional[str]) -> List[Transaction]:
    return [tx for tx in transactions if matches_search(tx, term)]
