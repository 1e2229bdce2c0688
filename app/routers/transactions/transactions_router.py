from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from app.core.clock import Clock, get_clock
from app.core.database import get_db
from app.core.dependencies import get_current_user
from app.models.user import User
from app.models.schemas import (
    TransactionPage, TransactionTotals, TransactionView,
    FrozenBalancesResponse, WithdrawRequest
)
from app.services.ledger_service import (
    LedgerService, TransactionFilter, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, serialize_transaction
)
from datetime import datetime
from typing import Optional
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=TransactionPage)
def list_transactions(
    filter: TransactionFilter = Query(TransactionFilter.ALL),
    before: Optional[datetime] = None,
    before_id: Optional[str] = None,
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    search: Optional[str] = None,
    compact: bool = False,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """
    Transaction history, newest first.

    Pass the returned ``next_cursor`` and ``next_cursor_id`` as ``before`` and
    ``before_id`` to load the next page.
    """
    if before is not None and before.tzinfo is not None:
        before = before.replace(tzinfo=None) - before.utcoffset()

    return LedgerService(db).list_transactions(
        current_user.id,
        clock(),
        filter_type=filter,
        before=before,
        before_id=before_id,
        limit=limit,
        search=search,
        compact=compact,
    )


@router.get("/totals", response_model=TransactionTotals)
def get_transaction_totals(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return LedgerService(db).get_totals(current_user.id)


@router.get("/frozen", response_model=FrozenBalancesResponse)
def get_frozen_balances(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """Frozen pools and the release date of each frozen row"""
    return LedgerService(db).get_frozen_balances(current_user.id, clock())


@router.post("/withdraw", response_model=TransactionView, status_code=status.HTTP_201_CREATED)
def request_withdrawal(
    payload: WithdrawRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    now = clock()
    transaction = LedgerService(db).request_withdrawal(
        current_user.id, payload.amount, payload.wallet_address, now
    )
    return serialize_transaction(transaction, now)
