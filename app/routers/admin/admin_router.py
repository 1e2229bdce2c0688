"""
Operator Router
Settles pending ledger rows, releases matured frozen funds and records KYC
decisions. Every endpoint requires the X-Admin-Key header.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
import logging

from app.core.clock import Clock, get_clock
from app.core.database import get_db
from app.core.dependencies import require_admin_key
from app.models.schemas import (
    SettleTransactionRequest, TransactionView, ReleaseFrozenResponse,
    KYCReviewRequest, KYCSubmissionResponse
)
from app.services.ledger_service import LedgerService, serialize_transaction
from app.services.profile_service import ProfileService

# Set up logging
logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin_key)])


@router.post("/transactions/{transaction_id}/settle", response_model=TransactionView)
def settle_transaction(
    transaction_id: str,
    payload: SettleTransactionRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """Complete or fail a pending transaction and apply its balance effect"""
    now = clock()
    transaction = LedgerService(db).settle_transaction(transaction_id, payload.status, now)
    logger.info(f"Operator settled transaction {transaction_id} as {payload.status.value}")
    return serialize_transaction(transaction, now)


@router.post("/frozen/release", response_model=ReleaseFrozenResponse)
def release_frozen_balances(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    """Move every matured frozen row into its available pool"""
    released = LedgerService(db).process_frozen_balances(clock())
    logger.info(f"Released {released} frozen transactions")
    return {"released": released}


@router.post("/kyc/{user_id}/review", response_model=KYCSubmissionResponse)
def review_kyc(user_id: str, payload: KYCReviewRequest, db: Session = Depends(get_db)):
    profile = ProfileService(db).review_kyc(user_id, payload.approved, payload.reason)
    return {
        "success": True,
        "message": "KYC approved" if payload.approved else "KYC rejected",
        "kyc_status": profile.kyc_status,
    }
