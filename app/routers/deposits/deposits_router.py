from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from app.core.clock import Clock, get_clock
from app.core.database import get_db
from app.core.dependencies import get_current_user
from app.models.user import User
from app.models.schemas import DepositCreate, DepositHashRequest, DepositSessionResponse
from app.services.deposit_service import DepositService
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=DepositSessionResponse, status_code=status.HTTP_201_CREATED)
def start_deposit(
    payload: DepositCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """Open a deposit session; sending an amount starts the 30 minute window"""
    now = clock()
    service = DepositService(db)
    session = service.start_session(current_user.id, payload.amount, now)
    return service.serialize(session, now)


@router.get("/{session_id}", response_model=DepositSessionResponse)
def get_deposit(
    session_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    now = clock()
    service = DepositService(db)
    return service.serialize(service.get_session(session_id, current_user.id, now), now)


@router.post("/{session_id}/amount", response_model=DepositSessionResponse)
def confirm_deposit_amount(
    session_id: str,
    payload: DepositCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    now = clock()
    service = DepositService(db)
    session = service.confirm_amount(session_id, current_user.id, payload.amount, now)
    return service.serialize(session, now)


@router.post("/{session_id}/hash", response_model=DepositSessionResponse)
def submit_deposit_hash(
    session_id: str,
    payload: DepositHashRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """Submit the on-chain transaction hash for review"""
    now = clock()
    service = DepositService(db)
    session = service.submit_hash(session_id, current_user.id, payload.transaction_hash, now)
    return service.serialize(session, now)


@router.delete("/{session_id}", response_model=DepositSessionResponse)
def cancel_deposit(
    session_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    now = clock()
    service = DepositService(db)
    session = service.cancel(session_id, current_user.id, now)
    return service.serialize(session, now)
