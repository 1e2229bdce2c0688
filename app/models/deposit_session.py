from sqlalchemy import Column, String, DateTime, Numeric, ForeignKey
from sqlalchemy.sql import func
from enum import Enum
from app.core.database import Base
from app.core.clock import utcnow
from app.models.user import generate_uuid


class DepositState(str, Enum):
    AMOUNT_ENTRY = "amount_entry"
    HASH_CONFIRMATION = "hash_confirmation"
    UNDER_REVIEW = "under_review"
    REJECTED = "rejected"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class DepositSession(Base):
    """
    One deposit attempt and its countdown. The deadline lives on the row, so
    every attempt has its own timer.
    """
    __tablename__ = "deposit_sessions"

    id = Column(String, primary_key=True, default=generate_uuid)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(28, 10), nullable=True)
    state = Column(String, nullable=False, default=DepositState.AMOUNT_ENTRY.value)
    expires_at = Column(DateTime, nullable=True)

    transaction_hash = Column(String, nullable=True)
    submitted_at = Column(DateTime, nullable=True)
    review_until = Column(DateTime, nullable=True)
    transaction_id = Column(String, ForeignKey("transactions.id"), nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, onupdate=func.now())
