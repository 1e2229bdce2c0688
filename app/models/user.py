from sqlalchemy import Column, String, Boolean, DateTime, Numeric, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from enum import Enum
from decimal import Decimal
import uuid
from app.core.database import Base
from app.core.clock import utcnow


def generate_uuid() -> str:
    return str(uuid.uuid4())


class KYCStatus(str, Enum):
    NOT_STARTED = "not_started"
    IDENTITY_SUBMITTED = "identity_submitted"
    ADDRESS_SUBMITTED = "address_submitted"
    UNDER_REVIEW = "under_review"
    VERIFIED = "verified"
    REJECTED = "rejected"


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=generate_uuid)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    login = Column(String, unique=True, index=True, nullable=False)
    nickname = Column(String, nullable=False)
    birth_date = Column(String, nullable=False)  # ISO 8601 date as entered at registration
    country = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    profile = relationship("Profile", back_populates="user", uselist=False)


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String, primary_key=True, default=generate_uuid)
    user_id = Column(String, ForeignKey("users.id"), unique=True, nullable=False, index=True)
    login = Column(String, nullable=False)
    email = Column(String, nullable=False)
    country = Column(String, nullable=True)
    avatar_url = Column(String, nullable=True)

    # ETH pools
    balance = Column(Numeric(28, 10), nullable=False, default=Decimal("0"))
    frozen_balance = Column(Numeric(28, 10), nullable=False, default=Decimal("0"))
    # USDT pools
    usdt_balance = Column(Numeric(28, 10), nullable=False, default=Decimal("0"))
    frozen_usdt_balance = Column(Numeric(28, 10), nullable=False, default=Decimal("0"))

    wallet_address = Column(String, nullable=True, unique=True)

    # KYC
    kyc_status = Column(String, nullable=False, default=KYCStatus.NOT_STARTED.value)
    kyc_identity_doc = Column(String, nullable=True)  # object storage key
    kyc_address_doc = Column(String, nullable=True)
    kyc_rejection_reason = Column(String, nullable=True)
    verified = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, onupdate=func.now())

    user = relationship("User", back_populates="profile")
