from sqlalchemy import Column, String, Boolean, DateTime, Numeric, ForeignKey
from sqlalchemy.sql import func
from enum import Enum
from app.core.database import Base
from app.core.clock import utcnow
from app.models.user import generate_uuid


class TransactionType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    PURCHASE = "purchase"
    SALE = "sale"
    EXCHANGE = "exchange"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class CurrencyType(str, Enum):
    ETH = "eth"
    USDT = "usdt"


class ExchangeDirection(str, Enum):
    ETH_TO_USDT = "eth_to_usdt"
    USDT_TO_ETH = "usdt_to_eth"


class ExchangeType(str, Enum):
    REGULAR = "regular"
    FROZEN = "frozen"


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String, primary_key=True, default=generate_uuid)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String, nullable=False, index=True)
    amount = Column(Numeric(28, 10), nullable=False)
    status = Column(String, nullable=False, default=TransactionStatus.PENDING.value)
    currency_type = Column(String, nullable=True)  # eth or usdt; the source currency for exchanges
    item = Column(String, nullable=True)  # NFT name for purchase/sale rows

    # Frozen funds
    is_frozen = Column(Boolean, nullable=False, default=False)
    is_frozen_exchange = Column(Boolean, nullable=False, default=False)
    frozen_until = Column(DateTime, nullable=True)

    # Request details
    wallet_address = Column(String, nullable=True)  # withdrawal destination
    transaction_hash = Column(String, nullable=True)  # deposit hash as entered by the user
    exchange_direction = Column(String, nullable=True)
    exchange_rate = Column(Numeric(28, 10), nullable=True)  # rate in force when requested

    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, onupdate=func.now())


class FrozenLot(Base):
    """
    Frozen funds waiting for release.

    Sale proceeds open a lot; a frozen exchange shrinks the lots it draws from
    and opens new ones in the target currency with the same release date. The
    open lots of a user always add up to their frozen pools.
    """
    __tablename__ = "frozen_lots"

    id = Column(String, primary_key=True, default=generate_uuid)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    transaction_id = Column(String, ForeignKey("transactions.id"), nullable=False)  # row that produced the lot
    amount = Column(Numeric(28, 10), nullable=False)
    currency_type = Column(String, nullable=False)
    release_at = Column(DateTime, nullable=False, index=True)
    released = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
