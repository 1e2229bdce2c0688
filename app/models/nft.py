from sqlalchemy import Column, String, Boolean, DateTime, JSON, Text, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from enum import Enum
from app.core.database import Base
from app.core.clock import utcnow
from app.models.user import generate_uuid


class MarketplaceStatus(str, Enum):
    WAITING_FOR_BIDS = "waiting_for_bids"
    AVAILABLE_BIDS = "available_bids"
    SOLD = "sold"
    UNLISTED = "unlisted"


class NFT(Base):
    __tablename__ = "nfts"

    id = Column(String, primary_key=True, default=generate_uuid)
    name = Column(String, nullable=False)
    image = Column(String, nullable=False)
    price = Column(String, nullable=False)  # decimal string, kept verbatim for display
    creator = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    properties = Column(JSON, nullable=True)  # [{"key": ..., "value": ...}]
    token_standard = Column(String, nullable=True)
    owner_id = Column(String, ForeignKey("users.id"), nullable=True, index=True)
    for_sale = Column(Boolean, nullable=False, default=False)
    marketplace = Column(String, nullable=True)
    marketplace_status = Column(String, nullable=True)
    end_time = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, onupdate=func.now())

    bids = relationship("Bid", back_populates="nft", lazy="dynamic")
