from sqlalchemy import Column, String, Boolean, DateTime, Numeric, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from enum import Enum
from app.core.database import Base
from app.core.clock import utcnow
from app.models.user import generate_uuid


class BidStatus(str, Enum):
    ACTIVE = "active"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class Bid(Base):
    __tablename__ = "nft_bids"

    id = Column(String, primary_key=True, default=generate_uuid)
    nft_id = Column(String, ForeignKey("nfts.id"), nullable=False, index=True)
    bidder_address = Column(String, nullable=False)
    bid_amount = Column(Numeric(28, 10), nullable=False)
    marketplace = Column(String, nullable=True)
    verified = Column(Boolean, nullable=False, default=False)
    status = Column(String, nullable=False, default=BidStatus.ACTIVE.value)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, onupdate=func.now())

    nft = relationship("NFT", back_populates="bids")
