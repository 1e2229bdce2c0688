"""
Bid Service
Placing bids on NFTs, the seller's fee preview, and bid acceptance as one
database transaction.
"""

import logging
import re
from datetime import datetime
from decimal import Decimal
from typing import Dict, Any, List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ValidationError, NotFoundError, PermissionDeniedError
from app.db.repositories.bid_repository import BidRepository
from app.db.repositories.nft_repository import NFTRepository
from app.db.repositories.user_repository import UserRepository
from app.models.bid import Bid, BidStatus
from app.models.nft import MarketplaceStatus
from app.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)

BIDDER_ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")


def is_valid_bidder_address(address: Optional[str]) -> bool:
    return bool(address) and BIDDER_ADDRESS_PATTERN.match(address) is not None


def calculate_fee_breakdown(amount: Decimal) -> Dict[str, Any]:
    """What the seller receives for a sale of ``amount``"""
    amount = Decimal(amount)
    platform_fee = amount * settings.PLATFORM_FEE_PERCENT / Decimal(100)
    return {
        "amount": amount,
        "platform_fee": platform_fee,
        "received_amount": amount - platform_fee,
        "platform_fee_percent": settings.PLATFORM_FEE_PERCENT,
        "freeze_duration_days": settings.FREEZE_PERIOD_DAYS,
    }


class BidService:
    def __init__(self, db: Session):
        self.db = db
        self.bids = BidRepository(db)
        self.nfts = NFTRepository(db)
        self.users = UserRepository(db)
        self.ledger = LedgerService(db)

    def place_bid(
        self,
        nft_id: str,
        bidder_address: str,
        bid_amount: Decimal,
        marketplace: Optional[str],
        now: datetime,
    ) -> Bid:
        nft = self.nfts.get_by_id(nft_id, for_update=True)
        if nft is None:
            raise NotFoundError(f"NFT with ID {nft_id} doesn't exist")

        if not is_valid_bidder_address(bidder_address):
            raise ValidationError("Invalid bidder address")

        if bid_amount is None or not Decimal(bid_amount).is_finite() or Decimal(bid_amount) <= 0:
            raise ValidationError("Bid amount must be greater than 0")

        bid = self.bids.add(Bid(
            nft_id=nft.id,
            bidder_address=bidder_address,
            bid_amount=Decimal(bid_amount),
            marketplace=marketplace or nft.marketplace,
            verified=False,
            status=BidStatus.ACTIVE.value,
            created_at=now,
        ))

        if nft.for_sale and nft.marketplace_status == MarketplaceStatus.WAITING_FOR_BIDS.value:
            nft.marketplace_status = MarketplaceStatus.AVAILABLE_BIDS.value

        self.db.commit()
        logger.info(f"Bid {bid.id} of {bid.bid_amount} placed on NFT {nft.id}")
        return bid

    def get_bids_for_nft(self, nft_id: str) -> List[Bid]:
        if not self.nfts.exists(nft_id):
            raise NotFoundError("NFT not found")
        return self.bids.get_for_nft(nft_id)

    def get_bids_on_owned(self, user_id: str) -> List[Bid]:
        return self.bids.get_for_nfts(self.nfts.get_owned_ids(user_id))

    def accept_bid(self, bid_id: str, user_id: str, now: datetime) -> Dict[str, Any]:
        """
        Accept a bid on an NFT the caller owns.

        The bid is accepted, every other active bid on the NFT is declined, the
        seller is credited the net amount as frozen funds and the NFT moves to
        the profile holding the bidder's wallet address (unowned when no
        profile holds it). Nothing is written unless every step succeeds.
        """
        bid = self.bids.get_by_id(bid_id, for_update=True)
        if bid is None:
            raise NotFoundError("Bid not found")

        nft = self.nfts.get_by_id(bid.nft_id, for_update=True)
        if nft is None:
            raise NotFoundError("NFT not found")

        if nft.owner_id != user_id:
            raise PermissionDeniedError("Only the owner of this NFT can accept bids")

        if bid.status != BidStatus.ACTIVE.value:
            raise ValidationError("This bid is no longer active")

        seller = self.users.get_profile(user_id, for_update=True)
        if seller is None:
            raise NotFoundError("Profile not found")

        buyer = self.users.get_profile_by_wallet(bid.bidder_address)
        if buyer is not None and buyer.user_id == user_id:
            logger.warning(f"Rejected self-bid {bid.id} on NFT {nft.id} by user {user_id}")
            raise ValidationError("You cannot accept a bid from your own wallet")

        breakdown = calculate_fee_breakdown(bid.bid_amount)

        try:
            bid.status = BidStatus.ACCEPTED.value
            for other in self.bids.get_other_active(nft.id, bid.id):
                other.status = BidStatus.DECLINED.value

            self.ledger.credit_frozen_sale(seller, breakdown["received_amount"], nft.name, now)

            nft.owner_id = buyer.user_id if buyer is not None else None
            nft.for_sale = False
            nft.marketplace_status = MarketplaceStatus.SOLD.value

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Bid {bid.id} accepted on NFT {nft.id}: seller {user_id} receives "
            f"{breakdown['received_amount']} ETH frozen for {settings.FREEZE_PERIOD_DAYS} days"
        )
        return {
            "success": True,
            "message": "Bid accepted successfully",
            "status": "settled",
            "breakdown": breakdown,
        }
