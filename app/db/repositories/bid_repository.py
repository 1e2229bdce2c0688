from typing import Optional, List
from sqlalchemy.orm import Session
from app.models.bid import Bid, BidStatus


class BidRepository:
    """Repository for bid database operations"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, bid: Bid) -> Bid:
        self.db.add(bid)
        self.db.flush()
        return bid

    def get_by_id(self, bid_id: str, for_update: bool = False) -> Optional[Bid]:
        query = self.db.query(Bid).filter(Bid.id == bid_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def get_for_nft(self, nft_id: str) -> List[Bid]:
        """All bids on an NFT, highest first"""
        return self.db.query(Bid).filter(Bid.nft_id == nft_id).order_by(Bid.bid_amount.desc()).all()

    def get_for_nfts(self, nft_ids: List[str]) -> List[Bid]:
        if not nft_ids:
            return []
        return self.db.query(Bid).filter(Bid.nft_id.in_(nft_ids)).order_by(Bid.created_at.desc()).all()

    def get_other_active(self, nft_id: str, exclude_bid_id: str) -> List[Bid]:
        return self.db.query(Bid).filter(
            Bid.nft_id == nft_id,
            Bid.id != exclude_bid_id,
            Bid.status == BidStatus.ACTIVE.value,
        ).with_for_update().all()
