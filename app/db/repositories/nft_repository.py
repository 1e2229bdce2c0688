from typing import Optional, List, Tuple
from sqlalchemy import or_
from sqlalchemy.orm import Session
from app.models.nft import NFT


def escape_like(term: str) -> str:
    """Match %, _ and the escape character literally in a LIKE pattern"""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class NFTRepository:
    """Repository for NFT database operations"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, nft_data: dict) -> NFT:
        nft = NFT(**nft_data)
        self.db.add(nft)
        self.db.commit()
        self.db.refresh(nft)
        return nft

    def get_by_id(self, nft_id: str, for_update: bool = False) -> Optional[NFT]:
        query = self.db.query(NFT).filter(NFT.id == nft_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def exists(self, nft_id: str) -> bool:
        return self.db.query(NFT.id).filter(NFT.id == nft_id).first() is not None

    def get_page(
        self,
        page: int = 1,
        limit: int = 8,
        search: Optional[str] = None,
        for_sale: Optional[bool] = None,
    ) -> Tuple[List[NFT], int]:
        """Page-based listing, newest first; returns the page and the total match count"""
        query = self.db.query(NFT)

        if search:
            pattern = f"%{escape_like(search)}%"
            query = query.filter(or_(
                NFT.name.ilike(pattern, escape="\\"),
                NFT.creator.ilike(pattern, escape="\\"),
            ))

        if for_sale is not None:
            query = query.filter(NFT.for_sale == for_sale)

        total = query.count()
        offset = (page - 1) * limit
        nfts = query.order_by(NFT.created_at.desc(), NFT.id).offset(offset).limit(limit).all()
        return nfts, total

    def get_owned(self, owner_id: str) -> List[NFT]:
        return self.db.query(NFT).filter(NFT.owner_id == owner_id).order_by(NFT.created_at.desc()).all()

    def get_owned_ids(self, owner_id: str) -> List[str]:
        return [row.id for row in self.db.query(NFT.id).filter(NFT.owner_id == owner_id).all()]
