"""
Marketplace Service
NFT catalogue, owner listing controls, and direct purchases.
"""

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, Any, List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import (
    ValidationError,
    InsufficientFundsError,
    NotFoundError,
    PermissionDeniedError,
)
from app.db.repositories.nft_repository import NFTRepository
from app.db.repositories.transaction_repository import TransactionRepository
from app.db.repositories.user_repository import UserRepository
from app.models.nft import NFT, MarketplaceStatus
from app.models.transaction import Transaction, TransactionType, TransactionStatus, CurrencyType
from app.services.bid_service import calculate_fee_breakdown
from app.services.ledger_service import LedgerService, get_pool, adjust_pool

logger = logging.getLogger(__name__)

DEFAULT_PAGE_LIMIT = 8
MAX_PAGE_LIMIT = 100


def parse_price(price: Optional[str]) -> Decimal:
    """Prices are non-negative decimal strings"""
    try:
        value = Decimal(str(price).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("Price must be a valid number")

    if not value.is_finite() or value < 0:
        raise ValidationError("Price must be a valid number")
    return value


class MarketplaceService:
    def __init__(self, db: Session):
        self.db = db
        self.nfts = NFTRepository(db)
        self.users = UserRepository(db)
        self.transactions = TransactionRepository(db)
        self.ledger = LedgerService(db)

    # ------------------------------------------------------------------
    # Catalogue
    # ------------------------------------------------------------------

    def get_page(
        self,
        page: int = 1,
        limit: int = DEFAULT_PAGE_LIMIT,
        search: Optional[str] = None,
        for_sale: Optional[bool] = None,
    ) -> Dict[str, Any]:
        page = max(1, page)
        limit = max(1, min(limit, MAX_PAGE_LIMIT))
        search = search.strip() if search and search.strip() else None

        nfts, total = self.nfts.get_page(page=page, limit=limit, search=search, for_sale=for_sale)
        return {
            "nfts": nfts,
            "hasMore": page * limit < total,
            "total": total,
        }

    def get_nft(self, nft_id: str) -> NFT:
        nft = self.nfts.get_by_id(nft_id)
        if nft is None:
            raise NotFoundError("NFT not found")
        return nft

    def get_owned(self, user_id: str) -> List[NFT]:
        return self.nfts.get_owned(user_id)

    def create_nft(self, owner_id: str, data: Dict[str, Any], now: datetime) -> NFT:
        missing = [field for field in ("name", "image", "price", "creator") if not str(data.get(field) or "").strip()]
        if missing:
            raise ValidationError("Name, image, price and creator are required")

        parse_price(data["price"])

        nft = self.nfts.create({
            "name": data["name"].strip(),
            "image": data["image"].strip(),
            "price": str(data["price"]).strip(),
            "creator": data["creator"].strip(),
            "description": data.get("description"),
            "properties": data.get("properties"),
            "token_standard": data.get("token_standard"),
            "end_time": data.get("endTime"),
            "owner_id": owner_id,
            "for_sale": False,
            "created_at": now,
        })
        logger.info(f"NFT {nft.id} created by user {owner_id}")
        return nft

    # ------------------------------------------------------------------
    # Listing controls
    # ------------------------------------------------------------------

    def list_for_sale(self, nft_id: str, user_id: str, price: str, marketplace: str) -> NFT:
        nft = self._require_owned(nft_id, user_id)
        parse_price(price)

        if not marketplace or not marketplace.strip():
            raise ValidationError("Please select a marketplace")

        nft.price = str(price).strip()
        nft.marketplace = marketplace.strip()
        nft.for_sale = True
        nft.marketplace_status = MarketplaceStatus.WAITING_FOR_BIDS.value
        self.db.commit()
        self.db.refresh(nft)
        logger.info(f"NFT {nft.id} listed on {nft.marketplace} for {nft.price}")
        return nft

    def unlist(self, nft_id: str, user_id: str) -> NFT:
        nft = self._require_owned(nft_id, user_id)
        nft.for_sale = False
        nft.marketplace_status = MarketplaceStatus.UNLISTED.value
        self.db.commit()
        self.db.refresh(nft)
        logger.info(f"NFT {nft.id} unlisted")
        return nft

    # ------------------------------------------------------------------
    # Purchase
    # ------------------------------------------------------------------

    def purchase(self, nft_id: str, buyer_id: str, now: datetime) -> Dict[str, Any]:
        """
        Buy a listed NFT at its price from the buyer's available ETH. The
        previous owner, if any, receives the price minus the platform fee as
        frozen funds.
        """
        nft = self.nfts.get_by_id(nft_id, for_update=True)
        if nft is None:
            raise NotFoundError("NFT not found")

        if not nft.for_sale:
            raise ValidationError("This NFT is not for sale")

        if nft.owner_id == buyer_id:
            raise ValidationError("You already own this NFT")

        buyer = self.users.get_profile(buyer_id, for_update=True)
        if buyer is None:
            raise NotFoundError("Profile not found")

        price = parse_price(nft.price)
        if price > get_pool(buyer, CurrencyType.ETH.value, frozen=False):
            raise InsufficientFundsError("Insufficient balance to purchase this NFT")

        seller_id = nft.owner_id
        try:
            adjust_pool(buyer, CurrencyType.ETH.value, frozen=False, delta=-price)
            self.transactions.add(Transaction(
                user_id=buyer_id,
                type=TransactionType.PURCHASE.value,
                amount=price,
                status=TransactionStatus.COMPLETED.value,
                currency_type=CurrencyType.ETH.value,
                item=nft.name,
                created_at=now,
            ))

            if seller_id is not None:
                seller = self.users.get_profile(seller_id, for_update=True)
                if seller is not None:
                    received = calculate_fee_breakdown(price)["received_amount"]
                    self.ledger.credit_frozen_sale(seller, received, nft.name, now)
                else:
                    logger.warning(f"Seller {seller_id} of NFT {nft.id} has no profile; proceeds not credited")

            nft.owner_id = buyer_id
            nft.for_sale = False
            nft.marketplace_status = MarketplaceStatus.SOLD.value

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(nft)
        logger.info(f"NFT {nft.id} purchased by user {buyer_id} for {price} ETH")
        return {"success": True, "message": "NFT purchased successfully", "nft": nft}

    def _require_owned(self, nft_id: str, user_id: str) -> NFT:
        nft = self.nfts.get_by_id(nft_id, for_update=True)
        if nft is None:
            raise NotFoundError("NFT not found")
        if nft.owner_id != user_id:
            raise PermissionDeniedError("You do not own this NFT")
        return nft
