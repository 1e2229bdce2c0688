from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from app.core.clock import Clock, get_clock
from app.core.database import get_db
from app.core.dependencies import get_current_user
from app.models.user import User
from app.models.schemas import (
    NFTCreate, NFTListRequest, NFTResponse, NFTPageResponse, PurchaseResponse
)
from app.services.marketplace_service import MarketplaceService, DEFAULT_PAGE_LIMIT
from typing import List, Optional
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=NFTPageResponse)
def list_nfts(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=100),
    search: Optional[str] = None,
    for_sale: Optional[bool] = None,
    db: Session = Depends(get_db)
):
    """Page through the catalogue, newest first"""
    return MarketplaceService(db).get_page(page=page, limit=limit, search=search, for_sale=for_sale)


@router.get("/owned", response_model=List[NFTResponse])
def list_owned_nfts(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return MarketplaceService(db).get_owned(current_user.id)


@router.get("/{nft_id}", response_model=NFTResponse)
def get_nft(nft_id: str, db: Session = Depends(get_db)):
    return MarketplaceService(db).get_nft(nft_id)


@router.post("", response_model=NFTResponse, status_code=status.HTTP_201_CREATED)
def create_nft(
    payload: NFTCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """Mint an NFT record owned by the caller"""
    return MarketplaceService(db).create_nft(current_user.id, payload.model_dump(), clock())


@router.post("/{nft_id}/list", response_model=NFTResponse)
def list_nft_for_sale(
    nft_id: str,
    payload: NFTListRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return MarketplaceService(db).list_for_sale(nft_id, current_user.id, payload.price, payload.marketplace)


@router.post("/{nft_id}/unlist", response_model=NFTResponse)
def unlist_nft(nft_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return MarketplaceService(db).unlist(nft_id, current_user.id)


@router.post("/{nft_id}/purchase", response_model=PurchaseResponse)
def purchase_nft(
    nft_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """Buy a listed NFT with the caller's available ETH balance"""
    return MarketplaceService(db).purchase(nft_id, current_user.id, clock())
