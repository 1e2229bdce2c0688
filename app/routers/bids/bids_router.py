from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from app.core.clock import Clock, get_clock
from app.core.database import get_db
from app.core.dependencies import get_current_user
from app.models.user import User
from app.models.schemas import BidCreate, BidResponse, FeeBreakdown, AcceptBidResponse
from app.services.bid_service import BidService, calculate_fee_breakdown
from decimal import Decimal
from typing import List
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/fee-preview", response_model=FeeBreakdown)
def preview_fees(amount: Decimal = Query(...)):
    """Platform fee, seller proceeds and freeze period for a sale amount"""
    if not amount.is_finite() or amount <= 0:
        raise HTTPException(status_code=400, detail="Amount must be greater than 0")
    return calculate_fee_breakdown(amount)


@router.get("/owned", response_model=List[BidResponse])
def list_bids_on_owned_nfts(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Bids received on every NFT the caller owns"""
    return BidService(db).get_bids_on_owned(current_user.id)


@router.get("/nft/{nft_id}", response_model=List[BidResponse])
def list_bids_for_nft(nft_id: str, db: Session = Depends(get_db)):
    return BidService(db).get_bids_for_nft(nft_id)


@router.post("/nft/{nft_id}", response_model=BidResponse, status_code=201)
def place_bid(
    nft_id: str,
    payload: BidCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    return BidService(db).place_bid(
        nft_id,
        payload.bidder_address,
        payload.bid_amount,
        payload.marketplace,
        clock(),
    )


@router.post("/{bid_id}/accept", response_model=AcceptBidResponse)
def accept_bid(
    bid_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """Accept a bid on an NFT owned by the caller"""
    return BidService(db).accept_bid(bid_id, current_user.id, clock())
