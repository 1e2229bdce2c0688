from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any, List
from datetime import datetime
from decimal import Decimal

from app.models.transaction import (
    TransactionStatus,
    ExchangeDirection,
    ExchangeType,
)


# Auth Schemas
class RegisterRequest(BaseModel):
    # Everything is optional here; the router answers "All fields are required"
    email: Optional[str] = None
    password: Optional[str] = None
    login: Optional[str] = None
    nickname: Optional[str] = None
    birthDate: Optional[str] = None
    country: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    old_password: str
    new_password: str = Field(..., min_length=8)


class UserResponse(BaseModel):
    id: str
    email: str
    login: str
    nickname: str
    birthDate: str
    country: str
    balance: Decimal


class AuthResponse(BaseModel):
    token: str
    user: UserResponse


class MessageResponse(BaseModel):
    message: str


# Profile Schemas
class ProfileResponse(BaseModel):
    id: str
    user_id: str
    login: str
    email: str
    country: Optional[str] = None
    avatar_url: Optional[str] = None
    balance: Decimal
    usdt_balance: Decimal
    frozen_balance: Decimal
    frozen_usdt_balance: Decimal
    total_balance: Decimal
    total_usdt_balance: Decimal
    wallet_address: Optional[str] = None
    kyc_status: str
    kyc_rejection_reason: Optional[str] = None
    verified: bool
    created_at: datetime
    total_deposits: Decimal
    total_withdrawals: Decimal


class WalletAddressResponse(BaseModel):
    wallet_address: str
    created: bool


class KYCSubmissionResponse(BaseModel):
    success: bool
    message: str
    kyc_status: str


class KYCReviewRequest(BaseModel):
    approved: bool
    reason: Optional[str] = None


# NFT Schemas
class NFTProperty(BaseModel):
    key: str
    value: str


class NFTCreate(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: Optional[str] = None
    image: Optional[str] = None
    price: Optional[str] = None
    creator: Optional[str] = None
    description: Optional[str] = None
    properties: Optional[List[NFTProperty]] = None
    token_standard: Optional[str] = None
    endTime: Optional[datetime] = None


class NFTListRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    price: str
    marketplace: str


class NFTResponse(BaseModel):
    id: str
    name: str
    image: str
    price: str
    creator: str
    description: Optional[str] = None
    properties: Optional[List[Dict[str, Any]]] = None
    token_standard: Optional[str] = None
    owner_id: Optional[str] = None
    for_sale: bool
    marketplace: Optional[str] = None
    marketplace_status: Optional[str] = None
    end_time: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NFTPageResponse(BaseModel):
    nfts: List[NFTResponse]
    hasMore: bool
    total: int


class PurchaseResponse(BaseModel):
    success: bool
    message: str
    nft: Optional[NFTResponse] = None


# Bid Schemas
class BidCreate(BaseModel):
    bidder_address: str
    bid_amount: Decimal
    marketplace: Optional[str] = None


class BidResponse(BaseModel):
    id: str
    nft_id: str
    bidder_address: str
    bid_amount: Decimal
    marketplace: Optional[str] = None
    verified: bool
    status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FeeBreakdown(BaseModel):
    amount: Decimal
    platform_fee: Decimal
    received_amount: Decimal
    platform_fee_percent: Decimal
    freeze_duration_days: int


class AcceptBidResponse(BaseModel):
    success: bool
    message: str
    status: str  # settled or failed
    breakdown: FeeBreakdown


# Transaction Schemas
class TransactionView(BaseModel):
    id: str
    type: str
    amount: Decimal
    amount_display: str
    status: str
    status_label: str
    currency_type: Optional[str] = None
    item: Optional[str] = None
    created_at: datetime
    date_display: str
    is_frozen: bool
    is_frozen_exchange: bool
    frozen_until: Optional[datetime] = None
    frozen_until_display: Optional[str] = None
    badges: List[str]


class TransactionPage(BaseModel):
    transactions: List[TransactionView]
    has_more: bool
    next_cursor: Optional[datetime] = None
    next_cursor_id: Optional[str] = None


class TransactionTotals(BaseModel):
    total_deposits: Decimal
    total_withdrawals: Decimal


class FrozenBalanceInfo(BaseModel):
    transaction_id: str
    amount: Decimal
    currency_type: str
    unfreeze_date: datetime
    days_left: int


class FrozenBalancesResponse(BaseModel):
    frozen_balance: Decimal
    frozen_usdt_balance: Decimal
    unfreezing: List[FrozenBalanceInfo]


class WithdrawRequest(BaseModel):
    amount: Decimal
    wallet_address: Optional[str] = None


class SettleTransactionRequest(BaseModel):
    status: TransactionStatus


class ReleaseFrozenResponse(BaseModel):
    released: int


# Exchange Schemas
class ExchangeRateResponse(BaseModel):
    rate: Decimal
    reverse_rate: Decimal
    source: str  # live or fallback
    fetched_at: datetime


class ExchangeEstimateResponse(BaseModel):
    direction: ExchangeDirection
    rate: Decimal
    estimated_result: Optional[Decimal] = None


class ExchangeRequest(BaseModel):
    amount: Decimal
    direction: ExchangeDirection = ExchangeDirection.ETH_TO_USDT
    exchange_type: ExchangeType = ExchangeType.REGULAR


class ExchangeResponse(BaseModel):
    success: bool
    message: str
    transaction_id: str
    estimated_result: Decimal
    available_balance: str


# Deposit Schemas
class DepositCreate(BaseModel):
    amount: Optional[Decimal] = None


class DepositHashRequest(BaseModel):
    transaction_hash: str = ""


class CountdownResponse(BaseModel):
    days: int
    hours: int
    minutes: int
    seconds: int


class FraudWarning(BaseModel):
    title: str
    message: str
    support_url: str


class DepositSessionResponse(BaseModel):
    id: str
    amount: Optional[Decimal] = None
    state: str
    deposit_address: str
    expires_at: Optional[datetime] = None
    time_left: CountdownResponse
    transaction_id: Optional[str] = None
    review_until: Optional[datetime] = None
    fraud_warning: Optional[FraudWarning] = None
