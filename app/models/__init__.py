from .user import User, Profile, KYCStatus
from .nft import NFT, MarketplaceStatus
from .bid import Bid, BidStatus
from .transaction import (
    Transaction,
    TransactionType,
    TransactionStatus,
    CurrencyType,
    ExchangeDirection,
    ExchangeType,
    FrozenLot,
)
from .deposit_session import DepositSession, DepositState

__all__ = [
    "User", "Profile", "KYCStatus",
    "NFT", "MarketplaceStatus",
    "Bid", "BidStatus",
    "Transaction", "TransactionType", "TransactionStatus",
    "CurrencyType", "ExchangeDirection", "ExchangeType", "FrozenLot",
    "DepositSession", "DepositState",
]
