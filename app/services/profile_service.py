"""
Profile Service
Profile view with balances and totals, deposit wallet address, and the KYC
document workflow.
"""

import logging
import secrets
from typing import Dict, Any, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.exceptions import ValidationError, NotFoundError
from app.db.repositories.transaction_repository import TransactionRepository
from app.db.repositories.user_repository import UserRepository
from app.models.transaction import TransactionType
from app.models.user import Profile, KYCStatus
from app.utils import r2_storage

logger = logging.getLogger(__name__)

KYC_CONTENT_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "application/pdf": "pdf",
}
MAX_KYC_DOCUMENT_BYTES = 10 * 1024 * 1024

IDENTITY_OPEN_STATES = {
    KYCStatus.NOT_STARTED.value,
    KYCStatus.IDENTITY_SUBMITTED.value,
    KYCStatus.REJECTED.value,
}


class ProfileService:
    def __init__(self, db: Session):
        self.db = db
        self.users = UserRepository(db)
        self.transactions = TransactionRepository(db)

    def get_profile(self, user_id: str) -> Profile:
        profile = self.users.get_profile(user_id)
        if profile is None:
            raise NotFoundError("Profile not found")
        return profile

    def get_profile_view(self, user_id: str) -> Dict[str, Any]:
        profile = self.get_profile(user_id)
        return {
            "id": profile.id,
            "user_id": profile.user_id,
            "login": profile.login,
            "email": profile.email,
            "country": profile.country,
            "avatar_url": profile.avatar_url,
            "balance": profile.balance,
            "usdt_balance": profile.usdt_balance,
            "frozen_balance": profile.frozen_balance,
            "frozen_usdt_balance": profile.frozen_usdt_balance,
            "total_balance": profile.balance + profile.frozen_balance,
            "total_usdt_balance": profile.usdt_balance + profile.frozen_usdt_balance,
            "wallet_address": profile.wallet_address,
            "kyc_status": profile.kyc_status,
            "kyc_rejection_reason": profile.kyc_rejection_reason,
            "verified": bool(profile.verified),
            "created_at": profile.created_at,
            "total_deposits": self.transactions.sum_completed(user_id, TransactionType.DEPOSIT),
            "total_withdrawals": self.transactions.sum_completed(user_id, TransactionType.WITHDRAW),
        }

    def ensure_wallet_address(self, user_id: str) -> Tuple[str, bool]:
        """
        Assign a deposit wallet address once. Returns the address and whether
        it was created by this call.
        """
        profile = self.users.get_profile(user_id, for_update=True)
        if profile is None:
            raise NotFoundError("Profile not found")

        if profile.wallet_address:
            return profile.wallet_address, False

        address = f"0x{secrets.token_hex(20)}"
        while self.users.wallet_address_taken(address):
            address = f"0x{secrets.token_hex(20)}"

        profile.wallet_address = address
        self.db.commit()
        logger.info(f"Wallet address {address} assigned to user {user_id}")
        return address, True

    # ------------------------------------------------------------------
    # KYC
    # ------------------------------------------------------------------

    def submit_identity_document(self, user_id: str, content: bytes, content_type: Optional[str]) -> Profile:
        profile = self.get_profile(user_id)
        self._check_can_submit(profile)
        if profile.kyc_status not in IDENTITY_OPEN_STATES:
            raise ValidationError("Your documents are already under review")

        previous = profile.kyc_identity_doc
        profile.kyc_identity_doc = self._store_document(content, content_type)
        profile.kyc_status = KYCStatus.IDENTITY_SUBMITTED.value
        profile.kyc_rejection_reason = None
        self.db.commit()

        if previous:
            r2_storage.delete_file(previous)
        logger.info(f"Identity document submitted by user {user_id}")
        return profile

    def submit_address_document(self, user_id: str, content: bytes, content_type: Optional[str]) -> Profile:
        profile = self.get_profile(user_id)
        self._check_can_submit(profile)
        if profile.kyc_status != KYCStatus.IDENTITY_SUBMITTED.value:
            raise ValidationError("Please submit your identity document first")

        previous = profile.kyc_address_doc
        profile.kyc_address_doc = self._store_document(content, content_type)
        profile.kyc_status = KYCStatus.UNDER_REVIEW.value
        self.db.commit()

        if previous:
            r2_storage.delete_file(previous)
        logger.info(f"Address document submitted by user {user_id}; KYC under review")
        return profile

    def review_kyc(self, user_id: str, approved: bool, reason: Optional[str] = None) -> Profile:
        """Operator decision on a profile under review"""
        profile = self.get_profile(user_id)
        if profile.kyc_status != KYCStatus.UNDER_REVIEW.value:
            raise ValidationError("KYC is not under review")

        if approved:
            profile.kyc_status = KYCStatus.VERIFIED.value
            profile.verified = True
            profile.kyc_rejection_reason = None
        else:
            profile.kyc_status = KYCStatus.REJECTED.value
            profile.verified = False
            profile.kyc_rejection_reason = reason or "Documents could not be verified"

        self.db.commit()
        logger.info(f"KYC for user {user_id} reviewed: {profile.kyc_status}")
        return profile

    def _check_can_submit(self, profile: Profile) -> None:
        if profile.verified or profile.kyc_status == KYCStatus.VERIFIED.value:
            raise ValidationError("Your identity is already verified")

    def _store_document(self, content: bytes, content_type: Optional[str]) -> str:
        extension = KYC_CONTENT_TYPES.get(content_type or "")
        if extension is None:
            raise ValidationError("Document must be a JPEG, PNG or PDF file")
        if not content:
            raise ValidationError("Document is empty")
        if len(content) > MAX_KYC_DOCUMENT_BYTES:
            raise ValidationError("Document must be smaller than 10 MB")

        uploaded = r2_storage.upload_file_directly(content, extension, content_type)
        return uploaded["key"]
