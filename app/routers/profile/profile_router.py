from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.core.dependencies import get_current_user
from app.models.user import User
from app.models.schemas import ProfileResponse, WalletAddressResponse, KYCSubmissionResponse
from app.services.profile_service import ProfileService
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=ProfileResponse)
def get_profile(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Balances per currency, totals and KYC state of the caller"""
    return ProfileService(db).get_profile_view(current_user.id)


@router.post("/wallet-address", response_model=WalletAddressResponse)
def create_wallet_address(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    address, created = ProfileService(db).ensure_wallet_address(current_user.id)
    return {"wallet_address": address, "created": created}


@router.post("/kyc/identity", response_model=KYCSubmissionResponse)
async def upload_identity_document(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    content = await file.read()
    profile = ProfileService(db).submit_identity_document(current_user.id, content, file.content_type)
    return {
        "success": True,
        "message": "Identity document uploaded successfully",
        "kyc_status": profile.kyc_status,
    }


@router.post("/kyc/address", response_model=KYCSubmissionResponse)
async def upload_address_document(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    content = await file.read()
    profile = ProfileService(db).submit_address_document(current_user.id, content, file.content_type)
    return {
        "success": True,
        "message": "Address document uploaded successfully. Your documents are under review",
        "kyc_status": profile.kyc_status,
    }
