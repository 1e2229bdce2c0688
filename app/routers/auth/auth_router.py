from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.database import get_db
from app.core.dependencies import get_current_user
from app.core.rate_limit import limiter
from app.core.security import create_access_token, get_password_hash, verify_password
from app.db.repositories.user_repository import UserRepository
from app.models.user import User
from app.models.schemas import (
    RegisterRequest, LoginRequest, ChangePasswordRequest,
    AuthResponse, UserResponse, MessageResponse
)
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

router = APIRouter()

REGISTER_FIELDS = ("email", "password", "login", "nickname", "birthDate", "country")


def serialize_user(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "login": user.login,
        "nickname": user.nickname,
        "birthDate": user.birth_date,
        "country": user.country,
        "balance": user.profile.balance if user.profile else 0,
    }


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.AUTH_RATE_LIMIT)
def register(request: Request, payload: RegisterRequest, db: Session = Depends(get_db)):
    """Create an account and its profile, then sign the user in"""
    data = payload.model_dump()
    if any(not str(data.get(field) or "").strip() for field in REGISTER_FIELDS):
        raise HTTPException(status_code=400, detail="All fields are required")

    email = data["email"].strip().lower()
    login = data["login"].strip()

    repo = UserRepository(db)
    if repo.email_exists(email):
        raise HTTPException(status_code=400, detail="Email already exists")
    if repo.login_exists(login):
        raise HTTPException(status_code=400, detail="Login already exists")

    try:
        user = repo.create(
            {
                "email": email,
                "login": login,
                "nickname": data["nickname"].strip(),
                "birthDate": data["birthDate"].strip(),
                "country": data["country"].strip(),
            },
            get_password_hash(data["password"]),
        )
    except IntegrityError:
        db.rollback()
        logger.warning(f"Registration raced on email {email} or login {login}")
        raise HTTPException(status_code=400, detail="Email already exists")

    logger.info(f"User registered: {user.id} ({user.login})")
    return {"token": create_access_token(user.id), "user": serialize_user(user)}


@router.post("/login", response_model=AuthResponse)
@limiter.limit(settings.AUTH_RATE_LIMIT)
def login(request: Request, payload: LoginRequest, db: Session = Depends(get_db)):
    if not payload.email or not payload.password:
        raise HTTPException(status_code=400, detail="Email and password are required")

    user = UserRepository(db).get_by_email(payload.email.strip().lower())
    if user is None or not verify_password(payload.password, user.hashed_password):
        logger.info(f"Failed login attempt for {payload.email}")
        raise HTTPException(status_code=400, detail="Invalid email or password")

    return {"token": create_access_token(user.id), "user": serialize_user(user)}


@router.get("/profile", response_model=UserResponse)
def get_profile(current_user: User = Depends(get_current_user)):
    return serialize_user(current_user)


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    payload: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if not verify_password(payload.old_password, current_user.hashed_password):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    if payload.old_password == payload.new_password:
        raise HTTPException(status_code=400, detail="New password must be different from the current one")

    UserRepository(db).update_password(current_user, get_password_hash(payload.new_password))
    logger.info(f"Password changed for user {current_user.id}")
    return {"message": "Password changed successfully"}
