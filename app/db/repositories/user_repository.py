from typing import Optional
from sqlalchemy.orm import Session
from app.models.user import User, Profile, KYCStatus


class UserRepository:
    """Repository for user and profile database operations"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, user_data: dict, hashed_password: str) -> User:
        """Create a user together with its zero-balance profile"""
        user = User(
            email=user_data["email"],
            hashed_password=hashed_password,
            login=user_data["login"],
            nickname=user_data["nickname"],
            birth_date=user_data["birthDate"],
            country=user_data["country"],
        )
        self.db.add(user)
        self.db.flush()

        profile = Profile(
            user_id=user.id,
            login=user.login,
            email=user.email,
            country=user.country,
            kyc_status=KYCStatus.NOT_STARTED.value,
        )
        self.db.add(profile)
        self.db.commit()
        self.db.refresh(user)
        return user

    def get_by_id(self, user_id: str) -> Optional[User]:
        """Get user by ID"""
        return self.db.query(User).filter(User.id == user_id).first()

    def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email"""
        return self.db.query(User).filter(User.email == email).first()

    def email_exists(self, email: str) -> bool:
        return self.db.query(User.id).filter(User.email == email).first() is not None

    def login_exists(self, login: str) -> bool:
        return self.db.query(User.id).filter(User.login == login).first() is not None

    def update_password(self, user: User, hashed_password: str) -> None:
        user.hashed_password = hashed_password
        self.db.commit()

    def get_profile(self, user_id: str, for_update: bool = False) -> Optional[Profile]:
        """Get the profile of a user, optionally locking the row for a balance change"""
        query = self.db.query(Profile).filter(Profile.user_id == user_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def get_profile_by_wallet(self, wallet_address: str) -> Optional[Profile]:
        """Wallet addresses are compared case-insensitively"""
        return self.db.query(Profile).filter(
            Profile.wallet_address.ilike(wallet_address)
        ).first()

    def wallet_address_taken(self, wallet_address: str) -> bool:
        return self.get_profile_by_wallet(wallet_address) is not None
