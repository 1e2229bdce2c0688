from typing import Optional
from sqlalchemy.orm import Session
from app.models.deposit_session import DepositSession


class DepositSessionRepository:
    """Repository for deposit sessions"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, session: DepositSession) -> DepositSession:
        self.db.add(session)
        self.db.flush()
        return session

    def get_for_user(self, session_id: str, user_id: str) -> Optional[DepositSession]:
        """A user only sees their own deposit sessions"""
        return self.db.query(DepositSession).filter(
            DepositSession.id == session_id,
            DepositSession.user_id == user_id,
        ).first()
