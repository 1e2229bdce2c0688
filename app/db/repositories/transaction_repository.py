from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from sqlalchemy import func, or_, and_
from sqlalchemy.orm import Session
from app.models.transaction import Transaction, TransactionType, TransactionStatus, FrozenLot


class TransactionRepository:
    """Repository for ledger rows and the frozen lots they open"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, transaction: Transaction) -> Transaction:
        self.db.add(transaction)
        self.db.flush()
        return transaction

    def get_by_id(self, transaction_id: str, for_update: bool = False) -> Optional[Transaction]:
        query = self.db.query(Transaction).filter(Transaction.id == transaction_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def get_page(
        self,
        user_id: str,
        limit: int,
        before: Optional[datetime] = None,
        before_id: Optional[str] = None,
        transaction_type: Optional[str] = None,
    ) -> List[Transaction]:
        """
        Newest first, ties broken by id.

        ``before`` keeps only rows strictly older than the cursor. With
        ``before_id`` rows sharing the cursor timestamp but sorting after
        that id are kept too, so equal timestamps never fall between pages.
        """
        query = self.db.query(Transaction).filter(Transaction.user_id == user_id)

        if transaction_type:
            query = query.filter(Transaction.type == transaction_type)

        if before is not None:
            if before_id:
                query = query.filter(or_(
                    Transaction.created_at < before,
                    and_(Transaction.created_at == before, Transaction.id < before_id),
                ))
            else:
                query = query.filter(Transaction.created_at < before)

        return query.order_by(Transaction.created_at.desc(), Transaction.id.desc()).limit(limit).all()

    def sum_completed(self, user_id: str, transaction_type: TransactionType) -> Decimal:
        total = self.db.query(func.coalesce(func.sum(Transaction.amount), 0)).filter(
            Transaction.user_id == user_id,
            Transaction.type == transaction_type.value,
            Transaction.status == TransactionStatus.COMPLETED.value,
        ).scalar()
        return Decimal(str(total))

    # Frozen lots

    def add_lot(self, lot: FrozenLot) -> FrozenLot:
        self.db.add(lot)
        self.db.flush()
        return lot

    def get_open_lots(self, user_id: str, currency: Optional[str] = None) -> List[FrozenLot]:
        """Unreleased lots, soonest release first"""
        query = self.db.query(FrozenLot).filter(
            FrozenLot.user_id == user_id,
            FrozenLot.released.is_(False),
        )
        if currency:
            query = query.filter(FrozenLot.currency_type == currency)
        return query.order_by(FrozenLot.release_at.asc(), FrozenLot.created_at.asc()).all()

    def get_matured_lots(self, now: datetime) -> List[FrozenLot]:
        return self.db.query(FrozenLot).filter(
            FrozenLot.released.is_(False),
            FrozenLot.release_at <= now,
        ).with_for_update().all()
