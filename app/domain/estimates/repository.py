"""Estimate repository - Database operations for estimates"""

from typing import Optional

from sqlalchemy.orm import Query, Session

from ...models_invoice import Estimate


class EstimateRepository:
    @staticmethod
    def build_query(
        db: Session,
        account_id: int,
        status: Optional[str] = None,
        client_id: Optional[int] = None,
        sort_order: str = "desc",
    ) -> Query:
        query = db.query(Estimate).filter(Estimate.account_id == account_id)
        if status:
            query = query.filter(Estimate.status == status)
        if client_id:
            query = query.filter(Estimate.client_id == client_id)
        order = Estimate.created_at.asc() if sort_order == "asc" else Estimate.created_at.desc()
        return query.order_by(order, Estimate.id.desc())

    @staticmethod
    def get_estimate(db: Session, estimate_id: int, account_id: int) -> Optional[Estimate]:
        return (
            db.query(Estimate)
            .filter(Estimate.id == estimate_id, Estimate.account_id == account_id)
            .first()
        )

    @staticmethod
    def get_by_public_id(db: Session, public_id: str) -> Optional[Estimate]:
        return db.query(Estimate).filter(Estimate.public_id == public_id).first()

    @staticmethod
    def create_estimate(db: Session, account_id: int, **data) -> Estimate:
        estimate = Estimate(account_id=account_id, **data)
        db.add(estimate)
        db.commit()
        db.refresh(estimate)
        return estimate

    @staticmethod
    def update_estimate(db: Session, estimate: Estimate, **updates) -> Estimate:
        for key, value in updates.items():
            setattr(estimate, key, value)
        db.commit()
        db.refresh(estimate)
        return estimate

    @staticmethod
    def delete_estimate(db: Session, estimate: Estimate) -> None:
        db.delete(estimate)
        db.commit()
