"""Lead repository - Database operations for leads"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from ...models import Lead


class LeadRepository:
    @staticmethod
    def build_query(
        db: Session,
        account_id: int,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        source: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Query:
        query = db.query(Lead).filter(Lead.account_id == account_id)
        if status:
            query = query.filter(Lead.status == status)
        if priority:
            query = query.filter(Lead.priority == priority)
        if source:
            query = query.filter(Lead.source == source)
        if search:
            term = f"%{search}%"
            query = query.filter(
                or_(
                    Lead.first_name.ilike(term),
                    Lead.last_name.ilike(term),
                    Lead.email.ilike(term),
                    Lead.phone.ilike(term),
                    Lead.company_name.ilike(term),
                )
            )
        return query

    @staticmethod
    def get_lead(db: Session, lead_id: int, account_id: int) -> Optional[Lead]:
        return db.query(Lead).filter(Lead.id == lead_id, Lead.account_id == account_id).first()

    @staticmethod
    def create_lead(db: Session, account_id: int, commit: bool = True, **lead_data) -> Lead:
        lead = Lead(account_id=account_id, **lead_data)
        db.add(lead)
        if commit:
            db.commit()
            db.refresh(lead)
        else:
            db.flush()
        return lead

    @staticmethod
    def update_lead(db: Session, lead: Lead, **updates) -> Lead:
        for key, value in updates.items():
            setattr(lead, key, value)
        db.commit()
        db.refresh(lead)
        return lead

    @staticmethod
    def delete_lead(db: Session, lead: Lead) -> None:
        db.delete(lead)
        db.commit()

    @staticmethod
    def count_by(db: Session, account_id: int, column) -> dict[str, int]:
        rows = (
            db.query(column, func.count(Lead.id))
            .filter(Lead.account_id == account_id)
            .group_by(column)
            .all()
        )
        return {key or "unknown": count for key, count in rows}

    @staticmethod
    def pipeline_value(db: Session, account_id: int) -> float:
        value = (
            db.query(func.coalesce(func.sum(Lead.estimated_value), 0))
            .filter(
                Lead.account_id == account_id,
                Lead.status.notin_(["converted", "lost", "unqualified"]),
            )
            .scalar()
        )
        return float(value or 0)
