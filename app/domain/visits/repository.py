"""Visit repository - Database operations for visits"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Query, Session, joinedload

from ...models import Job
from ...models_visit import Visit


class VisitRepository:
    @staticmethod
    def build_query(
        db: Session,
        account_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        tech_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> Query:
        query = (
            db.query(Visit)
            .options(joinedload(Visit.job).joinedload(Job.client))
            .filter(Visit.account_id == account_id)
        )
        if start:
            query = query.filter(Visit.start_at >= start)
        if end:
            query = query.filter(Visit.start_at < end)
        if tech_id:
            query = query.filter(Visit.tech_id == tech_id)
        if status:
            query = query.filter(Visit.status == status)
        return query.order_by(Visit.start_at.asc())

    @staticmethod
    def get_visit(db: Session, visit_id: int, account_id: int) -> Optional[Visit]:
        return db.query(Visit).filter(Visit.id == visit_id, Visit.account_id == account_id).first()

    @staticmethod
    def create_visit(db: Session, account_id: int, **visit_data) -> Visit:
        visit = Visit(account_id=account_id, **visit_data)
        db.add(visit)
        db.commit()
        db.refresh(visit)
        return visit

    @staticmethod
    def update_visit(db: Session, visit: Visit, **updates) -> Visit:
        for key, value in updates.items():
            setattr(visit, key, value)
        db.commit()
        db.refresh(visit)
        return visit

    @staticmethod
    def delete_visit(db: Session, visit: Visit) -> None:
        db.delete(visit)
        db.commit()
