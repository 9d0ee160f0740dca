"""Technician portal service - a technician's own visits, jobs and checklists"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Job, JobChecklistItem, JobNote
from ...models_visit import Visit
from ...permissions import TECH, AccountContext
from ..visits.repository import VisitRepository
from ..visits.service import to_detail
from .schemas import TechJobDetail, TechVisitUpdate

logger = logging.getLogger(__name__)

VISIT_FORWARD = {"scheduled": "in_progress", "in_progress": "completed"}


def _day_bounds(day: datetime) -> tuple[datetime, datetime]:
    start = datetime(day.year, day.month, day.day)
    return start, start + timedelta(days=1)


class TechService:
    def __init__(self, db: Session):
        self.db = db
        self.visits = VisitRepository()

    def get_schedule(self, ctx: AccountContext, days: int = 14, now: Optional[datetime] = None):
        start, _ = _day_bounds(now or datetime.utcnow())
        visits = (
            self.visits.build_query(
                self.db, ctx.account_id, start=start, end=start + timedelta(days=days), tech_id=ctx.user_id
            )
            .filter(Visit.status != "cancelled")
            .all()
        )
        return [to_detail(v) for v in visits]

    def get_today(self, ctx: AccountContext, now: Optional[datetime] = None):
        start, end = _day_bounds(now or datetime.utcnow())
        visits = self.visits.build_query(
            self.db, ctx.account_id, start=start, end=end, tech_id=ctx.user_id
        ).all()
        return [to_detail(v) for v in visits]

    def update_visit(self, visit_id: int, data: TechVisitUpdate, ctx: AccountContext) -> Visit:
        visit = self.visits.get_visit(self.db, visit_id, ctx.account_id)
        if not visit:
            raise HTTPException(status_code=404, detail="Visit not found")
        if ctx.role == TECH and visit.tech_id != ctx.user_id:
            raise HTTPException(status_code=403, detail="This visit is not assigned to you")

        now = datetime.utcnow()
        if data.status and data.status != visit.status:
            if VISIT_FORWARD.get(visit.status) != data.status:
                raise HTTPException(
                    status_code=400,
                    detail=f"Cannot move visit from {visit.status} to {data.status}",
                )
            visit.status = data.status
            if data.status == "in_progress":
                visit.started_at = now
            else:
                visit.completed_at = now

        if data.notes and data.notes.strip():
            stamp = now.strftime("%Y-%m-%d %H:%M")
            entry = f"[{stamp}] {data.notes.strip()}"
            visit.notes = f"{visit.notes}\n{entry}" if visit.notes else entry

        self.db.commit()
        self.db.refresh(visit)
        logger.info(f"🔧 Visit {visit.id} updated by tech {ctx.user_id} (status={visit.status})")
        return visit

    def _assigned_job(self, job_id: int, ctx: AccountContext) -> Job:
        job = self.db.query(Job).filter(Job.id == job_id, Job.account_id == ctx.account_id).first()
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")
        if ctx.role == TECH and job.assigned_to != ctx.user_id:
            has_visit = any(v.tech_id == ctx.user_id for v in job.visits)
            if not has_visit:
                raise HTTPException(status_code=403, detail="This job is not assigned to you")
        return job

    def get_job(self, job_id: int, ctx: AccountContext) -> TechJobDetail:
        job = self._assigned_job(job_id, ctx)
        return TechJobDetail(
            id=job.id,
            job_number=job.job_number,
            title=job.title,
            description=job.description,
            status=job.status,
            priority=job.priority,
            address=job.address,
            service_date=job.service_date,
            scheduled_time=job.scheduled_time,
            line_items=job.line_items,
            client_name=job.client.name if job.client else None,
            client_phone=job.client.phone if job.client else None,
            notes=list(job.notes),
        )

    def add_note(self, job_id: int, content: str, ctx: AccountContext) -> JobNote:
        job = self._assigned_job(job_id, ctx)
        note = JobNote(
            job_id=job.id, account_id=job.account_id, user_id=ctx.user_id, content=content.strip()
        )
        self.db.add(note)
        self.db.commit()
        self.db.refresh(note)
        return note

    def get_checklist(self, job_id: int, ctx: AccountContext) -> list[JobChecklistItem]:
        job = self._assigned_job(job_id, ctx)
        return (
            self.db.query(JobChecklistItem)
            .filter(JobChecklistItem.job_id == job.id)
            .order_by(JobChecklistItem.sort_order.asc(), JobChecklistItem.id.asc())
            .all()
        )

    def add_checklist_item(self, job_id: int, item_text: str, ctx: AccountContext) -> JobChecklistItem:
        job = self._assigned_job(job_id, ctx)
        max_order = (
            self.db.query(func.max(JobChecklistItem.sort_order))
            .filter(JobChecklistItem.job_id == job.id)
            .scalar()
        )
        item = JobChecklistItem(
            job_id=job.id,
            account_id=job.account_id,
            item_text=item_text,
            sort_order=(max_order if max_order is not None else -1) + 1,
        )
        self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        return item

    def toggle_checklist_item(
        self, item_id: int, is_completed: Optional[bool], ctx: AccountContext
    ) -> JobChecklistItem:
        item = (
            self.db.query(JobChecklistItem)
            .filter(JobChecklistItem.id == item_id, JobChecklistItem.account_id == ctx.account_id)
            .first()
        )
        if not item:
            raise HTTPException(status_code=404, detail="Checklist item not found")
        self._assigned_job(item.job_id, ctx)

        done = (not item.is_completed) if is_completed is None else is_completed
        item.is_completed = done
        item.completed_at = datetime.utcnow() if done else None
        item.completed_by = ctx.user_id if done else None
        self.db.commit()
        self.db.refresh(item)
        return item
