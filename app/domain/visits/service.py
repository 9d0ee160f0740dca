"""Visit service - scheduling technician time slots on jobs"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Job, User
from ...models_visit import Visit
from ...permissions import AccountContext
from .repository import VisitRepository
from .schemas import VisitCreate, VisitUpdate, VisitWithJobResponse

logger = logging.getLogger(__name__)


def to_detail(visit: Visit) -> VisitWithJobResponse:
    response = VisitWithJobResponse.model_validate(visit)
    job = visit.job
    if job:
        response.job_number = job.job_number
        response.job_title = job.title
        response.job_status = job.status
        response.address = job.address
        if job.client:
            response.client_name = job.client.name
            response.client_phone = job.client.phone
    return response


class VisitService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = VisitRepository()

    def _check_job(self, job_id: int, ctx: AccountContext) -> Job:
        job = self.db.query(Job).filter(Job.id == job_id, Job.account_id == ctx.account_id).first()
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")
        if job.status in ("invoiced", "cancelled"):
            raise HTTPException(status_code=400, detail=f"Cannot schedule visits on a {job.status} job")
        return job

    def _check_tech(self, tech_id: Optional[int], ctx: AccountContext) -> None:
        if not tech_id:
            return
        exists = (
            self.db.query(User.id)
            .filter(User.id == tech_id, User.account_id == ctx.account_id, User.is_active == True)  # noqa: E712
            .first()
        )
        if not exists:
            raise HTTPException(status_code=400, detail="Technician not found in this account")

    def list_visits(
        self,
        ctx: AccountContext,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        tech_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> list[VisitWithJobResponse]:
        visits = self.repo.build_query(self.db, ctx.account_id, start, end, tech_id, status).all()
        return [to_detail(v) for v in visits]

    def get_visit(self, visit_id: int, ctx: AccountContext) -> Visit:
        visit = self.repo.get_visit(self.db, visit_id, ctx.account_id)
        if not visit:
            raise HTTPException(status_code=404, detail="Visit not found")
        return visit

    def create_visit(self, data: VisitCreate, ctx: AccountContext) -> Visit:
        job = self._check_job(data.job_id, ctx)
        tech_id = data.tech_id or job.assigned_to
        self._check_tech(tech_id, ctx)

        payload = data.model_dump()
        payload["tech_id"] = tech_id
        visit = self.repo.create_visit(self.db, ctx.account_id, **payload)
        logger.info(f"📅 Visit {visit.id} scheduled for job {job.id} at {visit.start_at.isoformat()}")
        return visit

    def update_visit(self, visit_id: int, data: VisitUpdate, ctx: AccountContext) -> Visit:
        visit = self.get_visit(visit_id, ctx)
        updates = data.model_dump(exclude_unset=True)

        start = updates.get("start_at") or visit.start_at
        end = updates["end_at"] if "end_at" in updates else visit.end_at
        if end and start and end <= start:
            raise HTTPException(status_code=400, detail="start_at must be before end_at")
        if "tech_id" in updates:
            self._check_tech(updates["tech_id"], ctx)

        status = updates.get("status")
        if status == "in_progress" and not visit.started_at:
            updates["started_at"] = datetime.utcnow()
        elif status == "completed" and not visit.completed_at:
            updates["completed_at"] = datetime.utcnow()

        return self.repo.update_visit(self.db, visit, **updates)

    def delete_visit(self, visit_id: int, ctx: AccountContext) -> dict:
        visit = self.get_visit(visit_id, ctx)
        self.repo.delete_visit(self.db, visit)
        return {"message": "Visit deleted"}
