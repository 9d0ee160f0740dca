"""Job repository - Database operations for jobs and job notes"""

from typing import Optional

from sqlalchemy.orm import Query, Session

from ...models import Client, Job, JobNote, User


class JobRepository:
    @staticmethod
    def build_query(
        db: Session,
        account_id: int,
        status: Optional[str] = None,
        client_id: Optional[int] = None,
        assigned_to: Optional[int] = None,
        sort_order: str = "desc",
    ) -> Query:
        query = db.query(Job).filter(Job.account_id == account_id)
        if status:
            query = query.filter(Job.status == status)
        if client_id:
            query = query.filter(Job.client_id == client_id)
        if assigned_to:
            query = query.filter(Job.assigned_to == assigned_to)
        order = Job.created_at.asc() if sort_order == "asc" else Job.created_at.desc()
        return query.order_by(order, Job.id.desc())

    @staticmethod
    def get_job(db: Session, job_id: int, account_id: int) -> Optional[Job]:
        return db.query(Job).filter(Job.id == job_id, Job.account_id == account_id).first()

    @staticmethod
    def client_in_account(db: Session, client_id: int, account_id: int) -> bool:
        return (
            db.query(Client.id).filter(Client.id == client_id, Client.account_id == account_id).first()
            is not None
        )

    @staticmethod
    def user_in_account(db: Session, user_id: int, account_id: int) -> bool:
        return (
            db.query(User.id)
            .filter(User.id == user_id, User.account_id == account_id, User.is_active == True)  # noqa: E712
            .first()
            is not None
        )

    @staticmethod
    def create_job(db: Session, account_id: int, **job_data) -> Job:
        job = Job(account_id=account_id, **job_data)
        db.add(job)
        db.commit()
        db.refresh(job)
        return job

    @staticmethod
    def update_job(db: Session, job: Job, **updates) -> Job:
        for key, value in updates.items():
            setattr(job, key, value)
        db.commit()
        db.refresh(job)
        return job

    @staticmethod
    def delete_job(db: Session, job: Job) -> None:
        db.delete(job)
        db.commit()

    @staticmethod
    def add_note(
        db: Session,
        job: Job,
        content: str,
        user_id: Optional[int] = None,
        note_type: str = "note",
        commit: bool = True,
    ) -> JobNote:
        note = JobNote(
            job_id=job.id,
            account_id=job.account_id,
            user_id=user_id,
            content=content,
            note_type=note_type,
        )
        db.add(note)
        if commit:
            db.commit()
            db.refresh(note)
        return note
