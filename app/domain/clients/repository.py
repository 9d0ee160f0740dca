"""Client repository - Database operations for clients"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Query, Session

from ...models import Client, Job
from ...models_invoice import Estimate, Invoice


class ClientRepository:
    """Repository for client database operations. Every query is scoped to an account."""

    @staticmethod
    def build_search_query(
        db: Session,
        account_id: int,
        status: Optional[str] = None,
        search: Optional[str] = None,
        sort_order: str = "desc",
    ) -> Query:
        query = db.query(Client).filter(Client.account_id == account_id)

        if status:
            query = query.filter(Client.status == status)

        if search:
            term = f"%{search.lower()}%"
            query = query.filter(
                or_(
                    Client.name.ilike(term),
                    Client.company_name.ilike(term),
                    Client.email.ilike(term),
                    Client.phone.ilike(term),
                )
            )

        order = Client.created_at.asc() if sort_order == "asc" else Client.created_at.desc()
        return query.order_by(order, Client.id.desc())

    @staticmethod
    def get_client_by_id(db: Session, client_id: int, account_id: int) -> Optional[Client]:
        return (
            db.query(Client)
            .filter(Client.id == client_id, Client.account_id == account_id)
            .first()
        )

    @staticmethod
    def get_client_by_email(db: Session, email: str, account_id: int) -> Optional[Client]:
        return (
            db.query(Client)
            .filter(Client.account_id == account_id, Client.email == email.lower())
            .first()
        )

    @staticmethod
    def create_client(db: Session, account_id: int, commit: bool = True, **client_data) -> Client:
        client = Client(account_id=account_id, **client_data)
        db.add(client)
        if commit:
            db.commit()
            db.refresh(client)
        else:
            db.flush()
        return client

    @staticmethod
    def update_client(db: Session, client: Client, **updates) -> Client:
        for key, value in updates.items():
            if hasattr(client, key):
                setattr(client, key, value)
        db.commit()
        db.refresh(client)
        return client

    @staticmethod
    def has_billing_history(db: Session, client_id: int) -> bool:
        """Clients with jobs or invoices are archived rather than deleted"""
        has_jobs = db.query(Job.id).filter(Job.client_id == client_id).first() is not None
        has_invoices = (
            db.query(Invoice.id).filter(Invoice.client_id == client_id).first() is not None
        )
        return has_jobs or has_invoices

    @staticmethod
    def delete_client(db: Session, client: Client) -> None:
        db.query(Estimate).filter(Estimate.client_id == client.id).delete(synchronize_session=False)
        db.delete(client)
        db.commit()

    @staticmethod
    def get_activity(db: Session, client_id: int, account_id: int) -> dict:
        jobs = (
            db.query(Job)
            .filter(Job.client_id == client_id, Job.account_id == account_id)
            .all()
        )
        estimates = (
            db.query(Estimate)
            .filter(Estimate.client_id == client_id, Estimate.account_id == account_id)
            .all()
        )
        invoices = (
            db.query(Invoice)
            .filter(Invoice.client_id == client_id, Invoice.account_id == account_id)
            .all()
        )
        return {"jobs": jobs, "estimates": estimates, "invoices": invoices}
