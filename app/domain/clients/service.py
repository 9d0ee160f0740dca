"""Client service - Business logic for client operations"""

import csv
import logging
from datetime import datetime
from io import StringIO
from typing import Optional

from fastapi import HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ...cache import invalidate_dashboard
from ...models import Client
from ...permissions import AccountContext
from ...shared.pagination import PageParams, paginate, pagination_meta
from .repository import ClientRepository
from .schemas import ActivityItem, ClientCreate, ClientUpdate

logger = logging.getLogger(__name__)


class ClientService:
    """Service layer for client business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ClientRepository()

    def list_clients(
        self,
        ctx: AccountContext,
        params: PageParams,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> dict:
        query = self.repo.build_search_query(self.db, ctx.account_id, status, search, params.sort_order)
        clients, total = paginate(query, params)
        return {"clients": clients, "pagination": pagination_meta(params, total)}

    def get_client(self, client_id: int, ctx: AccountContext) -> Client:
        client = self.repo.get_client_by_id(self.db, client_id, ctx.account_id)
        if not client:
            raise HTTPException(status_code=404, detail="Client not found")
        return client

    def create_client(self, data: ClientCreate, ctx: AccountContext) -> Client:
        logger.info(f"📥 Creating client for account_id: {ctx.account_id}")

        if data.email and self.repo.get_client_by_email(self.db, data.email, ctx.account_id):
            raise HTTPException(status_code=409, detail="A client with this email already exists")

        client = self.repo.create_client(self.db, ctx.account_id, **data.model_dump())
        invalidate_dashboard(ctx.account_id)
        return client

    def update_client(self, client_id: int, data: ClientUpdate, ctx: AccountContext) -> Client:
        client = self.get_client(client_id, ctx)
        updates = data.model_dump(exclude_unset=True)
        if "name" in updates and updates["name"] is None:
            raise HTTPException(status_code=400, detail="Client name cannot be empty")
        return self.repo.update_client(self.db, client, **updates)

    def delete_client(self, client_id: int, ctx: AccountContext) -> dict:
        client = self.get_client(client_id, ctx)
        if self.repo.has_billing_history(self.db, client.id):
            raise HTTPException(
                status_code=409,
                detail="Client has jobs or invoices. Archive the client instead of deleting.",
            )
        self.repo.delete_client(self.db, client)
        invalidate_dashboard(ctx.account_id)
        logger.info(f"🗑️ Deleted client {client_id} for account {ctx.account_id}")
        return {"message": "Client deleted"}

    def batch_delete_clients(self, client_ids: list[int], ctx: AccountContext) -> dict:
        deleted, skipped = 0, []
        for client_id in client_ids:
            client = self.repo.get_client_by_id(self.db, client_id, ctx.account_id)
            if not client or self.repo.has_billing_history(self.db, client.id):
                skipped.append(client_id)
                continue
            self.repo.delete_client(self.db, client)
            deleted += 1

        invalidate_dashboard(ctx.account_id)
        return {
            "message": f"Successfully deleted {deleted} client(s)",
            "deletedCount": deleted,
            "skippedIds": skipped,
        }

    def get_activity(self, client_id: int, ctx: AccountContext) -> list[ActivityItem]:
        """Jobs, estimates and invoices for a client, newest first"""
        client = self.get_client(client_id, ctx)
        activity = self.repo.get_activity(self.db, client.id, ctx.account_id)

        items = [
            ActivityItem(
                type="job", id=j.id, number=j.job_number, title=j.title,
                status=j.status, amount=j.total, date=j.created_at,
            )
            for j in activity["jobs"]
        ]
        items += [
            ActivityItem(
                type="estimate", id=e.id, number=e.estimate_number, title=e.title,
                status=e.status, amount=e.total, date=e.created_at,
            )
            for e in activity["estimates"]
        ]
        items += [
            ActivityItem(
                type="invoice", id=i.id, number=i.invoice_number, title=i.title,
                status=i.status, amount=i.total, date=i.created_at,
            )
            for i in activity["invoices"]
        ]
        return sorted(items, key=lambda item: item.date or datetime.min, reverse=True)

    def export_clients_csv(
        self, ctx: AccountContext, status: Optional[str] = None, search: Optional[str] = None
    ) -> StreamingResponse:
        logger.info(f"📊 CSV Export requested by user {ctx.user_id} (account {ctx.account_id})")
        clients = self.repo.build_search_query(self.db, ctx.account_id, status, search).all()

        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(
            ["ID", "Name", "Company", "Email", "Phone", "Address", "City", "State", "Zip",
             "Status", "Notes", "Created At"]
        )
        for client in clients:
            writer.writerow(
                [
                    client.id,
                    client.name,
                    client.company_name or "",
                    client.email or "",
                    client.phone or "",
                    client.address or "",
                    client.city or "",
                    client.state or "",
                    client.zip_code or "",
                    client.status or "",
                    client.notes or "",
                    client.created_at.strftime("%Y-%m-%d %H:%M:%S") if client.created_at else "",
                ]
            )

        output.seek(0)
        filename = f"clients_export_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"
        logger.info(f"✅ CSV export successful: {filename} ({len(clients)} clients)")

        return StreamingResponse(
            iter([output.getvalue()]),
            media_type="text/csv",
            headers={
                "Content-Disposition": f"attachment; filename={filename}",
                "Cache-Control": "no-cache",
            },
        )
