"""Lead service - pipeline management, urgency ordering and conversion to clients"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...cache import invalidate_dashboard
from ...models import Client, Lead
from ...permissions import AccountContext
from ...shared.pagination import PageParams, paginate, pagination_meta
from .repository import LeadRepository
from .schemas import LeadCreate, LeadResponse, LeadUpdate
from .scoring import calculate_urgency_score, sort_by_urgency

logger = logging.getLogger(__name__)


def to_response(lead: Lead, now: Optional[datetime] = None) -> LeadResponse:
    response = LeadResponse.model_validate(lead)
    response.urgency_score = calculate_urgency_score(lead, now)
    return response


class LeadService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = LeadRepository()

    def list_leads(
        self,
        ctx: AccountContext,
        params: PageParams,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        source: Optional[str] = None,
        search: Optional[str] = None,
        sort: str = "created_at",
    ) -> dict:
        query = self.repo.build_query(self.db, ctx.account_id, status, priority, source, search)
        now = datetime.utcnow()

        if sort == "urgency":
            ordered = sort_by_urgency(query.all(), now)
            total = len(ordered)
            leads = ordered[params.offset : params.offset + params.limit]
        else:
            order = Lead.created_at.asc() if params.sort_order == "asc" else Lead.created_at.desc()
            leads, total = paginate(query.order_by(order, Lead.id.desc()), params)

        return {
            "leads": [to_response(lead, now) for lead in leads],
            "pagination": pagination_meta(params, total),
        }

    def get_lead(self, lead_id: int, ctx: AccountContext) -> Lead:
        lead = self.repo.get_lead(self.db, lead_id, ctx.account_id)
        if not lead:
            raise HTTPException(status_code=404, detail="Lead not found")
        return lead

    def create_lead(self, data: LeadCreate, ctx: AccountContext) -> Lead:
        lead = self.repo.create_lead(self.db, ctx.account_id, **data.model_dump())
        invalidate_dashboard(ctx.account_id)
        logger.info(f"📥 Lead {lead.id} created for account {ctx.account_id} (source={lead.source})")
        return lead

    def update_lead(self, lead_id: int, data: LeadUpdate, ctx: AccountContext) -> Lead:
        lead = self.get_lead(lead_id, ctx)
        updates = data.model_dump(exclude_unset=True)
        if updates.get("status") == "converted" and not lead.converted_client_id:
            raise HTTPException(
                status_code=400, detail="Use the convert endpoint to convert a lead to a client"
            )
        lead = self.repo.update_lead(self.db, lead, **updates)
        invalidate_dashboard(ctx.account_id)
        return lead

    def delete_lead(self, lead_id: int, ctx: AccountContext) -> dict:
        lead = self.get_lead(lead_id, ctx)
        self.repo.delete_lead(self.db, lead)
        invalidate_dashboard(ctx.account_id)
        return {"message": "Lead deleted"}

    def convert_lead(self, lead_id: int, ctx: AccountContext) -> tuple[Lead, Client]:
        """Create a client from the lead and mark the lead converted"""
        lead = self.get_lead(lead_id, ctx)
        if lead.status == "converted" or lead.converted_client_id:
            raise HTTPException(status_code=409, detail="Lead has already been converted")

        name = " ".join(part for part in [lead.first_name, lead.last_name] if part)
        client = Client(
            account_id=ctx.account_id,
            name=name,
            company_name=lead.company_name,
            email=lead.email,
            phone=lead.phone,
            address=lead.address,
            notes=lead.notes,
            source="lead",
        )
        self.db.add(client)
        self.db.flush()

        lead.status = "converted"
        lead.converted_client_id = client.id
        lead.converted_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(lead)
        self.db.refresh(client)

        invalidate_dashboard(ctx.account_id)
        logger.info(f"✅ Lead {lead.id} converted to client {client.id}")
        return lead, client

    def get_analytics(self, ctx: AccountContext) -> dict:
        by_status = self.repo.count_by(self.db, ctx.account_id, Lead.status)
        by_source = self.repo.count_by(self.db, ctx.account_id, Lead.source)
        total = sum(by_status.values())
        converted = by_status.get("converted", 0)
        return {
            "total": total,
            "byStatus": by_status,
            "bySource": by_source,
            "conversionRate": round(converted / total * 100, 1) if total else 0.0,
            "pipelineValue": self.repo.pipeline_value(self.db, ctx.account_id),
        }
