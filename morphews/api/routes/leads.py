"""
ROTAS: LEADS
============

Lista de leads não contatados, "pegar" lead e mudança de etapa do funil.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from morphews.api.dependencies import get_current_organization, get_current_user, raise_for_result
from morphews.api.schemas import LeadResponse, StageMoveRequest
from morphews.domain.entities import FunnelStage, Lead, Organization, User
from morphews.infrastructure.database import get_db
from morphews.infrastructure.services.funnel_service import move_lead_to_stage
from morphews.infrastructure.services.lead_claim_service import claim_lead, list_uncontacted_leads

router = APIRouter(prefix="/leads", tags=["Leads"])


@router.get("/uncontacted", response_model=List[LeadResponse])
async def uncontacted_leads(
    limit: int = Query(50, ge=1, le=200),
    source: Optional[str] = None,
    organization: Organization = Depends(get_current_organization),
    db: AsyncSession = Depends(get_db),
):
    return await list_uncontacted_leads(db, organization.id, limit=limit, source=source)


@router.post("/{lead_id}/claim")
async def claim(
    lead_id: int,
    user: User = Depends(get_current_user),
    organization: Organization = Depends(get_current_organization),
    db: AsyncSession = Depends(get_db),
):
    result = await claim_lead(db, lead_id, user.id, organization.id)
    return raise_for_result(result)


@router.post("/{lead_id}/stage")
async def change_stage(
    lead_id: int,
    payload: StageMoveRequest,
    user: User = Depends(get_current_user),
    organization: Organization = Depends(get_current_organization),
    db: AsyncSession = Depends(get_db),
):
    lead = await db.scalar(
        select(Lead).where(Lead.id == lead_id, Lead.organization_id == organization.id)
    )
    if not lead:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lead não encontrado")

    stage = await db.scalar(
        select(FunnelStage).where(
            FunnelStage.id == payload.stage_id,
            FunnelStage.organization_id == organization.id,
        )
    )
    if not stage:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Etapa não encontrada")

    changed = await move_lead_to_stage(db, lead, stage, changed_by=user.id)
    return {"success": True, "changed": changed, "funnel_stage_id": stage.id}
