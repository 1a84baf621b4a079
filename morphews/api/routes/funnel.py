"""ROTAS: ETAPAS DO FUNIL"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from morphews.api.dependencies import get_current_organization, require_manager
from morphews.api.schemas import FunnelStageResponse, ReorderStagesRequest
from morphews.domain.entities import Organization, User
from morphews.infrastructure.database import get_db
from morphews.infrastructure.services.funnel_service import reorder_funnel_stages

router = APIRouter(prefix="/funnel-stages", tags=["Funil"])


@router.put("/order", response_model=List[FunnelStageResponse])
async def reorder_stages(
    payload: ReorderStagesRequest,
    user: User = Depends(require_manager),
    organization: Organization = Depends(get_current_organization),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await reorder_funnel_stages(db, organization.id, payload.stage_ids)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
