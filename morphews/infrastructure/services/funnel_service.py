"""Etapas do funil: reordenação e movimentação de leads."""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from morphews.domain.entities import FunnelStage, Lead, LeadStageHistory

logger = logging.getLogger(__name__)


async def reorder_funnel_stages(
    db: AsyncSession,
    organization_id: int,
    ordered_ids: List[int],
) -> List[FunnelStage]:
    """
    Reescreve as posições 0..n-1 na ordem recebida.

    Raises:
        ValueError: se algum ID não pertence à organização ou está repetido.
    """
    if len(set(ordered_ids)) != len(ordered_ids):
        raise ValueError("IDs de etapa repetidos")

    result = await db.execute(
        select(FunnelStage).where(
            FunnelStage.organization_id == organization_id,
            FunnelStage.id.in_(ordered_ids),
        )
    )
    stages = {stage.id: stage for stage in result.scalars().all()}

    missing = [stage_id for stage_id in ordered_ids if stage_id not in stages]
    if missing:
        raise ValueError(f"Etapas não pertencem à organização: {missing}")

    for position, stage_id in enumerate(ordered_ids):
        stages[stage_id].position = position

    await db.flush()
    return [stages[stage_id] for stage_id in ordered_ids]


async def move_lead_to_stage(
    db: AsyncSession,
    lead: Lead,
    stage: FunnelStage,
    changed_by: Optional[int] = None,
) -> bool:
    """Retorna False quando o lead já está na etapa."""
    if lead.funnel_stage_id == stage.id:
        return False

    db.add(LeadStageHistory(
        organization_id=lead.organization_id,
        lead_id=lead.id,
        funnel_stage_id=stage.id,
        previous_stage_id=lead.funnel_stage_id,
        changed_by=changed_by,
    ))
    lead.funnel_stage_id = stage.id
    await db.flush()

    logger.info(f"📊 [funnel] Lead {lead.id} movido para etapa {stage.id}")
    return True
