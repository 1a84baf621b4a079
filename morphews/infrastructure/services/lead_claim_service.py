"""
SERVIÇO: PEGAR LEAD (CLAIM)
===========================

Leads que chegam sem responsável ficam na lista de "não contatados".
O primeiro vendedor que pegar leva: a troca de dono é um UPDATE
condicional (assigned_to IS NULL), então dois vendedores clicando ao
mesmo tempo resultam em exatamente um vencedor.
"""

import logging
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from morphews.domain.entities import Lead, LeadOwnershipTransfer, LeadResponsible, User
from morphews.domain.time_utils import utcnow

logger = logging.getLogger(__name__)


async def upsert_primary_responsible(
    db: AsyncSession,
    organization_id: int,
    lead_id: int,
    user_id: int,
) -> LeadResponsible:
    """Marca `user_id` como responsável principal (só um principal por lead)."""
    await db.execute(
        update(LeadResponsible)
        .where(LeadResponsible.lead_id == lead_id, LeadResponsible.user_id != user_id)
        .values(is_primary=False)
        .execution_options(synchronize_session=False)
    )

    result = await db.execute(
        select(LeadResponsible).where(
            LeadResponsible.lead_id == lead_id,
            LeadResponsible.user_id == user_id,
        )
    )
    responsible = result.scalar_one_or_none()

    if responsible:
        responsible.is_primary = True
    else:
        responsible = LeadResponsible(
            organization_id=organization_id,
            lead_id=lead_id,
            user_id=user_id,
            is_primary=True,
        )
        db.add(responsible)

    return responsible


async def claim_lead(
    db: AsyncSession,
    lead_id: int,
    user_id: int,
    organization_id: int,
    reason: str = "claim",
) -> dict:
    """
    Atribui o lead ao usuário se ele ainda estiver sem dono.

    Returns:
        {"success": True, "lead_id": ...} ou {"success": False, "error": ...}
    """
    user = await db.scalar(
        select(User).where(
            User.id == user_id,
            User.organization_id == organization_id,
            User.active.is_(True),
        )
    )
    if not user:
        return {"success": False, "error": "Usuário não encontrado"}

    now = utcnow()
    result = await db.execute(
        update(Lead)
        .where(
            Lead.id == lead_id,
            Lead.organization_id == organization_id,
            Lead.assigned_to.is_(None),
        )
        .values(assigned_to=user_id, claimed_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        lead = await db.scalar(
            select(Lead)
            .where(Lead.id == lead_id, Lead.organization_id == organization_id)
            .execution_options(populate_existing=True)
        )
        if not lead:
            return {"success": False, "error": "Lead não encontrado"}
        if lead.assigned_to == user_id:
            return {"success": False, "error": "Lead já é seu"}
        logger.info(f"⚠️ [claim_lead] Lead {lead_id} já pertence ao usuário {lead.assigned_to}")
        return {"success": False, "error": "Lead já foi assumido por outro vendedor"}

    await upsert_primary_responsible(db, organization_id, lead_id, user_id)
    db.add(LeadOwnershipTransfer(
        organization_id=organization_id,
        lead_id=lead_id,
        from_user_id=None,
        to_user_id=user_id,
        transferred_by=user_id,
        transfer_reason=reason,
    ))
    await db.flush()

    logger.info(f"✅ [claim_lead] Lead {lead_id} assumido pelo usuário {user_id}")
    return {"success": True, "lead_id": lead_id, "user_id": user_id}


async def list_uncontacted_leads(
    db: AsyncSession,
    organization_id: int,
    limit: int = 50,
    source: Optional[str] = None,
) -> List[Lead]:
    """Leads sem responsável, mais antigos primeiro."""
    query = (
        select(Lead)
        .where(Lead.organization_id == organization_id, Lead.assigned_to.is_(None))
        .order_by(Lead.created_at.asc(), Lead.id.asc())
        .limit(limit)
    )
    if source:
        query = query.where(Lead.source == source)

    result = await db.execute(query)
    return list(result.scalars().all())
