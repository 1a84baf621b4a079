"""
SERVIÇO DE ATENDIMENTO (CONVERSAS WHATSAPP)
===========================================

Ciclo de vida da conversa no painel multiatendente:

    pending / autodistributed / with_bot --assumir--> assigned
    assigned --transferir--> assigned (outro atendente)
    assigned --encerrar--> closed (com ou sem pesquisa NPS)
    closed --reativar--> assigned

Toda mudança de dono é um UPDATE condicional: o status esperado faz
parte do WHERE e o número de linhas afetadas decide quem venceu.
"""

import logging
from typing import Optional

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from morphews.domain.entities import (
    AssignmentAction,
    ConversationAssignment,
    ConversationStatus,
    Lead,
    LeadOwnershipTransfer,
    Organization,
    SatisfactionRating,
    User,
    WhatsAppConversation,
    WhatsAppInstance,
)
from morphews.domain.services.phone import normalize_whatsapp
from morphews.domain.time_utils import utcnow
from .evolution_service import EvolutionService
from .lead_claim_service import claim_lead, upsert_primary_responsible

logger = logging.getLogger(__name__)

CLAIMABLE_STATUSES = (
    ConversationStatus.PENDING.value,
    ConversationStatus.AUTODISTRIBUTED.value,
    ConversationStatus.WITH_BOT.value,
)

DEFAULT_SURVEY_MESSAGE = (
    "De 0 a 10, como você avalia este atendimento? Sua resposta nos ajuda a melhorar! 🙏"
)


# =============================================================================
# HELPERS
# =============================================================================

async def get_conversation(
    db: AsyncSession,
    conversation_id: int,
    organization_id: int,
) -> Optional[WhatsAppConversation]:
    """Busca a conversa do tenant sempre com dados frescos do banco."""
    return await db.scalar(
        select(WhatsAppConversation)
        .where(
            WhatsAppConversation.id == conversation_id,
            WhatsAppConversation.organization_id == organization_id,
        )
        .execution_options(populate_existing=True)
    )


async def _get_active_user(db: AsyncSession, user_id: int, organization_id: int) -> Optional[User]:
    return await db.scalar(
        select(User).where(
            User.id == user_id,
            User.organization_id == organization_id,
            User.active.is_(True),
        )
    )


def _record(
    db: AsyncSession,
    conversation_id: int,
    action: AssignmentAction,
    from_user_id: Optional[int] = None,
    to_user_id: Optional[int] = None,
    assigned_by: Optional[int] = None,
    notes: Optional[str] = None,
) -> None:
    db.add(ConversationAssignment(
        conversation_id=conversation_id,
        from_user_id=from_user_id,
        to_user_id=to_user_id,
        action=action.value,
        assigned_by=assigned_by,
        notes=notes,
    ))


# =============================================================================
# ASSUMIR
# =============================================================================

async def claim_conversation(
    db: AsyncSession,
    conversation_id: int,
    user_id: int,
    organization_id: int,
) -> dict:
    """
    Assume uma conversa pendente, com o robô ou designada ("Pra você").

    Conversa designada para outro atendente não pode ser assumida.
    """
    if not await _get_active_user(db, user_id, organization_id):
        return {"success": False, "error": "Usuário não encontrado"}

    now = utcnow()
    result = await db.execute(
        update(WhatsAppConversation)
        .where(
            WhatsAppConversation.id == conversation_id,
            WhatsAppConversation.organization_id == organization_id,
            WhatsAppConversation.status.in_(CLAIMABLE_STATUSES),
            or_(
                WhatsAppConversation.designated_user_id.is_(None),
                WhatsAppConversation.designated_user_id == user_id,
            ),
        )
        .values(
            status=ConversationStatus.ASSIGNED.value,
            assigned_user_id=user_id,
            assigned_at=now,
            designated_user_id=None,
            designated_at=None,
            unread_count=0,
        )
        .execution_options(synchronize_session=False)
    )

    conversation = await get_conversation(db, conversation_id, organization_id)

    if result.rowcount == 0:
        if not conversation:
            return {"success": False, "error": "Conversa não encontrada"}
        if conversation.status == ConversationStatus.ASSIGNED.value:
            return {"success": False, "error": "Conversa já foi assumida por outro atendente"}
        if conversation.status == ConversationStatus.CLOSED.value:
            return {"success": False, "error": "Conversa encerrada"}
        return {"success": False, "error": "Conversa designada para outro atendente"}

    _record(db, conversation_id, AssignmentAction.CLAIM, to_user_id=user_id, assigned_by=user_id)

    # Lead sem dono passa a ser de quem assumiu a conversa
    if conversation.lead_id:
        await claim_lead(db, conversation.lead_id, user_id, organization_id, reason="claim_conversa")

    await db.flush()
    logger.info(f"✅ [conversation] Conversa {conversation_id} assumida pelo usuário {user_id}")
    return {"success": True, "conversation_id": conversation_id, "user_id": user_id}


# =============================================================================
# TRANSFERIR
# =============================================================================

async def transfer_conversation(
    db: AsyncSession,
    conversation_id: int,
    to_user_id: int,
    organization_id: int,
    transferred_by: int,
    notes: Optional[str] = None,
) -> dict:
    if not await _get_active_user(db, to_user_id, organization_id):
        return {"success": False, "error": "Atendente de destino não encontrado"}

    conversation = await get_conversation(db, conversation_id, organization_id)
    if not conversation:
        return {"success": False, "error": "Conversa não encontrada"}
    if conversation.status == ConversationStatus.CLOSED.value:
        return {"success": False, "error": "Conversa encerrada não pode ser transferida"}

    from_user_id = conversation.assigned_user_id
    if from_user_id == to_user_id:
        return {"success": False, "error": "Conversa já está com este atendente"}

    now = utcnow()
    result = await db.execute(
        update(WhatsAppConversation)
        .where(
            WhatsAppConversation.id == conversation_id,
            WhatsAppConversation.status == conversation.status,
            (
                WhatsAppConversation.assigned_user_id.is_(None)
                if from_user_id is None
                else WhatsAppConversation.assigned_user_id == from_user_id
            ),
        )
        .values(
            status=ConversationStatus.ASSIGNED.value,
            assigned_user_id=to_user_id,
            assigned_at=now,
            designated_user_id=None,
            designated_at=None,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        return {"success": False, "error": "Conversa foi alterada por outro atendente, tente novamente"}

    _record(
        db, conversation_id, AssignmentAction.TRANSFER,
        from_user_id=from_user_id, to_user_id=to_user_id,
        assigned_by=transferred_by, notes=notes,
    )
    await db.flush()

    logger.info(
        f"🔀 [conversation] Conversa {conversation_id} transferida {from_user_id} → {to_user_id}"
    )
    return {"success": True, "conversation_id": conversation_id, "from_user_id": from_user_id, "to_user_id": to_user_id}


# =============================================================================
# ENCERRAR
# =============================================================================

async def _close_plain(
    db: AsyncSession,
    conversation: WhatsAppConversation,
    closed_by: Optional[int],
    **extra_values,
) -> bool:
    now = utcnow()
    values = {
        "status": ConversationStatus.CLOSED.value,
        "closed_at": now,
        "awaiting_satisfaction_response": False,
        **extra_values,
    }
    result = await db.execute(
        update(WhatsAppConversation)
        .where(
            WhatsAppConversation.id == conversation.id,
            WhatsAppConversation.status != ConversationStatus.CLOSED.value,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        return False

    _record(
        db, conversation.id, AssignmentAction.CLOSE,
        from_user_id=conversation.assigned_user_id, assigned_by=closed_by,
    )
    return True


async def close_conversation(
    db: AsyncSession,
    conversation_id: int,
    organization_id: int,
    closed_by: Optional[int] = None,
    evolution: Optional[EvolutionService] = None,
) -> dict:
    """
    Encerra o atendimento. Se a organização pede NPS no encerramento
    manual, envia a pesquisa e deixa a conversa aguardando a nota.
    """
    conversation = await get_conversation(db, conversation_id, organization_id)
    if not conversation:
        return {"success": False, "error": "Conversa não encontrada"}
    if conversation.status == ConversationStatus.CLOSED.value:
        return {"success": False, "error": "Conversa já está encerrada"}

    organization = await db.get(Organization, organization_id)
    should_send_survey = bool(
        organization
        and organization.satisfaction_survey_enabled
        and organization.satisfaction_survey_on_manual_close
        and conversation.instance_id
        and conversation.phone_number
    )

    if should_send_survey:
        instance = await db.get(WhatsAppInstance, conversation.instance_id)
        message = organization.satisfaction_survey_message or DEFAULT_SURVEY_MESSAGE
        evolution = evolution or EvolutionService()

        send_result = await evolution.send_text(
            instance.evolution_instance_id,
            normalize_whatsapp(conversation.phone_number),
            message,
        )

        if send_result.get("success"):
            now = utcnow()
            if not await _close_plain(
                db, conversation, closed_by,
                awaiting_satisfaction_response=True,
                satisfaction_sent_at=now,
            ):
                return {"success": False, "error": "Conversa já está encerrada"}

            db.add(SatisfactionRating(
                organization_id=organization_id,
                conversation_id=conversation.id,
                instance_id=conversation.instance_id,
                lead_id=conversation.lead_id,
                assigned_user_id=conversation.assigned_user_id,
                closed_at=now,
                is_pending_review=False,
            ))
            await db.flush()
            logger.info(f"📊 [conversation] Conversa {conversation_id} encerrada com pesquisa NPS")
            return {"success": True, "survey_sent": True}

        logger.warning(
            f"⚠️ [conversation] Falha ao enviar NPS da conversa {conversation_id}: "
            f"{send_result.get('error')} - encerrando sem pesquisa"
        )

    if not await _close_plain(db, conversation, closed_by):
        return {"success": False, "error": "Conversa já está encerrada"}

    await db.flush()
    logger.info(f"✅ [conversation] Conversa {conversation_id} encerrada")
    return {"success": True, "survey_sent": False}


async def close_conversation_without_nps(
    db: AsyncSession,
    conversation_id: int,
    organization_id: int,
    user_id: int,
    reason: Optional[str] = None,
) -> dict:
    """Encerra pulando a pesquisa NPS, registrando quem pulou e por quê."""
    conversation = await get_conversation(db, conversation_id, organization_id)
    if not conversation:
        return {"success": False, "error": "Conversa não encontrada"}

    now = utcnow()
    if not await _close_plain(
        db, conversation, user_id,
        skip_nps_at=now,
        skip_nps_by=user_id,
        skip_nps_reason=reason,
    ):
        return {"success": False, "error": "Conversa já está encerrada"}

    await db.flush()
    return {"success": True, "skipped_nps": True}


# =============================================================================
# AJUSTE MANUAL (ADMIN)
# =============================================================================

async def update_conversation_status(
    db: AsyncSession,
    conversation_id: int,
    organization_id: int,
    status: str,
    assigned_user_id: Optional[int] = None,
    changed_by: Optional[int] = None,
) -> dict:
    valid = {s.value for s in ConversationStatus}
    if status not in valid:
        return {"success": False, "error": f"Status inválido: {status}"}

    conversation = await get_conversation(db, conversation_id, organization_id)
    if not conversation:
        return {"success": False, "error": "Conversa não encontrada"}

    assigning = status == ConversationStatus.ASSIGNED.value and assigned_user_id
    if assigning and not await _get_active_user(db, assigned_user_id, organization_id):
        return {"success": False, "error": "Atendente não encontrado"}

    now = utcnow()
    previous_user_id = conversation.assigned_user_id
    conversation.status = status

    if assigning:
        conversation.assigned_user_id = assigned_user_id
        conversation.assigned_at = now
    elif status == ConversationStatus.PENDING.value:
        conversation.assigned_user_id = None
        conversation.assigned_at = None
        conversation.designated_user_id = None
        conversation.designated_at = None
    elif status == ConversationStatus.CLOSED.value:
        conversation.closed_at = now

    _record(
        db, conversation_id, AssignmentAction.TRANSFER,
        from_user_id=previous_user_id, to_user_id=conversation.assigned_user_id,
        assigned_by=changed_by, notes=f"Status alterado manualmente para {status}",
    )
    await db.flush()
    return {"success": True, "status": status}


# =============================================================================
# REATIVAR
# =============================================================================

async def reactivate_conversation(
    db: AsyncSession,
    conversation_id: int,
    organization_id: int,
    user_id: int,
) -> dict:
    """
    Reabre conversa encerrada direto para o usuário, que passa a ser o
    responsável principal do lead.
    """
    if not await _get_active_user(db, user_id, organization_id):
        return {"success": False, "error": "Usuário não encontrado"}

    conversation = await get_conversation(db, conversation_id, organization_id)
    if not conversation:
        return {"success": False, "error": "Conversa não encontrada"}

    previous_user_id = conversation.assigned_user_id
    now = utcnow()

    result = await db.execute(
        update(WhatsAppConversation)
        .where(
            WhatsAppConversation.id == conversation_id,
            WhatsAppConversation.status == ConversationStatus.CLOSED.value,
        )
        .values(
            status=ConversationStatus.ASSIGNED.value,
            assigned_user_id=user_id,
            assigned_at=now,
            closed_at=None,
            designated_user_id=None,
            designated_at=None,
            awaiting_satisfaction_response=False,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        return {"success": False, "error": "Somente conversas encerradas podem ser reativadas"}

    _record(
        db, conversation_id, AssignmentAction.REACTIVATE,
        from_user_id=previous_user_id, to_user_id=user_id, assigned_by=user_id,
    )

    lead_id = conversation.lead_id
    if lead_id:
        lead = await db.get(Lead, lead_id, populate_existing=True)
        await upsert_primary_responsible(db, organization_id, lead_id, user_id)

        lead.assigned_to = user_id
        db.add(LeadOwnershipTransfer(
            organization_id=organization_id,
            lead_id=lead_id,
            from_user_id=previous_user_id,
            to_user_id=user_id,
            transferred_by=user_id,
            transfer_reason="reativacao_conversa",
            notes="Conversa reativada via WhatsApp Chat",
        ))

        if not lead.funnel_stage_id:
            organization = await db.get(Organization, organization_id)
            default_stage = organization.default_stage_whatsapp or organization.default_stage_fallback
            if default_stage:
                lead.funnel_stage_id = default_stage

    await db.flush()
    logger.info(f"♻️ [conversation] Conversa {conversation_id} reativada pelo usuário {user_id}")
    return {"success": True, "conversation_id": conversation_id, "lead_id": lead_id}
