"""
SERVIÇO DE DISTRIBUIÇÃO DE CONVERSAS
====================================

Decide o destino de uma conversa que (re)entra na fila quando chega
mensagem do cliente:

- Instância "auto": designa o próximo atendente por rodízio
  (status "autodistributed" - aparece em "Pra você" até ele assumir)
- Instância "bot": robô atende primeiro (status "with_bot")
- Instância "manual": fica pendente até alguém assumir
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from morphews.domain.entities import (
    AssignmentAction,
    ConversationAssignment,
    ConversationStatus,
    DistributionMode,
    User,
    WhatsAppConversation,
    WhatsAppInstance,
    WhatsAppInstanceUser,
)
from morphews.domain.time_utils import utcnow

logger = logging.getLogger(__name__)


# ==========================================
# SELEÇÃO DE ATENDENTE
# ==========================================

async def get_available_users(db: AsyncSession, instance: WhatsAppInstance) -> List[User]:
    """
    Atendentes ativos da instância que aceitam distribuição automática.
    """
    result = await db.execute(
        select(User)
        .join(WhatsAppInstanceUser, WhatsAppInstanceUser.user_id == User.id)
        .where(
            WhatsAppInstanceUser.instance_id == instance.id,
            WhatsAppInstanceUser.can_receive_distribution.is_(True),
            User.active.is_(True),
            User.organization_id == instance.organization_id,
        )
        .order_by(User.id)
    )
    return list(result.scalars().all())


def select_by_round_robin(users: List[User], last_user_id: Optional[int]) -> Optional[User]:
    """
    Próximo atendente depois de `last_user_id` (ordem por ID, circular).
    O cursor é o ID do último atendente, não a posição na lista.
    """
    if not users:
        return None

    users_sorted = sorted(users, key=lambda u: u.id)
    if last_user_id is None:
        return users_sorted[0]

    for user in users_sorted:
        if user.id > last_user_id:
            return user

    return users_sorted[0]


# ==========================================
# REABERTURA / DISTRIBUIÇÃO
# ==========================================

async def reopen_conversation(
    db: AsyncSession,
    conversation: WhatsAppConversation,
    instance: WhatsAppInstance,
    is_new: bool,
) -> dict:
    """
    Coloca a conversa de volta na fila conforme o modo da instância.

    Só age em conversa nova (instância auto) ou conversa encerrada;
    conversa em andamento não muda de dono.
    """
    is_closed = conversation.status in (None, ConversationStatus.CLOSED.value)
    mode = instance.distribution_mode or DistributionMode.MANUAL.value

    if not is_closed and not (is_new and mode == DistributionMode.AUTO.value):
        return {"success": True, "action": "none", "status": conversation.status}

    now = utcnow()
    previous_user_id = conversation.assigned_user_id

    conversation.assigned_user_id = None
    conversation.assigned_at = None
    conversation.designated_user_id = None
    conversation.designated_at = None
    conversation.closed_at = None
    conversation.awaiting_satisfaction_response = False

    if mode == DistributionMode.AUTO.value:
        users = await get_available_users(db, instance)
        selected = select_by_round_robin(users, instance.last_distributed_user_id)

        if selected:
            conversation.status = ConversationStatus.AUTODISTRIBUTED.value
            conversation.designated_user_id = selected.id
            conversation.designated_at = now
            instance.last_distributed_user_id = selected.id

            db.add(ConversationAssignment(
                conversation_id=conversation.id,
                from_user_id=previous_user_id,
                to_user_id=selected.id,
                action=AssignmentAction.AUTODISTRIBUTE.value,
                notes="Rodízio automático",
            ))
            logger.info(
                f"🔄 [distribution] Conversa {conversation.id} designada para usuário {selected.id}"
            )
            return {"success": True, "action": "autodistributed", "user_id": selected.id}

        # Ninguém disponível: cai na fila geral
        logger.warning(
            f"⚠️ [distribution] Instância {instance.id} sem atendentes disponíveis - conversa pendente"
        )
        conversation.status = ConversationStatus.PENDING.value

    elif mode == DistributionMode.BOT.value:
        conversation.status = ConversationStatus.WITH_BOT.value
    else:
        conversation.status = ConversationStatus.PENDING.value

    db.add(ConversationAssignment(
        conversation_id=conversation.id,
        from_user_id=previous_user_id,
        to_user_id=None,
        action=AssignmentAction.REOPEN.value,
    ))

    return {"success": True, "action": "reopened", "status": conversation.status}
