"""
ENCERRAMENTO AUTOMÁTICO DE CONVERSAS
====================================

Roda a cada poucos minutos, em duas fases:

1. Respostas da pesquisa NPS: conversa aguardando nota que recebeu
   mensagem do cliente depois do envio da pesquisa ganha a avaliação
   e é encerrada.
2. Inatividade: nas instâncias com auto-close ligado, conversas paradas
   além do limite (robô ou atendente) são encerradas, ou passam a
   aguardar a nota quando a pesquisa de satisfação está ativa.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from morphews.config import get_settings
from morphews.domain.entities import (
    AssignmentAction,
    ConversationAssignment,
    ConversationStatus,
    SatisfactionRating,
    WhatsAppConversation,
    WhatsAppInstance,
    WhatsAppMessage,
)
from morphews.domain.services.phone import chat_id_to_phone
from morphews.domain.services.satisfaction import (
    extract_rating,
    is_pending_review,
    is_within_business_hours,
)
from morphews.domain.time_utils import as_utc, utcnow
from morphews.infrastructure.database import async_session
from morphews.infrastructure.services.evolution_service import EvolutionService

logger = logging.getLogger(__name__)

ACTIVE_INSTANCE_STATUSES = ("active", "connected")
IDLE_STATUSES = (
    ConversationStatus.PENDING.value,
    ConversationStatus.ASSIGNED.value,
    ConversationStatus.WITH_BOT.value,
)
DEFAULT_BUSINESS_START = "08:00"
DEFAULT_BUSINESS_END = "20:00"


class AutoCloseService:
    """Encerra conversas inativas e coleta as notas de satisfação."""

    def __init__(self, evolution: Optional[EvolutionService] = None):
        self.evolution = evolution or EvolutionService()
        self._reset_stats()

    def _reset_stats(self):
        self.stats = {"closed": 0, "surveys_sent": 0, "ratings_processed": 0, "errors": 0}

    # =========================================================================
    # FASE 1 - RESPOSTAS DO NPS
    # =========================================================================

    async def process_survey_responses(self, db: AsyncSession, now: datetime) -> None:
        result = await db.execute(
            select(WhatsAppConversation).where(
                WhatsAppConversation.awaiting_satisfaction_response.is_(True),
                WhatsAppConversation.satisfaction_sent_at.is_not(None),
            )
        )

        for conversation in result.scalars().all():
            try:
                await self._apply_survey_response(db, conversation, now)
            except Exception as e:
                self.stats["errors"] += 1
                logger.error(
                    f"❌ [auto_close] Erro ao processar avaliação da conversa {conversation.id}: {e}",
                    exc_info=True,
                )

    async def _apply_survey_response(
        self, db: AsyncSession, conversation: WhatsAppConversation, now: datetime
    ) -> None:
        message = await db.scalar(
            select(WhatsAppMessage)
            .where(
                WhatsAppMessage.conversation_id == conversation.id,
                WhatsAppMessage.direction == "inbound",
                WhatsAppMessage.created_at > conversation.satisfaction_sent_at,
            )
            .order_by(WhatsAppMessage.created_at.desc(), WhatsAppMessage.id.desc())
            .limit(1)
        )
        if not message:
            return

        rating = extract_rating(message.content)

        # Encerramento manual já deixou um registro esperando a resposta
        record = await db.scalar(
            select(SatisfactionRating).where(
                SatisfactionRating.conversation_id == conversation.id,
                SatisfactionRating.responded_at.is_(None),
                SatisfactionRating.rating.is_(None),
            )
        )
        if not record:
            record = SatisfactionRating(
                organization_id=conversation.organization_id,
                conversation_id=conversation.id,
                instance_id=conversation.instance_id,
                assigned_user_id=conversation.assigned_user_id,
                lead_id=conversation.lead_id,
            )
            db.add(record)

        record.rating = rating
        record.raw_response = message.content
        record.is_pending_review = is_pending_review(rating)
        record.responded_at = message.created_at

        conversation.awaiting_satisfaction_response = False
        conversation.status = ConversationStatus.CLOSED.value
        conversation.closed_at = conversation.closed_at or now

        self.stats["ratings_processed"] += 1
        logger.info(f"⭐ [auto_close] Conversa {conversation.id} avaliada com nota {rating}")

    # =========================================================================
    # FASE 2 - INATIVIDADE
    # =========================================================================

    def _instance_in_window(self, instance: WhatsAppInstance, now: datetime) -> bool:
        if not instance.auto_close_only_business_hours:
            return True
        local_now = now.astimezone(ZoneInfo(get_settings().timezone))
        return is_within_business_hours(
            instance.auto_close_business_start or DEFAULT_BUSINESS_START,
            instance.auto_close_business_end or DEFAULT_BUSINESS_END,
            local_now,
        )

    def _closing_message(self, instance: WhatsAppInstance, with_survey: bool) -> Optional[str]:
        parts = []
        if instance.auto_close_send_message and instance.auto_close_message_template:
            parts.append(instance.auto_close_message_template)
        if with_survey:
            parts.append(instance.satisfaction_survey_message)
        return "\n\n".join(parts) if parts else None

    async def close_idle_conversations(self, db: AsyncSession, now: datetime) -> None:
        result = await db.execute(
            select(WhatsAppInstance).where(
                WhatsAppInstance.auto_close_enabled.is_(True),
                WhatsAppInstance.status.in_(ACTIVE_INSTANCE_STATUSES),
            )
        )

        for instance in result.scalars().all():
            if not self._instance_in_window(instance, now):
                logger.debug(f"[auto_close] Instância {instance.id} fora do horário comercial")
                continue

            bot_cutoff = now - timedelta(minutes=instance.auto_close_bot_minutes or 60)
            assigned_cutoff = now - timedelta(minutes=instance.auto_close_assigned_minutes or 480)

            conversations = await db.execute(
                select(WhatsAppConversation).where(
                    WhatsAppConversation.instance_id == instance.id,
                    WhatsAppConversation.status.in_(IDLE_STATUSES),
                    WhatsAppConversation.awaiting_satisfaction_response.is_(False),
                )
            )

            for conversation in conversations.scalars().all():
                last_activity = as_utc(conversation.last_message_at or conversation.created_at)
                is_bot = conversation.status == ConversationStatus.WITH_BOT.value
                cutoff = bot_cutoff if is_bot else assigned_cutoff

                if last_activity >= cutoff:
                    continue

                try:
                    await self._close_idle(db, instance, conversation, now)
                except Exception as e:
                    self.stats["errors"] += 1
                    logger.error(
                        f"❌ [auto_close] Erro ao encerrar conversa {conversation.id}: {e}",
                        exc_info=True,
                    )

    async def _close_idle(
        self,
        db: AsyncSession,
        instance: WhatsAppInstance,
        conversation: WhatsAppConversation,
        now: datetime,
    ) -> None:
        with_survey = bool(instance.satisfaction_survey_enabled and instance.satisfaction_survey_message)
        text = self._closing_message(instance, with_survey)
        sent = False

        if text:
            phone = conversation.phone_number or chat_id_to_phone(conversation.chat_id)
            send_result = await self.evolution.send_text(instance.evolution_instance_id, phone, text)
            sent = bool(send_result.get("success"))
            if not sent:
                self.stats["errors"] += 1
                logger.error(
                    f"❌ [auto_close] Falha ao enviar mensagem de encerramento "
                    f"da conversa {conversation.id}: {send_result.get('error')}"
                )

        if with_survey and sent:
            conversation.awaiting_satisfaction_response = True
            conversation.satisfaction_sent_at = now
            self.stats["surveys_sent"] += 1
        else:
            conversation.status = ConversationStatus.CLOSED.value
            conversation.closed_at = now
            db.add(SatisfactionRating(
                organization_id=conversation.organization_id,
                conversation_id=conversation.id,
                instance_id=instance.id,
                assigned_user_id=conversation.assigned_user_id,
                lead_id=conversation.lead_id,
                rating=None,
                is_pending_review=False,
                closed_at=now,
            ))
            db.add(ConversationAssignment(
                conversation_id=conversation.id,
                from_user_id=conversation.assigned_user_id,
                action=AssignmentAction.CLOSE.value,
                notes="Encerramento automático por inatividade",
            ))

        self.stats["closed"] += 1
        logger.info(f"🔒 [auto_close] Conversa {conversation.id} encerrada por inatividade")

    # =========================================================================
    # EXECUÇÃO
    # =========================================================================

    async def process(self, db: AsyncSession, now: Optional[datetime] = None) -> dict:
        now = now or utcnow()
        self._reset_stats()

        await self.process_survey_responses(db, now)
        await self.close_idle_conversations(db, now)
        await db.flush()

        return dict(self.stats)

    async def run(self) -> dict:
        try:
            async with async_session() as session:
                stats = await self.process(session)
                await session.commit()
                logger.info(f"✅ [auto_close] Concluído: {stats}")
                return stats
        except Exception as e:
            logger.error(f"❌ Erro no job de auto-close: {e}", exc_info=True)
            return {"error": str(e)}


async def run_auto_close_job():
    """Função que o scheduler vai chamar."""
    return await AutoCloseService().run()
