"""
ENVIO DE MENSAGENS AGENDADAS
============================

Pega as mensagens pendentes cujo horário já chegou e envia pela
instância de WhatsApp configurada. Cada mensagem termina em um status
final: sent, failed_offline (instância desconectada, pode ser
reenviada) ou failed_other.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from morphews.config import get_settings
from morphews.domain.entities import (
    Lead,
    ScheduledMessage,
    ScheduledMessageStatus,
    WhatsAppInstance,
)
from morphews.domain.services.phone import normalize_whatsapp
from morphews.domain.time_utils import utcnow
from morphews.infrastructure.database import async_session
from morphews.infrastructure.services.evolution_service import EvolutionService

logger = logging.getLogger(__name__)

ONLINE_INSTANCE_STATUSES = ("active", "connected")


class ScheduledMessagesService:
    """Processa a fila de lead_scheduled_messages em lotes."""

    def __init__(self, evolution: Optional[EvolutionService] = None, batch_size: Optional[int] = None):
        self.evolution = evolution or EvolutionService()
        self.batch_size = batch_size or get_settings().scheduled_messages_batch_size

    def _fail(self, message: ScheduledMessage, reason: str, offline: bool = False) -> str:
        status = ScheduledMessageStatus.FAILED_OFFLINE if offline else ScheduledMessageStatus.FAILED_OTHER
        message.status = status.value
        message.failure_reason = reason
        logger.warning(f"⚠️ [scheduled] Mensagem {message.id}: {reason}")
        return message.status

    async def _send(self, instance: WhatsAppInstance, phone: str, message: ScheduledMessage) -> dict:
        if message.media_type and message.media_url:
            return await self.evolution.send_media(
                instance.evolution_instance_id,
                phone,
                message.media_type,
                message.media_url,
                caption=message.final_message,
                filename=message.media_filename,
            )
        return await self.evolution.send_text(instance.evolution_instance_id, phone, message.final_message)

    async def process_message(self, db: AsyncSession, message: ScheduledMessage, now: datetime) -> str:
        lead = await db.get(Lead, message.lead_id)
        if not lead:
            return self._fail(message, "Lead não encontrado")

        phone = normalize_whatsapp(lead.whatsapp or "")
        if not phone:
            return self._fail(message, "Telefone inválido")

        if not message.whatsapp_instance_id:
            return self._fail(message, "Nenhuma instância WhatsApp configurada")

        instance = await db.get(WhatsAppInstance, message.whatsapp_instance_id)
        if not instance:
            return self._fail(message, "Instância WhatsApp não encontrada")

        if not instance.is_connected or instance.status not in ONLINE_INSTANCE_STATUSES:
            return self._fail(message, f"Instância desconectada (status: {instance.status})", offline=True)

        result = await self._send(instance, phone, message)
        if not result.get("success"):
            return self._fail(message, result.get("error") or "Erro desconhecido ao enviar")

        message.status = ScheduledMessageStatus.SENT.value
        message.sent_at = now
        message.failure_reason = None
        logger.info(f"📤 [scheduled] Mensagem {message.id} enviada para o lead {lead.id}")
        return message.status

    async def process(self, db: AsyncSession, now: Optional[datetime] = None) -> dict:
        now = now or utcnow()
        result = await db.execute(
            select(ScheduledMessage)
            .where(
                ScheduledMessage.status == ScheduledMessageStatus.PENDING.value,
                ScheduledMessage.scheduled_at <= now,
            )
            .order_by(ScheduledMessage.scheduled_at.asc(), ScheduledMessage.id.asc())
            .limit(self.batch_size)
        )
        messages = list(result.scalars().all())

        stats = {"processed": len(messages), "sent": 0, "failed": 0}
        for message in messages:
            try:
                status = await self.process_message(db, message, now)
            except Exception as e:
                logger.error(f"❌ [scheduled] Erro ao processar mensagem {message.id}: {e}", exc_info=True)
                status = self._fail(message, str(e))

            if status == ScheduledMessageStatus.SENT.value:
                stats["sent"] += 1
            else:
                stats["failed"] += 1

        await db.flush()
        return stats

    async def run(self) -> dict:
        try:
            async with async_session() as session:
                stats = await self.process(session)
                await session.commit()
                if stats["processed"]:
                    logger.info(f"✅ [scheduled] Lote concluído: {stats}")
                return stats
        except Exception as e:
            logger.error(f"❌ Erro no job de mensagens agendadas: {e}", exc_info=True)
            return {"error": str(e)}


async def run_scheduled_messages_job():
    """Função que o scheduler vai chamar."""
    return await ScheduledMessagesService().run()
