"""
SERVIÇO: WEBHOOK EVOLUTION API
==============================

Recebe os eventos da Evolution API:
- messages.upsert: mensagem recebida do cliente
- connection.update: instância conectou/desconectou

Mensagens enviadas pelo próprio número (fromMe) e de grupos são ignoradas.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from morphews.domain.entities import (
    ConversationStatus,
    DistributionMode,
    Lead,
    WhatsAppConversation,
    WhatsAppInstance,
    WhatsAppMessage,
)
from morphews.domain.services.phone import chat_id_to_phone, normalize_whatsapp
from morphews.domain.time_utils import utcnow
from .distribution_service import reopen_conversation

logger = logging.getLogger(__name__)

MEDIA_KEYS = {
    "imageMessage": "image",
    "audioMessage": "audio",
    "videoMessage": "video",
    "documentMessage": "document",
    "stickerMessage": "sticker",
}


@dataclass
class InboundMessage:
    instance_name: str
    chat_id: str
    from_me: bool
    provider_message_id: Optional[str]
    push_name: str
    content: str
    message_type: str

    @property
    def is_group(self) -> bool:
        return self.chat_id.endswith("@g.us")


def _normalize_event(event: Optional[str]) -> str:
    return (event or "").lower().replace("_", ".")


def extract_content(message: dict) -> tuple:
    """(tipo, texto) a partir do objeto `message` da Evolution."""
    if message.get("conversation"):
        return "text", message["conversation"]

    extended = message.get("extendedTextMessage") or {}
    if extended.get("text"):
        return "text", extended["text"]

    for key, message_type in MEDIA_KEYS.items():
        if key in message:
            media = message.get(key) or {}
            return message_type, media.get("caption") or ""

    return "unknown", ""


def parse_messages_upsert(body: dict) -> Optional[InboundMessage]:
    data = body.get("data") or body
    key = data.get("key") or {}
    remote_jid = key.get("remoteJid") or ""
    if not remote_jid:
        return None

    message_type, content = extract_content(data.get("message") or {})
    return InboundMessage(
        instance_name=body.get("instance") or body.get("instanceName") or "",
        chat_id=remote_jid,
        from_me=key.get("fromMe") is True,
        provider_message_id=key.get("id"),
        push_name=data.get("pushName") or "",
        content=content,
        message_type=message_type,
    )


async def _get_instance(db: AsyncSession, instance_name: str) -> Optional[WhatsAppInstance]:
    if not instance_name:
        return None
    return await db.scalar(
        select(WhatsAppInstance).where(WhatsAppInstance.evolution_instance_id == instance_name)
    )


async def _find_lead_id(db: AsyncSession, organization_id: int, phone: str) -> Optional[int]:
    return await db.scalar(
        select(Lead.id)
        .where(Lead.organization_id == organization_id, Lead.whatsapp == phone)
        .order_by(Lead.id)
        .limit(1)
    )


async def get_or_create_conversation(
    db: AsyncSession,
    instance: WhatsAppInstance,
    inbound: InboundMessage,
) -> tuple:
    """(conversa, criada_agora)"""
    conversation = await db.scalar(
        select(WhatsAppConversation).where(
            WhatsAppConversation.instance_id == instance.id,
            WhatsAppConversation.chat_id == inbound.chat_id,
        )
    )
    if conversation:
        return conversation, False

    phone = normalize_whatsapp(chat_id_to_phone(inbound.chat_id))
    initial_status = (
        ConversationStatus.WITH_BOT.value
        if instance.distribution_mode == DistributionMode.BOT.value
        else ConversationStatus.PENDING.value
    )
    conversation = WhatsAppConversation(
        organization_id=instance.organization_id,
        instance_id=instance.id,
        chat_id=inbound.chat_id,
        phone_number=phone,
        contact_name=inbound.push_name or f"+{phone}",
        is_group=inbound.is_group,
        status=initial_status,
        unread_count=0,
        lead_id=await _find_lead_id(db, instance.organization_id, phone),
    )
    db.add(conversation)
    await db.flush()
    logger.info(f"💬 [evolution] Nova conversa {conversation.id} ({phone})")
    return conversation, True


async def handle_messages_upsert(db: AsyncSession, body: dict) -> dict:
    inbound = parse_messages_upsert(body)
    if not inbound:
        return {"success": True, "ignored": True}

    if inbound.from_me or inbound.is_group:
        return {"success": True, "ignored": True}

    instance = await _get_instance(db, inbound.instance_name)
    if not instance:
        logger.info(f"💬 [evolution] Instância não encontrada: {inbound.instance_name}")
        return {"success": True, "ignored": True}

    conversation, is_new = await get_or_create_conversation(db, instance, inbound)

    if inbound.provider_message_id:
        duplicate = await db.scalar(
            select(WhatsAppMessage.id).where(
                WhatsAppMessage.conversation_id == conversation.id,
                WhatsAppMessage.provider_message_id == inbound.provider_message_id,
            )
        )
        if duplicate:
            return {"success": True, "duplicate": True, "conversation_id": conversation.id}

    now = utcnow()
    db.add(WhatsAppMessage(
        conversation_id=conversation.id,
        provider_message_id=inbound.provider_message_id,
        direction="inbound",
        message_type=inbound.message_type,
        content=inbound.content,
        sender_name=inbound.push_name or None,
        created_at=now,
    ))

    conversation.last_message_at = now
    conversation.unread_count = (conversation.unread_count or 0) + 1
    if inbound.push_name and not conversation.contact_name:
        conversation.contact_name = inbound.push_name

    # Resposta da pesquisa NPS fica com o job de auto-close
    distribution = None
    if not conversation.awaiting_satisfaction_response:
        distribution = await reopen_conversation(db, conversation, instance, is_new)

    await db.flush()
    return {
        "success": True,
        "conversation_id": conversation.id,
        "status": conversation.status,
        "distribution": distribution,
    }


async def handle_connection_update(db: AsyncSession, body: dict) -> dict:
    instance = await _get_instance(db, body.get("instance") or body.get("instanceName") or "")
    if not instance:
        return {"success": True, "ignored": True}

    state = (body.get("data") or {}).get("state") or body.get("state") or ""
    is_connected = state == "open"

    instance.is_connected = is_connected
    instance.status = "connected" if is_connected else state
    await db.flush()

    logger.info(f"🔌 [evolution] Instância {instance.id}: {state}")
    return {"success": True, "is_connected": is_connected}


async def ingest_evolution_event(db: AsyncSession, body: dict) -> dict:
    event = _normalize_event(body.get("event"))

    if event == "messages.upsert":
        return await handle_messages_upsert(db, body)
    if event == "connection.update":
        return await handle_connection_update(db, body)

    logger.debug(f"[evolution] Evento não tratado: {event}")
    return {"success": True, "unhandled": True}
