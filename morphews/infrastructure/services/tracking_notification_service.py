"""
Notificação de rastreio: agenda a mensagem de WhatsApp configurada para
o status de entrega atingido pelo pedido.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from morphews.domain.entities import (
    CarrierTrackingStatus,
    Lead,
    Sale,
    ScheduledMessage,
    ScheduledMessageStatus,
    User,
)
from morphews.domain.time_utils import utcnow
from .template_interpolation_service import build_context, interpolate

logger = logging.getLogger(__name__)


async def schedule_tracking_notification(
    db: AsyncSession,
    organization_id: int,
    sale_id: int,
    status_key: str,
) -> Optional[ScheduledMessage]:
    """
    Cria uma mensagem agendada para agora com o template do status.

    Returns:
        A mensagem criada, ou None quando não há o que notificar.
    """
    config = await db.scalar(
        select(CarrierTrackingStatus).where(
            CarrierTrackingStatus.organization_id == organization_id,
            CarrierTrackingStatus.status_key == status_key,
        )
    )
    if not config:
        logger.info(f"📭 [tracking] Sem configuração para o status '{status_key}'")
        return None

    if not config.is_active or not config.message_template or not config.whatsapp_instance_id:
        logger.info(f"📭 [tracking] Status '{status_key}' não está configurado para notificar")
        return None

    sale = await db.get(Sale, sale_id)
    lead = await db.get(Lead, sale.lead_id) if sale and sale.lead_id else None
    if not lead:
        logger.info(f"📭 [tracking] Venda {sale_id} sem lead vinculado")
        return None

    if not lead.whatsapp:
        logger.info(f"📭 [tracking] Lead {lead.id} sem WhatsApp")
        return None

    seller_name = ""
    if sale.seller_user_id:
        seller = await db.get(User, sale.seller_user_id)
        if seller:
            seller_name = seller.name

    context = build_context(
        lead_name=lead.name,
        seller_name=seller_name,
        product_name=lead.product_name,
    )

    message = ScheduledMessage(
        organization_id=organization_id,
        lead_id=lead.id,
        sale_id=sale.id,
        whatsapp_instance_id=config.whatsapp_instance_id,
        final_message=interpolate(config.message_template, context),
        scheduled_at=utcnow(),
        status=ScheduledMessageStatus.PENDING.value,
        media_type=config.media_type or None,
        media_url=config.media_url or None,
        media_filename=config.media_filename or None,
    )
    db.add(message)
    await db.flush()

    logger.info(f"📨 [tracking] Mensagem '{status_key}' agendada para o lead {lead.id}")
    return message
