"""
SERVIÇO: WEBHOOK MELHOR ENVIO
=============================

Eventos tratados:
- label.created / label.updated / shipment.tracking: atualiza status da etiqueta
- shipment.posted: etiqueta postada, venda "shipped"
- shipment.delivered: etiqueta e venda entregues

Todo evento que muda o status de rastreio pode disparar uma mensagem
automática para o cliente (ver tracking_notification_service).
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from morphews.domain.entities import Sale, ShippingLabel
from morphews.domain.services.status_mapping import map_carrier_status
from morphews.domain.time_utils import utcnow
from .tracking_notification_service import schedule_tracking_notification

logger = logging.getLogger(__name__)

TRACKING_EVENTS = ("label.created", "label.updated", "shipment.tracking")


async def _get_label(db: AsyncSession, tracking_code: str) -> Optional[ShippingLabel]:
    return await db.scalar(
        select(ShippingLabel).where(ShippingLabel.tracking_code == tracking_code)
    )


async def _notify(db: AsyncSession, label: ShippingLabel, status_key: Optional[str]) -> None:
    if label.sale_id and label.organization_id and status_key:
        await schedule_tracking_notification(db, label.organization_id, label.sale_id, status_key)


async def _update_sale_shipping(db: AsyncSession, sale_id: int, shipping_status: str, carrier_status: str) -> None:
    sale = await db.get(Sale, sale_id)
    if sale:
        sale.shipping_status = shipping_status
        sale.carrier_tracking_status = carrier_status


async def handle_tracking_update(db: AsyncSession, data: dict) -> Optional[str]:
    tracking_code = data.get("tracking_code")
    if not tracking_code:
        logger.info("📦 [melhor-envio] Evento sem tracking_code")
        return None

    label = await _get_label(db, tracking_code)
    if not label:
        logger.info(f"📦 [melhor-envio] Etiqueta {tracking_code} não encontrada")
        return None

    status = data.get("status")
    label.status = status or "tracking_updated"

    internal_status = map_carrier_status(status)
    await _notify(db, label, internal_status)
    return internal_status


async def handle_posted(db: AsyncSession, data: dict) -> None:
    tracking_code = data.get("tracking_code")
    if not tracking_code:
        return

    label = await _get_label(db, tracking_code)
    if not label:
        logger.info(f"📦 [melhor-envio] Etiqueta {tracking_code} não encontrada")
        return

    label.status = "posted"
    label.posted_at = utcnow()

    if label.sale_id:
        await _update_sale_shipping(db, label.sale_id, "shipped", "posted")

    await _notify(db, label, "posted")


async def handle_delivered(db: AsyncSession, data: dict) -> None:
    tracking_code = data.get("tracking_code")
    if not tracking_code:
        return

    label = await _get_label(db, tracking_code)
    if not label:
        logger.info(f"📦 [melhor-envio] Etiqueta {tracking_code} não encontrada")
        return

    label.status = "delivered"

    if label.sale_id:
        await _update_sale_shipping(db, label.sale_id, "delivered", "delivered")
        await _notify(db, label, "delivered")


async def process_melhor_envio_event(db: AsyncSession, payload: dict) -> dict:
    """
    Processa um POST do Melhor Envio.

    Payload sem event/data é apenas reconhecido.
    """
    event = payload.get("event") if isinstance(payload, dict) else None
    data = payload.get("data") if isinstance(payload, dict) else None

    if not event or not isinstance(data, dict):
        logger.info("📦 [melhor-envio] Payload sem event ou data")
        return {"success": True, "message": "Acknowledged"}

    if event in TRACKING_EVENTS:
        await handle_tracking_update(db, data)
    elif event == "shipment.posted":
        await handle_posted(db, data)
    elif event == "shipment.delivered":
        await handle_delivered(db, data)
    else:
        logger.info(f"📦 [melhor-envio] Evento não tratado: {event}")

    await db.flush()
    return {"success": True, "event": event}
