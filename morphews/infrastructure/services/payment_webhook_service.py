"""
SERVIÇO: WEBHOOK DE PAGAMENTO
=============================

Endpoint único para Pagar.me, Appmax, Asaas e Stripe. O gateway é
detectado pelo formato do payload; a venda é encontrada pelo ID
enviado nos metadados ou pelo ID do gateway gravado nas observações.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from morphews.domain.entities import (
    PaymentAttempt,
    PaymentStatus,
    Sale,
    SaleStatus,
    SaleStatusHistory,
)
from morphews.domain.services.status_mapping import (
    attempt_status_for,
    detect_gateway,
    map_payment_status,
)
from morphews.domain.time_utils import utcnow
from .split_engine import process_sale_splits

logger = logging.getLogger(__name__)


async def find_sale(db: AsyncSession, sale_ref: str) -> Optional[Sale]:
    """Busca por ID; se não achar, procura a referência nas observações."""
    if sale_ref.isdigit():
        sale = await db.get(Sale, int(sale_ref))
        if sale:
            return sale

    return await db.scalar(
        select(Sale)
        .where(Sale.notes.ilike(f"%{sale_ref}%"))
        .order_by(Sale.id)
        .limit(1)
    )


def record_status_change(
    db: AsyncSession,
    sale: Sale,
    new_status: str,
    source: str,
) -> bool:
    """Aplica o status e grava o histórico. False se nada mudou."""
    if sale.status == new_status:
        return False

    db.add(SaleStatusHistory(
        sale_id=sale.id,
        previous_status=sale.status,
        new_status=new_status,
        source=source,
    ))
    sale.status = new_status
    return True


async def process_payment_webhook(db: AsyncSession, body: dict) -> dict:
    """
    Aplica o evento de pagamento na venda.

    Payload sem gateway reconhecido ou sem venda é só reconhecido
    (received=True), para o gateway não reenviar.
    """
    payload = detect_gateway(body)

    if not payload.gateway:
        logger.info("💳 [payment] Formato de gateway desconhecido")
        return {"received": True, "message": "Unknown gateway format"}

    logger.info(
        f"💳 [payment] Gateway {payload.gateway}, venda {payload.sale_ref}, status {payload.status}"
    )

    if not payload.sale_ref:
        return {"received": True, "message": "No sale ID"}

    sale = await find_sale(db, payload.sale_ref)
    if not sale:
        logger.warning(f"⚠️ [payment] Venda não encontrada: {payload.sale_ref}")
        return {"received": True, "message": "Sale not found"}

    new_status, payment_status = map_payment_status(payload.status)

    sale.payment_status = payment_status
    if new_status:
        record_status_change(db, sale, new_status, source=f"payment_webhook:{payload.gateway}")
        if new_status == SaleStatus.PAYMENT_CONFIRMED.value and not sale.payment_confirmed_at:
            sale.payment_confirmed_at = utcnow()

    if payload.transaction_id:
        sale.notes = f"{payload.gateway.upper()} ID: {payload.transaction_id}"

    db.add(PaymentAttempt(
        sale_id=sale.id,
        gateway=payload.gateway,
        payment_method=payload.payment_method or "unknown",
        amount_cents=payload.amount_cents or sale.total_cents,
        status=attempt_status_for(payment_status),
        gateway_transaction_id=payload.transaction_id,
        attempt_number=1,
        response_data=payload.raw,
    ))
    await db.flush()

    logger.info(
        f"✅ [payment] Venda {sale.id}: status={new_status or 'inalterado'}, pagamento={payment_status}",
        extra={"context": {"organization_id": sale.organization_id, "sale_id": sale.id, "gateway": payload.gateway}},
    )

    if payment_status == PaymentStatus.PAID.value:
        await process_sale_splits(db, sale.id)

    return {"success": True, "gateway": payload.gateway, "sale_id": sale.id}
