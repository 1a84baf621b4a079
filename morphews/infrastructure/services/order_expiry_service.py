"""
EXPIRAÇÃO DE PEDIDOS
====================

Pedidos do e-commerce que ficam aguardando pagamento além do prazo são
cancelados. O cancelamento desce para as tentativas de pagamento
pendentes e para as mensagens agendadas da venda (ex.: lembretes de
PIX/boleto) que ainda não saíram.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from morphews.config import get_settings
from morphews.domain.entities import (
    PaymentAttempt,
    Sale,
    SaleOrigin,
    SaleStatus,
    SaleStatusHistory,
    ScheduledMessage,
    ScheduledMessageStatus,
)
from morphews.domain.time_utils import utcnow

logger = logging.getLogger(__name__)

EXPIRED_REASON = "expired"


async def cancel_expired_orders(
    db: AsyncSession,
    now: Optional[datetime] = None,
    hours: Optional[int] = None,
) -> dict:
    """
    Cancela pedidos vencidos.

    Returns:
        {"cancelled": n, "payment_attempts": n, "scheduled_messages": n, "skipped": n}
    """
    now = now or utcnow()
    hours = hours if hours is not None else get_settings().order_expiry_hours
    cutoff = now - timedelta(hours=hours)

    result = await db.execute(
        select(Sale.id).where(
            Sale.origin == SaleOrigin.ECOMMERCE.value,
            Sale.status == SaleStatus.PAYMENT_PENDING.value,
            Sale.created_at < cutoff,
        )
    )
    sale_ids = list(result.scalars().all())

    stats = {"cancelled": 0, "payment_attempts": 0, "scheduled_messages": 0, "skipped": 0}
    if not sale_ids:
        return stats

    logger.info(f"⏰ [order_expiry] {len(sale_ids)} pedidos vencidos (corte: {cutoff.isoformat()})")

    for sale_id in sale_ids:
        # Pagamento confirmado no meio do caminho mantém a venda
        flipped = await db.execute(
            update(Sale)
            .where(Sale.id == sale_id, Sale.status == SaleStatus.PAYMENT_PENDING.value)
            .values(
                status=SaleStatus.CANCELLED.value,
                cancelled_at=now,
                cancellation_reason=EXPIRED_REASON,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if flipped.rowcount == 0:
            stats["skipped"] += 1
            continue

        db.add(SaleStatusHistory(
            sale_id=sale_id,
            previous_status=SaleStatus.PAYMENT_PENDING.value,
            new_status=SaleStatus.CANCELLED.value,
            source="order_expiry",
        ))

        attempts = await db.execute(
            update(PaymentAttempt)
            .where(PaymentAttempt.sale_id == sale_id, PaymentAttempt.status == "pending")
            .values(status="cancelled")
            .execution_options(synchronize_session=False)
        )
        messages = await db.execute(
            update(ScheduledMessage)
            .where(
                ScheduledMessage.sale_id == sale_id,
                ScheduledMessage.status == ScheduledMessageStatus.PENDING.value,
            )
            .values(status=ScheduledMessageStatus.CANCELLED.value, failure_reason="Pedido expirado")
            .execution_options(synchronize_session=False)
        )

        stats["cancelled"] += 1
        stats["payment_attempts"] += attempts.rowcount
        stats["scheduled_messages"] += messages.rowcount

    await db.flush()
    logger.info(f"✅ [order_expiry] Resultado: {stats}", extra={"context": {"job": "order_expiry", **stats}})
    return stats
