"""
JOB DE EXPIRAÇÃO DE PEDIDOS
===========================
Cancela pedidos do e-commerce que não foram pagos no prazo.
"""

import logging

from morphews.infrastructure.database import async_session
from morphews.infrastructure.services.order_expiry_service import cancel_expired_orders

logger = logging.getLogger(__name__)


async def run_order_expiry_job():
    """Função que o scheduler vai chamar."""
    try:
        async with async_session() as session:
            stats = await cancel_expired_orders(session)
            await session.commit()
            return stats
    except Exception as e:
        logger.error(f"❌ Erro no job de expiração de pedidos: {e}", exc_info=True)
        return {"error": str(e)}
