"""
SERVIÇO: WEBHOOK FOCUS NFe
==========================

A Focus NFe avisa quando uma nota muda de situação na SEFAZ.
A nota é localizada pela referência enviada na emissão (focus_nfe_ref).
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from morphews.domain.entities import FiscalInvoice, FiscalInvoiceEvent, InvoiceStatus
from morphews.domain.services.status_mapping import map_fiscal_status
from morphews.domain.time_utils import utcnow

logger = logging.getLogger(__name__)


async def process_focus_nfe_callback(db: AsyncSession, payload: dict) -> dict:
    """
    Aplica o callback na nota fiscal.

    Returns:
        {"success": True, "status": ...} ou {"success": False, "error": ..., "not_found": bool}
    """
    ref = payload.get("ref")
    raw_status = payload.get("status")
    if not ref or not raw_status:
        return {"success": False, "error": "ref e status são obrigatórios", "not_found": False}

    invoice = await db.scalar(select(FiscalInvoice).where(FiscalInvoice.focus_nfe_ref == ref))
    if not invoice:
        logger.warning(f"🧾 [focus-nfe] Nota com ref {ref} não encontrada")
        return {"success": False, "error": "Invoice not found", "not_found": True}

    new_status = map_fiscal_status(raw_status)
    now = utcnow()

    if new_status == InvoiceStatus.AUTHORIZED.value:
        invoice.invoice_number = payload.get("numero") or invoice.invoice_number
        invoice.invoice_series = payload.get("serie") or invoice.invoice_series
        invoice.access_key = payload.get("chave_nfe") or invoice.access_key
        invoice.protocol_number = payload.get("protocolo") or invoice.protocol_number
        invoice.xml_url = payload.get("caminho_xml_nota_fiscal") or invoice.xml_url
        invoice.pdf_url = payload.get("caminho_danfe") or invoice.pdf_url
        invoice.authorized_at = now
        invoice.error_message = None
    elif new_status == InvoiceStatus.REJECTED.value:
        invoice.error_message = payload.get("mensagem_sefaz") or payload.get("mensagem")
    elif new_status == InvoiceStatus.CANCELLED.value:
        invoice.cancelled_at = now

    if new_status:
        invoice.status = new_status
    invoice.focus_nfe_response = payload

    db.add(FiscalInvoiceEvent(
        fiscal_invoice_id=invoice.id,
        event_type=f"webhook_{raw_status}",
        event_data=payload,
    ))
    await db.flush()

    logger.info(f"🧾 [focus-nfe] Nota {ref}: {raw_status} → {new_status or 'sem alteração'}")
    return {"success": True, "status": invoice.status}
