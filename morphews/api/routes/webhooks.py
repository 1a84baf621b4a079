"""
ROTAS: WEBHOOKS DE FORNECEDORES
===============================

Endpoints chamados por sistemas externos (sem token):
- /webhooks/payment       Pagar.me, Appmax, Asaas, Stripe
- /webhooks/melhor-envio  Rastreio de entregas
- /webhooks/focus-nfe     Notas fiscais
- /webhooks/evolution     Mensagens do WhatsApp

Cada fornecedor tem seu contrato de resposta: o Melhor Envio reenvia
em loop qualquer resposta diferente de 200, então ali erros também
respondem 200.
"""

import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from morphews.infrastructure.database import get_db
from morphews.infrastructure.services.fiscal_webhook_service import process_focus_nfe_callback
from morphews.infrastructure.services.inbound_message_service import ingest_evolution_event
from morphews.infrastructure.services.payment_webhook_service import process_payment_webhook
from morphews.infrastructure.services.shipping_webhook_service import process_melhor_envio_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


async def _read_json(request: Request):
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


# ============================================
# PAGAMENTOS
# ============================================

@router.get("/payment")
async def payment_webhook_validation():
    return {"status": "ok", "message": "Payment webhook active"}


@router.post("/payment")
async def payment_webhook(request: Request, db: AsyncSession = Depends(get_db)):
    body = await _read_json(request)
    if not isinstance(body, dict):
        logger.error("❌ [payment] Payload JSON inválido")
        return JSONResponse(status_code=400, content={"error": "Invalid JSON"})

    try:
        return await process_payment_webhook(db, body)
    except Exception as e:
        await db.rollback()
        logger.error(f"❌ [payment] Erro ao processar webhook: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(e)})


# ============================================
# MELHOR ENVIO
# ============================================

@router.get("/melhor-envio")
async def melhor_envio_validation():
    logger.info("📦 [melhor-envio] Validação do endpoint")
    return {"status": "ok", "message": "Webhook endpoint active"}


@router.post("/melhor-envio")
async def melhor_envio_webhook(request: Request, db: AsyncSession = Depends(get_db)):
    body = await _read_json(request)
    if not isinstance(body, dict):
        return {"success": True, "message": "Acknowledged"}

    try:
        return await process_melhor_envio_event(db, body)
    except Exception as e:
        await db.rollback()
        logger.error(f"❌ [melhor-envio] Erro ao processar evento: {e}", exc_info=True)
        return {"success": True, "error": str(e)}


# ============================================
# FOCUS NFe
# ============================================

@router.post("/focus-nfe")
async def focus_nfe_webhook(request: Request, db: AsyncSession = Depends(get_db)):
    body = await _read_json(request)
    if not isinstance(body, dict):
        return JSONResponse(status_code=400, content={"error": "Invalid JSON"})

    try:
        result = await process_focus_nfe_callback(db, body)
    except Exception as e:
        await db.rollback()
        logger.error(f"❌ [focus-nfe] Erro ao processar callback: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(e)})

    if result.get("success"):
        return result
    if result.get("not_found"):
        return JSONResponse(status_code=404, content={"error": result["error"]})
    return JSONResponse(status_code=400, content={"error": result["error"]})


# ============================================
# EVOLUTION API (WhatsApp)
# ============================================

@router.post("/evolution")
async def evolution_webhook(request: Request, db: AsyncSession = Depends(get_db)):
    body = await _read_json(request)
    if not isinstance(body, dict):
        return {"success": True, "ignored": True}

    try:
        return await ingest_evolution_event(db, body)
    except Exception as e:
        await db.rollback()
        logger.error(f"❌ [evolution] Erro ao processar evento: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(e)})
