"""
MAPEAMENTO DE STATUS DOS FORNECEDORES
=====================================

Cada gateway/transportadora/emissor fala seu próprio dialeto de status.
Aqui ficam as tabelas que traduzem para os status internos.

- Pagamentos: Pagar.me, Appmax, Asaas, Stripe (um webhook único)
- Envio: Melhor Envio
- Fiscal: Focus NFe
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

from morphews.domain.entities.enums import InvoiceStatus, PaymentStatus, SaleStatus


# =============================================================================
# PAGAMENTOS
# =============================================================================

PAID_MARKERS = (
    "paid", "approved", "captured", "payment_confirmed", "payment_received",
    "payment_intent.succeeded", "charge.succeeded",
)
REFUNDED_MARKERS = ("refunded", "payment_refunded", "charge.refunded")
CANCELLED_MARKERS = (
    "refused", "cancelled", "denied", "failed", "chargedback", "payment_deleted",
    "payment_intent.payment_failed", "charge.failed",
)
ANALYZING_MARKERS = ("analyzing", "awaiting_risk_analysis", "review")
PENDING_MARKERS = (
    "pending", "waiting", "processing", "authorized", "created", "updated",
    "payment_intent.created", "payment_intent.processing",
)


@dataclass
class GatewayPayload:
    """Dados extraídos de um webhook de pagamento, já normalizados."""
    gateway: Optional[str]
    sale_ref: Optional[str]
    status: str = ""
    transaction_id: Optional[str] = None
    payment_method: Optional[str] = None
    amount_cents: Optional[int] = None
    raw: dict = field(default_factory=dict)


def map_payment_status(raw_status: str) -> Tuple[Optional[str], str]:
    """
    Traduz o status do gateway.

    Returns:
        (novo status da venda ou None para manter, payment_status)
    """
    status = (raw_status or "").lower()

    if any(marker in status for marker in PAID_MARKERS):
        return SaleStatus.PAYMENT_CONFIRMED.value, PaymentStatus.PAID.value

    if any(marker in status for marker in REFUNDED_MARKERS):
        return SaleStatus.CANCELLED.value, PaymentStatus.REFUNDED.value

    if any(marker in status for marker in CANCELLED_MARKERS):
        return SaleStatus.CANCELLED.value, PaymentStatus.CANCELLED.value

    if any(marker in status for marker in ANALYZING_MARKERS):
        return None, PaymentStatus.ANALYZING.value

    if any(marker in status for marker in PENDING_MARKERS):
        return None, PaymentStatus.PENDING.value

    return None, PaymentStatus.PENDING.value


def _to_cents(value: Any) -> Optional[int]:
    if value in (None, "", 0):
        return None
    try:
        return int(round(float(value) * 100))
    except (TypeError, ValueError):
        return None


def _as_str(value: Any) -> Optional[str]:
    if value in (None, ""):
        return None
    return str(value)


def detect_gateway(body: dict) -> GatewayPayload:
    """
    Descobre o gateway pelo formato do payload e extrai os dados da venda.
    """
    # Pagar.me
    if body.get("current_status") is not None and isinstance(body.get("metadata"), dict):
        metadata = body["metadata"]
        return GatewayPayload(
            gateway="pagarme",
            sale_ref=_as_str(metadata.get("sale_id")),
            status=str(body["current_status"]),
            transaction_id=_as_str(body.get("id")),
            payment_method=body.get("payment_method"),
            amount_cents=body.get("amount") or None,
            raw=body,
        )

    # Appmax
    if body.get("event") is not None and isinstance(body.get("data"), dict):
        data = body["data"]
        return GatewayPayload(
            gateway="appmax",
            sale_ref=_as_str(data.get("external_id") or data.get("order_id")),
            status=str(data.get("status") or body.get("event") or "").lower(),
            transaction_id=_as_str(data.get("order_id") or data.get("id")),
            amount_cents=_to_cents(data.get("total")),
            raw=body,
        )

    # Asaas
    if isinstance(body.get("payment"), dict) and body.get("event"):
        payment = body["payment"]
        return GatewayPayload(
            gateway="asaas",
            sale_ref=_as_str(payment.get("externalReference")),
            status=str(body["event"]),
            transaction_id=_as_str(payment.get("id")),
            payment_method=(payment.get("billingType") or "").lower() or None,
            amount_cents=_to_cents(payment.get("value")),
            raw=body,
        )

    # Stripe (PaymentIntent ou Charge)
    event_type = body.get("type")
    if isinstance(event_type, str) and event_type.startswith(("payment_intent", "charge")):
        obj = (body.get("data") or {}).get("object") or {}
        metadata = obj.get("metadata") or {}
        return GatewayPayload(
            gateway="stripe",
            sale_ref=_as_str(metadata.get("sale_id")),
            status=event_type,
            transaction_id=_as_str(obj.get("id")),
            payment_method="card",
            amount_cents=obj.get("amount") or None,
            raw=body,
        )

    return GatewayPayload(gateway=None, sale_ref=None, raw=body)


def attempt_status_for(payment_status: str) -> str:
    """Status gravado em payment_attempts."""
    if payment_status == PaymentStatus.PAID.value:
        return "success"
    if payment_status == PaymentStatus.PENDING.value:
        return "pending"
    return "failed"


# =============================================================================
# ENVIO (MELHOR ENVIO)
# =============================================================================

CARRIER_STATUS_MAP = {
    "posted": "posted",
    "in_transit": "posted",
    "out_for_delivery": "in_destination_city",
    "delivered": "delivered",
    "returning_to_sender": "returning_to_sender",
    "failed_delivery_attempt": "attempt_1_failed",
}


def map_carrier_status(raw_status: Optional[str]) -> Optional[str]:
    """Status desconhecido passa adiante sem tradução."""
    if not raw_status:
        return raw_status
    return CARRIER_STATUS_MAP.get(raw_status, raw_status)


# =============================================================================
# FISCAL (FOCUS NFe)
# =============================================================================

FISCAL_STATUS_MAP = {
    "autorizado": InvoiceStatus.AUTHORIZED.value,
    "cancelado": InvoiceStatus.CANCELLED.value,
    "erro_autorizacao": InvoiceStatus.REJECTED.value,
    "erro_validacao": InvoiceStatus.REJECTED.value,
    "denegado": InvoiceStatus.REJECTED.value,
    "processando_autorizacao": InvoiceStatus.PROCESSING.value,
}


def map_fiscal_status(raw_status: Optional[str]) -> Optional[str]:
    """None = status sem efeito na nota (só registra o evento)."""
    if not raw_status:
        return None
    return FISCAL_STATUS_MAP.get(raw_status.lower())
