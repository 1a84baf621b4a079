"""
TESTES: TRADUÇÃO DE STATUS DOS FORNECEDORES
===========================================
"""

import pytest

from morphews.domain.services.status_mapping import (
    attempt_status_for,
    detect_gateway,
    map_carrier_status,
    map_fiscal_status,
    map_payment_status,
)


@pytest.mark.parametrize("raw, expected", [
    ("paid", ("payment_confirmed", "paid")),
    ("PAYMENT_CONFIRMED", ("payment_confirmed", "paid")),
    ("charge.succeeded", ("payment_confirmed", "paid")),
    ("refunded", ("cancelled", "refunded")),
    ("refused", ("cancelled", "cancelled")),
    ("payment_intent.payment_failed", ("cancelled", "cancelled")),
    ("waiting_payment", (None, "pending")),
    ("analyzing", (None, "analyzing")),
    ("something_new", (None, "pending")),
    ("", (None, "pending")),
])
def test_map_payment_status(raw, expected):
    assert map_payment_status(raw) == expected


def test_detect_pagarme():
    payload = detect_gateway({
        "id": 998877,
        "current_status": "paid",
        "amount": 15990,
        "payment_method": "pix",
        "metadata": {"sale_id": "42"},
    })

    assert payload.gateway == "pagarme"
    assert payload.sale_ref == "42"
    assert payload.transaction_id == "998877"
    assert payload.amount_cents == 15990
    assert payload.payment_method == "pix"


def test_detect_asaas_converts_reais_to_cents():
    payload = detect_gateway({
        "event": "PAYMENT_RECEIVED",
        "payment": {"id": "pay_1", "value": 99.9, "externalReference": "7", "billingType": "PIX"},
    })

    assert payload.gateway == "asaas"
    assert payload.sale_ref == "7"
    assert payload.amount_cents == 9990
    assert payload.payment_method == "pix"
    assert map_payment_status(payload.status)[1] == "paid"


def test_detect_appmax():
    payload = detect_gateway({
        "event": "OrderPaid",
        "data": {"order_id": 555, "external_id": "12", "status": "APPROVED", "total": "49.90"},
    })

    assert payload.gateway == "appmax"
    assert payload.sale_ref == "12"
    assert payload.status == "approved"
    assert payload.amount_cents == 4990


def test_detect_stripe():
    payload = detect_gateway({
        "type": "payment_intent.succeeded",
        "data": {"object": {"id": "pi_123", "amount": 2500, "metadata": {"sale_id": "3"}}},
    })

    assert payload.gateway == "stripe"
    assert payload.sale_ref == "3"
    assert payload.transaction_id == "pi_123"


def test_unknown_payload_has_no_gateway():
    assert detect_gateway({"hello": "world"}).gateway is None


def test_attempt_status():
    assert attempt_status_for("paid") == "success"
    assert attempt_status_for("pending") == "pending"
    assert attempt_status_for("cancelled") == "failed"
    assert attempt_status_for("analyzing") == "failed"


@pytest.mark.parametrize("raw, expected", [
    ("in_transit", "posted"),
    ("out_for_delivery", "in_destination_city"),
    ("failed_delivery_attempt", "attempt_1_failed"),
    ("custom_status", "custom_status"),
    (None, None),
])
def test_map_carrier_status(raw, expected):
    assert map_carrier_status(raw) == expected


@pytest.mark.parametrize("raw, expected", [
    ("autorizado", "authorized"),
    ("AUTORIZADO", "authorized"),
    ("erro_autorizacao", "rejected"),
    ("denegado", "rejected"),
    ("cancelado", "cancelled"),
    ("processando_autorizacao", "processing"),
    ("desconhecido", None),
])
def test_map_fiscal_status(raw, expected):
    assert map_fiscal_status(raw) == expected
