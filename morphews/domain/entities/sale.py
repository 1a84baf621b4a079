"""
MODELOS: VENDAS E PAGAMENTOS
============================

Venda (pedido), histórico de status, tentativas de pagamento e o
split financeiro (contas virtuais do tenant/afiliado/plataforma).
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, Integer, Float, DateTime, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, MutableJSON, JSONType
from .enums import SaleStatus, SaleOrigin
from morphews.domain.time_utils import utcnow


class Sale(Base, TimestampMixin):
    __tablename__ = "sales"

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organizations.id", ondelete="CASCADE"), index=True)
    lead_id: Mapped[Optional[int]] = mapped_column(ForeignKey("leads.id", ondelete="SET NULL"), index=True)
    seller_user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))

    status: Mapped[str] = mapped_column(String(30), default=SaleStatus.DRAFT.value, index=True)
    payment_status: Mapped[Optional[str]] = mapped_column(String(20))
    origin: Mapped[str] = mapped_column(String(20), default=SaleOrigin.MANUAL.value)
    total_cents: Mapped[int] = mapped_column(Integer, default=0)

    # ===============================
    # ENTREGA
    # ===============================
    shipping_status: Mapped[Optional[str]] = mapped_column(String(30))
    carrier_tracking_status: Mapped[Optional[str]] = mapped_column(String(50))
    tracking_code: Mapped[Optional[str]] = mapped_column(String(50))

    notes: Mapped[Optional[str]] = mapped_column(Text)
    payment_confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    cancellation_reason: Mapped[Optional[str]] = mapped_column(String(100))


class SaleStatusHistory(Base):
    __tablename__ = "sale_status_history"

    id: Mapped[int] = mapped_column(primary_key=True)
    sale_id: Mapped[int] = mapped_column(ForeignKey("sales.id", ondelete="CASCADE"), index=True)
    previous_status: Mapped[Optional[str]] = mapped_column(String(30))
    new_status: Mapped[str] = mapped_column(String(30), nullable=False)
    # payment_webhook, order_expiry, manual ...
    source: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class PaymentAttempt(Base):
    __tablename__ = "payment_attempts"

    id: Mapped[int] = mapped_column(primary_key=True)
    sale_id: Mapped[int] = mapped_column(ForeignKey("sales.id", ondelete="CASCADE"), index=True)
    gateway: Mapped[str] = mapped_column(String(30), nullable=False)
    payment_method: Mapped[Optional[str]] = mapped_column(String(30))
    amount_cents: Mapped[int] = mapped_column(Integer, default=0)
    # success, pending, failed, cancelled
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    gateway_transaction_id: Mapped[Optional[str]] = mapped_column(String(120))
    attempt_number: Mapped[int] = mapped_column(Integer, default=1)
    response_data: Mapped[Optional[dict]] = mapped_column(JSONType)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class PlatformSetting(Base):
    """Configurações globais da plataforma (taxas, regras de saque)."""

    __tablename__ = "platform_settings"

    id: Mapped[int] = mapped_column(primary_key=True)
    setting_key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    setting_value: Mapped[Optional[dict]] = mapped_column(MutableJSON)


class VirtualAccount(Base, TimestampMixin):
    __tablename__ = "virtual_accounts"

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organizations.id", ondelete="CASCADE"), index=True)
    account_type: Mapped[str] = mapped_column(String(20), nullable=False)  # tenant, affiliate
    holder_name: Mapped[str] = mapped_column(String(200), nullable=False)
    holder_email: Mapped[Optional[str]] = mapped_column(String(255))
    pending_balance_cents: Mapped[int] = mapped_column(Integer, default=0)
    total_received_cents: Mapped[int] = mapped_column(Integer, default=0)


class VirtualTransaction(Base):
    __tablename__ = "virtual_transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    virtual_account_id: Mapped[int] = mapped_column(ForeignKey("virtual_accounts.id", ondelete="CASCADE"), index=True)
    sale_id: Mapped[Optional[int]] = mapped_column(ForeignKey("sales.id", ondelete="SET NULL"))
    transaction_type: Mapped[str] = mapped_column(String(20), nullable=False)  # credit, debit
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    fee_cents: Mapped[int] = mapped_column(Integer, default=0)
    net_amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(20), default="pending")
    release_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class SaleSplit(Base):
    __tablename__ = "sale_splits"

    id: Mapped[int] = mapped_column(primary_key=True)
    sale_id: Mapped[int] = mapped_column(ForeignKey("sales.id", ondelete="CASCADE"), index=True)
    virtual_account_id: Mapped[int] = mapped_column(ForeignKey("virtual_accounts.id", ondelete="CASCADE"))
    split_type: Mapped[str] = mapped_column(String(20), nullable=False)  # tenant, affiliate, platform
    gross_amount_cents: Mapped[int] = mapped_column(Integer, default=0)
    fee_cents: Mapped[int] = mapped_column(Integer, default=0)
    net_amount_cents: Mapped[int] = mapped_column(Integer, default=0)
    percentage: Mapped[Optional[float]] = mapped_column(Float)
    transaction_id: Mapped[Optional[int]] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
