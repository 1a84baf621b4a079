"""
MODELOS: ENVIO (MELHOR ENVIO)
=============================

Etiquetas geradas e a configuração de mensagens automáticas por status
de rastreio.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, Integer, Boolean, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class ShippingLabel(Base, TimestampMixin):
    __tablename__ = "melhor_envio_labels"

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organizations.id", ondelete="CASCADE"), index=True)
    sale_id: Mapped[Optional[int]] = mapped_column(ForeignKey("sales.id", ondelete="SET NULL"), index=True)
    tracking_code: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    status: Mapped[str] = mapped_column(String(50), default="created")
    price_cents: Mapped[int] = mapped_column(Integer, default=0)
    posted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class CarrierTrackingStatus(Base, TimestampMixin):
    """Mensagem enviada ao lead quando o pedido atinge um status de rastreio."""

    __tablename__ = "carrier_tracking_statuses"
    __table_args__ = (UniqueConstraint("organization_id", "status_key", name="uq_tracking_status_key"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organizations.id", ondelete="CASCADE"), index=True)
    status_key: Mapped[str] = mapped_column(String(50), nullable=False)
    whatsapp_instance_id: Mapped[Optional[int]] = mapped_column(ForeignKey("whatsapp_instances.id", ondelete="SET NULL"))
    message_template: Mapped[Optional[str]] = mapped_column(Text)
    media_type: Mapped[Optional[str]] = mapped_column(String(20))
    media_url: Mapped[Optional[str]] = mapped_column(Text)
    media_filename: Mapped[Optional[str]] = mapped_column(String(255))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
