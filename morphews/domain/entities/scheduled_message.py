"""
MODELO: MENSAGEM AGENDADA
=========================

Mensagens de WhatsApp que o job envia quando scheduled_at chega
(notificações de rastreio, lembretes de pagamento, follow-ups).
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, DateTime, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin
from .enums import ScheduledMessageStatus


class ScheduledMessage(Base, TimestampMixin):
    __tablename__ = "lead_scheduled_messages"

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organizations.id", ondelete="CASCADE"), index=True)
    lead_id: Mapped[int] = mapped_column(ForeignKey("leads.id", ondelete="CASCADE"), index=True)
    sale_id: Mapped[Optional[int]] = mapped_column(ForeignKey("sales.id", ondelete="SET NULL"), index=True)
    whatsapp_instance_id: Mapped[Optional[int]] = mapped_column(ForeignKey("whatsapp_instances.id", ondelete="SET NULL"))

    final_message: Mapped[str] = mapped_column(Text, nullable=False)
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), default=ScheduledMessageStatus.PENDING.value, index=True)
    failure_reason: Mapped[Optional[str]] = mapped_column(Text)
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    media_type: Mapped[Optional[str]] = mapped_column(String(20))
    media_url: Mapped[Optional[str]] = mapped_column(Text)
    media_filename: Mapped[Optional[str]] = mapped_column(String(255))
