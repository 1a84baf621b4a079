"""
MODELOS: ATENDIMENTO WHATSAPP
=============================

Instâncias (números conectados), conversas, mensagens, histórico de
atribuições e avaliações de satisfação (NPS).
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, Integer, Boolean, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin
from .enums import ConversationStatus, DistributionMode
from morphews.domain.time_utils import utcnow


class WhatsAppInstance(Base, TimestampMixin):
    """Número de WhatsApp conectado via Evolution API."""

    __tablename__ = "whatsapp_instances"

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organizations.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    # Nome da instância na Evolution API (usado nas URLs e nos webhooks)
    evolution_instance_id: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    phone_number: Mapped[Optional[str]] = mapped_column(String(30))
    status: Mapped[str] = mapped_column(String(20), default="active")
    is_connected: Mapped[bool] = mapped_column(Boolean, default=False)

    # ==========================================
    # DISTRIBUIÇÃO
    # ==========================================
    distribution_mode: Mapped[str] = mapped_column(String(20), default=DistributionMode.MANUAL.value)
    # Último user_id que recebeu conversa no rodízio
    last_distributed_user_id: Mapped[Optional[int]] = mapped_column(Integer)

    # ==========================================
    # ENCERRAMENTO AUTOMÁTICO
    # ==========================================
    auto_close_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    auto_close_bot_minutes: Mapped[int] = mapped_column(Integer, default=60)
    auto_close_assigned_minutes: Mapped[int] = mapped_column(Integer, default=480)
    auto_close_only_business_hours: Mapped[bool] = mapped_column(Boolean, default=False)
    auto_close_business_start: Mapped[Optional[str]] = mapped_column(String(5))
    auto_close_business_end: Mapped[Optional[str]] = mapped_column(String(5))
    auto_close_send_message: Mapped[bool] = mapped_column(Boolean, default=False)
    auto_close_message_template: Mapped[Optional[str]] = mapped_column(Text)

    satisfaction_survey_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    satisfaction_survey_message: Mapped[Optional[str]] = mapped_column(Text)


class WhatsAppInstanceUser(Base):
    """Usuários que atendem por uma instância."""

    __tablename__ = "whatsapp_instance_users"
    __table_args__ = (UniqueConstraint("instance_id", "user_id", name="uq_instance_user"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    instance_id: Mapped[int] = mapped_column(ForeignKey("whatsapp_instances.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    can_receive_distribution: Mapped[bool] = mapped_column(Boolean, default=True)


class WhatsAppConversation(Base, TimestampMixin):
    __tablename__ = "whatsapp_conversations"
    __table_args__ = (UniqueConstraint("instance_id", "chat_id", name="uq_conversation_chat"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organizations.id", ondelete="CASCADE"), index=True)
    instance_id: Mapped[int] = mapped_column(ForeignKey("whatsapp_instances.id", ondelete="CASCADE"), index=True)
    lead_id: Mapped[Optional[int]] = mapped_column(ForeignKey("leads.id", ondelete="SET NULL"), index=True)

    # remoteJid estável (individual ou grupo)
    chat_id: Mapped[str] = mapped_column(String(100), nullable=False)
    phone_number: Mapped[Optional[str]] = mapped_column(String(30))
    contact_name: Mapped[Optional[str]] = mapped_column(String(255))
    is_group: Mapped[bool] = mapped_column(Boolean, default=False)

    # ==========================================
    # STATUS / ATRIBUIÇÃO
    # ==========================================
    status: Mapped[str] = mapped_column(String(20), default=ConversationStatus.PENDING.value, index=True)
    assigned_user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    assigned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    designated_user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    designated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    last_message_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    unread_count: Mapped[int] = mapped_column(Integer, default=0)

    # ==========================================
    # NPS
    # ==========================================
    awaiting_satisfaction_response: Mapped[bool] = mapped_column(Boolean, default=False)
    satisfaction_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    skip_nps_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    skip_nps_by: Mapped[Optional[int]] = mapped_column(Integer)
    skip_nps_reason: Mapped[Optional[str]] = mapped_column(Text)


class WhatsAppMessage(Base):
    __tablename__ = "whatsapp_messages"
    __table_args__ = (
        UniqueConstraint("conversation_id", "provider_message_id", name="uq_message_provider_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    conversation_id: Mapped[int] = mapped_column(ForeignKey("whatsapp_conversations.id", ondelete="CASCADE"), index=True)
    provider_message_id: Mapped[Optional[str]] = mapped_column(String(120))
    direction: Mapped[str] = mapped_column(String(10), nullable=False)  # inbound, outbound
    message_type: Mapped[str] = mapped_column(String(20), default="text")
    content: Mapped[Optional[str]] = mapped_column(Text)
    sender_name: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class ConversationAssignment(Base):
    """Histórico de atribuições (assumir, transferir, distribuir, encerrar)."""

    __tablename__ = "conversation_assignments"

    id: Mapped[int] = mapped_column(primary_key=True)
    conversation_id: Mapped[int] = mapped_column(ForeignKey("whatsapp_conversations.id", ondelete="CASCADE"), index=True)
    from_user_id: Mapped[Optional[int]] = mapped_column(Integer)
    to_user_id: Mapped[Optional[int]] = mapped_column(Integer)
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    assigned_by: Mapped[Optional[int]] = mapped_column(Integer)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class SatisfactionRating(Base):
    """Avaliação de atendimento (0 a 10). rating NULL = sem resposta."""

    __tablename__ = "conversation_satisfaction_ratings"

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organizations.id", ondelete="CASCADE"), index=True)
    conversation_id: Mapped[int] = mapped_column(ForeignKey("whatsapp_conversations.id", ondelete="CASCADE"), index=True)
    instance_id: Mapped[Optional[int]] = mapped_column(Integer)
    assigned_user_id: Mapped[Optional[int]] = mapped_column(Integer)
    lead_id: Mapped[Optional[int]] = mapped_column(Integer)
    rating: Mapped[Optional[int]] = mapped_column(Integer)
    raw_response: Mapped[Optional[str]] = mapped_column(Text)
    is_pending_review: Mapped[bool] = mapped_column(Boolean, default=False)
    responded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
