"""
MODELOS: LEAD E FUNIL
=====================

Lead, responsáveis, histórico de transferências e de etapas do funil.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, Integer, Boolean, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, MutableJSON
from .enums import FunnelStageType
from morphews.domain.time_utils import utcnow


class FunnelStage(Base, TimestampMixin):
    """Etapa do funil de vendas de uma organização."""

    __tablename__ = "funnel_stages"

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organizations.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[str] = mapped_column(String(7), default="#6B7280")
    position: Mapped[int] = mapped_column(Integer, default=0)
    stage_type: Mapped[str] = mapped_column(String(20), default=FunnelStageType.FUNNEL.value)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)


class Lead(Base, TimestampMixin):
    __tablename__ = "leads"

    # ===============================
    # IDENTIDADE
    # ===============================
    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organizations.id", ondelete="CASCADE"), index=True)

    # ===============================
    # DADOS DO LEAD
    # ===============================
    name: Mapped[Optional[str]] = mapped_column(String(255))
    whatsapp: Mapped[Optional[str]] = mapped_column(String(50), index=True)
    email: Mapped[Optional[str]] = mapped_column(String(255))
    city: Mapped[Optional[str]] = mapped_column(String(100))
    source: Mapped[Optional[str]] = mapped_column(String(100))
    product_name: Mapped[Optional[str]] = mapped_column(String(255))
    custom_data: Mapped[Optional[dict]] = mapped_column(MutableJSON)

    # ===============================
    # RESPONSÁVEL / FUNIL
    # ===============================
    # NULL = lead ainda não contatado (disponível para "pegar")
    assigned_to: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), index=True)
    claimed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    funnel_stage_id: Mapped[Optional[int]] = mapped_column(ForeignKey("funnel_stages.id", ondelete="SET NULL"))


class LeadResponsible(Base):
    """Usuários responsáveis por um lead (um deles é o principal)."""

    __tablename__ = "lead_responsibles"
    __table_args__ = (UniqueConstraint("lead_id", "user_id", name="uq_lead_responsible"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organizations.id", ondelete="CASCADE"), index=True)
    lead_id: Mapped[int] = mapped_column(ForeignKey("leads.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class LeadOwnershipTransfer(Base):
    """Histórico de troca de dono do lead (auditoria)."""

    __tablename__ = "lead_ownership_transfers"

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organizations.id", ondelete="CASCADE"), index=True)
    lead_id: Mapped[int] = mapped_column(ForeignKey("leads.id", ondelete="CASCADE"), index=True)
    from_user_id: Mapped[Optional[int]] = mapped_column(Integer)
    to_user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    transferred_by: Mapped[Optional[int]] = mapped_column(Integer)
    transfer_reason: Mapped[str] = mapped_column(String(50), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class LeadStageHistory(Base):
    """Cada mudança de etapa do funil gera um registro."""

    __tablename__ = "lead_stage_history"

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organizations.id", ondelete="CASCADE"), index=True)
    lead_id: Mapped[int] = mapped_column(ForeignKey("leads.id", ondelete="CASCADE"), index=True)
    funnel_stage_id: Mapped[int] = mapped_column(ForeignKey("funnel_stages.id", ondelete="CASCADE"))
    previous_stage_id: Mapped[Optional[int]] = mapped_column(Integer)
    changed_by: Mapped[Optional[int]] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
