"""
MODELOS BASE DO TENANT
=======================

Organização (tenant) e usuários do painel.
Todo registro de negócio carrega organization_id.
"""
from typing import Optional
from sqlalchemy import String, Boolean, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, MutableJSON
from .enums import UserRole


# ============================================
# ORGANIZATION - Empresa cliente (tenant)
# ============================================

class Organization(Base, TimestampMixin):
    """Empresa que contrata o CRM."""

    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(255))
    active: Mapped[bool] = mapped_column(Boolean, default=True)

    settings: Mapped[Optional[dict]] = mapped_column(MutableJSON, default=dict, nullable=True)

    # Pesquisa de satisfação (NPS) ao encerrar atendimento
    satisfaction_survey_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    satisfaction_survey_on_manual_close: Mapped[bool] = mapped_column(Boolean, default=False)
    satisfaction_survey_message: Mapped[Optional[str]] = mapped_column(Text)

    # Etapa do funil aplicada a leads que chegam pelo WhatsApp sem etapa
    # (sem FK para evitar ciclo organizations <-> funnel_stages)
    default_stage_whatsapp: Mapped[Optional[int]] = mapped_column(Integer)
    default_stage_fallback: Mapped[Optional[int]] = mapped_column(Integer)


# ============================================
# USER - Usuários do painel
# ============================================

class User(Base, TimestampMixin):
    """Usuário que acessa o painel (vendedor, gestor, admin)."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organizations.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), default=UserRole.SELLER.value)
    active: Mapped[bool] = mapped_column(Boolean, default=True)

    @property
    def first_name(self) -> str:
        return (self.name or "").split(" ")[0]
