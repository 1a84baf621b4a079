"""Base e mixins para todos os modelos do banco."""

from datetime import datetime
from sqlalchemy import JSON, DateTime, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.mutable import MutableDict
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from morphews.domain.time_utils import utcnow


class Base(DeclarativeBase):
    """Classe base para todos os modelos."""
    pass


# JSONB no PostgreSQL, JSON genérico nos demais (testes usam SQLite)
JSONType = JSON().with_variant(JSONB(), "postgresql")
MutableJSON = MutableDict.as_mutable(JSONType)


class TimestampMixin:
    """Adiciona created_at e updated_at automáticos (preenchidos no Python, sem refresh)."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )
