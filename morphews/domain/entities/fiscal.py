"""
MODELOS: NOTA FISCAL (FOCUS NFe)
================================
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, Integer, DateTime, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, JSONType
from .enums import InvoiceStatus, InvoiceType
from morphews.domain.time_utils import utcnow


class FiscalInvoice(Base, TimestampMixin):
    __tablename__ = "fiscal_invoices"

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organizations.id", ondelete="CASCADE"), index=True)
    sale_id: Mapped[Optional[int]] = mapped_column(ForeignKey("sales.id", ondelete="SET NULL"), index=True)
    invoice_type: Mapped[str] = mapped_column(String(10), default=InvoiceType.NFE.value)
    status: Mapped[str] = mapped_column(String(20), default=InvoiceStatus.PENDING.value)

    # Referência enviada à Focus NFe na emissão (volta no webhook)
    focus_nfe_ref: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    invoice_number: Mapped[Optional[str]] = mapped_column(String(20))
    invoice_series: Mapped[Optional[str]] = mapped_column(String(10))
    access_key: Mapped[Optional[str]] = mapped_column(String(60))
    protocol_number: Mapped[Optional[str]] = mapped_column(String(30))
    xml_url: Mapped[Optional[str]] = mapped_column(Text)
    pdf_url: Mapped[Optional[str]] = mapped_column(Text)
    total_cents: Mapped[int] = mapped_column(Integer, default=0)
    error_message: Mapped[Optional[str]] = mapped_column(Text)
    focus_nfe_response: Mapped[Optional[dict]] = mapped_column(JSONType)

    authorized_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class FiscalInvoiceEvent(Base):
    __tablename__ = "fiscal_invoice_events"

    id: Mapped[int] = mapped_column(primary_key=True)
    fiscal_invoice_id: Mapped[int] = mapped_column(ForeignKey("fiscal_invoices.id", ondelete="CASCADE"), index=True)
    event_type: Mapped[str] = mapped_column(String(40), nullable=False)
    event_data: Mapped[Optional[dict]] = mapped_column(JSONType)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
