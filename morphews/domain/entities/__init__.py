"""Entidades do domínio."""
from .base import Base, TimestampMixin
from .enums import (
    UserRole,
    FunnelStageType,
    DistributionMode,
    ConversationStatus,
    AssignmentAction,
    SaleStatus,
    PaymentStatus,
    SaleOrigin,
    ScheduledMessageStatus,
    InvoiceStatus,
    InvoiceType,
)
from .models import Organization, User
from .lead import (
    FunnelStage,
    Lead,
    LeadResponsible,
    LeadOwnershipTransfer,
    LeadStageHistory,
)
from .whatsapp import (
    WhatsAppInstance,
    WhatsAppInstanceUser,
    WhatsAppConversation,
    WhatsAppMessage,
    ConversationAssignment,
    SatisfactionRating,
)
from .sale import (
    Sale,
    SaleStatusHistory,
    PaymentAttempt,
    PlatformSetting,
    VirtualAccount,
    VirtualTransaction,
    SaleSplit,
)
from .shipping import ShippingLabel, CarrierTrackingStatus
from .fiscal import FiscalInvoice, FiscalInvoiceEvent
from .scheduled_message import ScheduledMessage

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Enums
    "UserRole",
    "FunnelStageType",
    "DistributionMode",
    "ConversationStatus",
    "AssignmentAction",
    "SaleStatus",
    "PaymentStatus",
    "SaleOrigin",
    "ScheduledMessageStatus",
    "InvoiceStatus",
    "InvoiceType",
    # Tenant
    "Organization",
    "User",
    # Leads / Funil
    "FunnelStage",
    "Lead",
    "LeadResponsible",
    "LeadOwnershipTransfer",
    "LeadStageHistory",
    # WhatsApp
    "WhatsAppInstance",
    "WhatsAppInstanceUser",
    "WhatsAppConversation",
    "WhatsAppMessage",
    "ConversationAssignment",
    "SatisfactionRating",
    # Vendas / Pagamentos
    "Sale",
    "SaleStatusHistory",
    "PaymentAttempt",
    "PlatformSetting",
    "VirtualAccount",
    "VirtualTransaction",
    "SaleSplit",
    # Envio
    "ShippingLabel",
    "CarrierTrackingStatus",
    # Fiscal
    "FiscalInvoice",
    "FiscalInvoiceEvent",
    # Mensagens agendadas
    "ScheduledMessage",
]
