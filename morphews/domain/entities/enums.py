"""Enums - valores fixos que se repetem no sistema."""

from enum import Enum


class UserRole(str, Enum):
    """Nível de acesso do usuário."""
    OWNER = "owner"
    ADMIN = "admin"
    MANAGER = "manager"
    SELLER = "seller"


class FunnelStageType(str, Enum):
    FUNNEL = "funnel"
    TRASH = "trash"
    CLOUD = "cloud"


class DistributionMode(str, Enum):
    """Como novas conversas de uma instância são distribuídas."""
    MANUAL = "manual"  # ficam pendentes até alguém assumir
    AUTO = "auto"      # rodízio entre os atendentes da instância
    BOT = "bot"        # robô atende primeiro


class ConversationStatus(str, Enum):
    """Status da conversa WhatsApp."""
    WITH_BOT = "with_bot"
    PENDING = "pending"
    AUTODISTRIBUTED = "autodistributed"  # "Pra você" - designada, ainda não assumida
    ASSIGNED = "assigned"
    CLOSED = "closed"


class AssignmentAction(str, Enum):
    CLAIM = "claim"
    TRANSFER = "transfer"
    AUTODISTRIBUTE = "autodistribute"
    CLOSE = "close"
    REOPEN = "reopen"
    REACTIVATE = "reactivate"


class SaleStatus(str, Enum):
    DRAFT = "draft"
    PENDING_EXPEDITION = "pending_expedition"
    DISPATCHED = "dispatched"
    DELIVERED = "delivered"
    PAYMENT_PENDING = "payment_pending"
    PAYMENT_CONFIRMED = "payment_confirmed"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    ANALYZING = "analyzing"
    PAID = "paid"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


class SaleOrigin(str, Enum):
    MANUAL = "manual"
    ECOMMERCE = "ecommerce"


class ScheduledMessageStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    CANCELLED = "cancelled"
    FAILED_OFFLINE = "failed_offline"
    FAILED_OTHER = "failed_other"


class InvoiceStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    AUTHORIZED = "authorized"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class InvoiceType(str, Enum):
    NFE = "nfe"
    NFSE = "nfse"
    NFCE = "nfce"
