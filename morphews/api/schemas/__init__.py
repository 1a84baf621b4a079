"""Schemas Pydantic da API."""

from .schemas import (
    LoginRequest,
    TokenResponse,
    LeadResponse,
    StageMoveRequest,
    ReorderStagesRequest,
    FunnelStageResponse,
    TransferRequest,
    CloseWithoutNpsRequest,
    ConversationStatusUpdate,
)

__all__ = [
    "LoginRequest",
    "TokenResponse",
    "LeadResponse",
    "StageMoveRequest",
    "ReorderStagesRequest",
    "FunnelStageResponse",
    "TransferRequest",
    "CloseWithoutNpsRequest",
    "ConversationStatusUpdate",
]
