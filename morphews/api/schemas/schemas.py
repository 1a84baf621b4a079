"""
SCHEMAS DE VALIDAÇÃO
=====================

Define a estrutura de dados de entrada e saída da API.
Pydantic valida automaticamente os dados.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


# ============================================
# AUTENTICAÇÃO
# ============================================

class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    organization_id: int


# ============================================
# LEADS
# ============================================

class LeadResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: Optional[str] = None
    whatsapp: Optional[str] = None
    email: Optional[str] = None
    city: Optional[str] = None
    source: Optional[str] = None
    product_name: Optional[str] = None
    assigned_to: Optional[int] = None
    funnel_stage_id: Optional[int] = None
    created_at: datetime


class StageMoveRequest(BaseModel):
    stage_id: int


# ============================================
# FUNIL
# ============================================

class ReorderStagesRequest(BaseModel):
    stage_ids: List[int] = Field(..., min_length=1, description="IDs na nova ordem")


class FunnelStageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    position: int
    stage_type: str


# ============================================
# CONVERSAS
# ============================================

class TransferRequest(BaseModel):
    to_user_id: int
    notes: Optional[str] = None


class CloseWithoutNpsRequest(BaseModel):
    reason: Optional[str] = None


class ConversationStatusUpdate(BaseModel):
    status: str = Field(..., description="with_bot, pending, autodistributed, assigned, closed")
    assigned_user_id: Optional[int] = None
