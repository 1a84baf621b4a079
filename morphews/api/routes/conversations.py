"""
ROTAS: ATENDIMENTO WHATSAPP
===========================

Ações do painel multiatendente sobre uma conversa.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from morphews.api.dependencies import (
    get_current_organization,
    get_current_user,
    get_evolution_service,
    raise_for_result,
    require_manager,
)
from morphews.api.schemas import CloseWithoutNpsRequest, ConversationStatusUpdate, TransferRequest
from morphews.domain.entities import Organization, User
from morphews.infrastructure.database import get_db
from morphews.infrastructure.services import conversation_service
from morphews.infrastructure.services.evolution_service import EvolutionService

router = APIRouter(prefix="/conversations", tags=["Conversas"])


@router.post("/{conversation_id}/claim")
async def claim_conversation(
    conversation_id: int,
    user: User = Depends(get_current_user),
    organization: Organization = Depends(get_current_organization),
    db: AsyncSession = Depends(get_db),
):
    result = await conversation_service.claim_conversation(db, conversation_id, user.id, organization.id)
    return raise_for_result(result)


@router.post("/{conversation_id}/transfer")
async def transfer_conversation(
    conversation_id: int,
    payload: TransferRequest,
    user: User = Depends(get_current_user),
    organization: Organization = Depends(get_current_organization),
    db: AsyncSession = Depends(get_db),
):
    result = await conversation_service.transfer_conversation(
        db, conversation_id, payload.to_user_id, organization.id,
        transferred_by=user.id, notes=payload.notes,
    )
    return raise_for_result(result)


@router.post("/{conversation_id}/close")
async def close_conversation(
    conversation_id: int,
    user: User = Depends(get_current_user),
    organization: Organization = Depends(get_current_organization),
    evolution: EvolutionService = Depends(get_evolution_service),
    db: AsyncSession = Depends(get_db),
):
    result = await conversation_service.close_conversation(
        db, conversation_id, organization.id, closed_by=user.id, evolution=evolution,
    )
    return raise_for_result(result)


@router.post("/{conversation_id}/close-without-nps")
async def close_conversation_without_nps(
    conversation_id: int,
    payload: CloseWithoutNpsRequest,
    user: User = Depends(get_current_user),
    organization: Organization = Depends(get_current_organization),
    db: AsyncSession = Depends(get_db),
):
    result = await conversation_service.close_conversation_without_nps(
        db, conversation_id, organization.id, user.id, reason=payload.reason,
    )
    return raise_for_result(result)


@router.post("/{conversation_id}/reactivate")
async def reactivate_conversation(
    conversation_id: int,
    user: User = Depends(get_current_user),
    organization: Organization = Depends(get_current_organization),
    db: AsyncSession = Depends(get_db),
):
    result = await conversation_service.reactivate_conversation(db, conversation_id, organization.id, user.id)
    return raise_for_result(result)


@router.patch("/{conversation_id}/status")
async def update_conversation_status(
    conversation_id: int,
    payload: ConversationStatusUpdate,
    user: User = Depends(require_manager),
    organization: Organization = Depends(get_current_organization),
    db: AsyncSession = Depends(get_db),
):
    result = await conversation_service.update_conversation_status(
        db, conversation_id, organization.id, payload.status,
        assigned_user_id=payload.assigned_user_id, changed_by=user.id,
    )
    return raise_for_result(result)
