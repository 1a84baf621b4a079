"""
TESTES: ATENDIMENTO (ASSUMIR, TRANSFERIR, ENCERRAR, REATIVAR)
=============================================================
"""

from sqlalchemy import select

from morphews.domain.entities import (
    ConversationAssignment,
    Lead,
    LeadOwnershipTransfer,
    SatisfactionRating,
    WhatsAppConversation,
)
from morphews.infrastructure.services import conversation_service
from tests.utils import (
    create_conversation,
    create_instance,
    create_lead,
    create_organization,
    create_stage,
    create_user,
)


async def _fresh(db, conversation_id):
    return await db.get(WhatsAppConversation, conversation_id, populate_existing=True)


# =============================================================================
# ASSUMIR
# =============================================================================

async def test_claim_pending_conversation_also_claims_lead(db_session):
    org = await create_organization(db_session)
    seller = await create_user(db_session, org)
    instance = await create_instance(db_session, org)
    lead = await create_lead(db_session, org)
    conversation = await create_conversation(db_session, instance, lead_id=lead.id, unread_count=3)

    result = await conversation_service.claim_conversation(db_session, conversation.id, seller.id, org.id)

    assert result["success"] is True
    stored = await _fresh(db_session, conversation.id)
    assert stored.status == "assigned"
    assert stored.assigned_user_id == seller.id
    assert stored.unread_count == 0

    stored_lead = await db_session.get(Lead, lead.id, populate_existing=True)
    assert stored_lead.assigned_to == seller.id

    action = await db_session.scalar(
        select(ConversationAssignment.action).where(ConversationAssignment.conversation_id == conversation.id)
    )
    assert action == "claim"


async def test_claim_does_not_steal_lead_owner(db_session):
    org = await create_organization(db_session)
    owner = await create_user(db_session, org, name="Dona")
    seller = await create_user(db_session, org, name="Outro")
    instance = await create_instance(db_session, org)
    lead = await create_lead(db_session, org, assigned_to=owner.id)
    conversation = await create_conversation(db_session, instance, lead_id=lead.id)

    result = await conversation_service.claim_conversation(db_session, conversation.id, seller.id, org.id)

    assert result["success"] is True
    stored_lead = await db_session.get(Lead, lead.id, populate_existing=True)
    assert stored_lead.assigned_to == owner.id


async def test_second_claim_loses(db_session):
    org = await create_organization(db_session)
    ana = await create_user(db_session, org, name="Ana")
    bruno = await create_user(db_session, org, name="Bruno")
    instance = await create_instance(db_session, org)
    conversation = await create_conversation(db_session, instance)

    first = await conversation_service.claim_conversation(db_session, conversation.id, ana.id, org.id)
    second = await conversation_service.claim_conversation(db_session, conversation.id, bruno.id, org.id)

    assert first["success"] is True
    assert second == {"success": False, "error": "Conversa já foi assumida por outro atendente"}
    assert (await _fresh(db_session, conversation.id)).assigned_user_id == ana.id


async def test_designated_conversation_only_for_designated_user(db_session):
    org = await create_organization(db_session)
    ana = await create_user(db_session, org, name="Ana")
    bruno = await create_user(db_session, org, name="Bruno")
    instance = await create_instance(db_session, org, distribution_mode="auto")
    conversation = await create_conversation(
        db_session, instance, status="autodistributed", designated_user_id=ana.id,
    )

    refused = await conversation_service.claim_conversation(db_session, conversation.id, bruno.id, org.id)
    accepted = await conversation_service.claim_conversation(db_session, conversation.id, ana.id, org.id)

    assert refused == {"success": False, "error": "Conversa designada para outro atendente"}
    assert accepted["success"] is True
    stored = await _fresh(db_session, conversation.id)
    assert stored.designated_user_id is None
    assert stored.assigned_user_id == ana.id


async def test_claim_closed_conversation_is_refused(db_session):
    org = await create_organization(db_session)
    seller = await create_user(db_session, org)
    instance = await create_instance(db_session, org)
    conversation = await create_conversation(db_session, instance, status="closed")

    result = await conversation_service.claim_conversation(db_session, conversation.id, seller.id, org.id)

    assert result == {"success": False, "error": "Conversa encerrada"}


# =============================================================================
# TRANSFERIR
# =============================================================================

async def test_transfer_conversation(db_session):
    org = await create_organization(db_session)
    ana = await create_user(db_session, org, name="Ana")
    bruno = await create_user(db_session, org, name="Bruno")
    instance = await create_instance(db_session, org)
    conversation = await create_conversation(db_session, instance, status="assigned", assigned_user_id=ana.id)

    result = await conversation_service.transfer_conversation(
        db_session, conversation.id, bruno.id, org.id, transferred_by=ana.id, notes="Cliente pediu",
    )

    assert result["success"] is True
    assert (await _fresh(db_session, conversation.id)).assigned_user_id == bruno.id

    record = await db_session.scalar(
        select(ConversationAssignment).where(ConversationAssignment.action == "transfer")
    )
    assert (record.from_user_id, record.to_user_id, record.notes) == (ana.id, bruno.id, "Cliente pediu")


async def test_transfer_to_user_of_other_organization_fails(db_session):
    org = await create_organization(db_session)
    other_org = await create_organization(db_session, slug="outra")
    ana = await create_user(db_session, org, name="Ana")
    stranger = await create_user(db_session, other_org, name="Estranho")
    instance = await create_instance(db_session, org)
    conversation = await create_conversation(db_session, instance, status="assigned", assigned_user_id=ana.id)

    result = await conversation_service.transfer_conversation(
        db_session, conversation.id, stranger.id, org.id, transferred_by=ana.id,
    )

    assert result == {"success": False, "error": "Atendente de destino não encontrado"}


# =============================================================================
# ENCERRAR
# =============================================================================

async def test_close_sends_nps_when_enabled(db_session, evolution_mock):
    org = await create_organization(
        db_session,
        satisfaction_survey_enabled=True,
        satisfaction_survey_on_manual_close=True,
        satisfaction_survey_message="Nota de 0 a 10?",
    )
    seller = await create_user(db_session, org)
    instance = await create_instance(db_session, org)
    conversation = await create_conversation(db_session, instance, status="assigned", assigned_user_id=seller.id)

    result = await conversation_service.close_conversation(
        db_session, conversation.id, org.id, closed_by=seller.id, evolution=evolution_mock,
    )

    assert result == {"success": True, "survey_sent": True}
    evolution_mock.send_text.assert_awaited_once_with(instance.evolution_instance_id, "5511988887777", "Nota de 0 a 10?")

    stored = await _fresh(db_session, conversation.id)
    assert stored.status == "closed"
    assert stored.awaiting_satisfaction_response is True
    assert stored.satisfaction_sent_at is not None

    rating = await db_session.scalar(select(SatisfactionRating))
    assert rating.rating is None
    assert rating.closed_at is not None


async def test_close_without_survey_configuration(db_session, evolution_mock):
    org = await create_organization(db_session)
    instance = await create_instance(db_session, org)
    conversation = await create_conversation(db_session, instance, status="assigned")

    result = await conversation_service.close_conversation(
        db_session, conversation.id, org.id, evolution=evolution_mock,
    )

    assert result == {"success": True, "survey_sent": False}
    evolution_mock.send_text.assert_not_awaited()
    stored = await _fresh(db_session, conversation.id)
    assert stored.status == "closed"
    assert stored.awaiting_satisfaction_response is False


async def test_close_falls_back_when_survey_send_fails(db_session, evolution_mock):
    evolution_mock.send_text.return_value = {"success": False, "error": "HTTP 500"}
    org = await create_organization(
        db_session, satisfaction_survey_enabled=True, satisfaction_survey_on_manual_close=True,
    )
    instance = await create_instance(db_session, org)
    conversation = await create_conversation(db_session, instance, status="assigned")

    result = await conversation_service.close_conversation(
        db_session, conversation.id, org.id, evolution=evolution_mock,
    )

    assert result == {"success": True, "survey_sent": False}
    assert (await _fresh(db_session, conversation.id)).awaiting_satisfaction_response is False


async def test_close_twice_is_refused(db_session, evolution_mock):
    org = await create_organization(db_session)
    instance = await create_instance(db_session, org)
    conversation = await create_conversation(db_session, instance, status="assigned")

    await conversation_service.close_conversation(db_session, conversation.id, org.id, evolution=evolution_mock)
    again = await conversation_service.close_conversation(db_session, conversation.id, org.id, evolution=evolution_mock)

    assert again == {"success": False, "error": "Conversa já está encerrada"}


async def test_close_without_nps_records_skip(db_session):
    org = await create_organization(db_session)
    seller = await create_user(db_session, org)
    instance = await create_instance(db_session, org)
    conversation = await create_conversation(db_session, instance, status="assigned", assigned_user_id=seller.id)

    result = await conversation_service.close_conversation_without_nps(
        db_session, conversation.id, org.id, seller.id, reason="Spam",
    )

    assert result["success"] is True
    stored = await _fresh(db_session, conversation.id)
    assert stored.status == "closed"
    assert stored.skip_nps_by == seller.id
    assert stored.skip_nps_reason == "Spam"
    assert stored.skip_nps_at is not None


# =============================================================================
# AJUSTE MANUAL
# =============================================================================

async def test_status_to_pending_clears_owner(db_session):
    org = await create_organization(db_session)
    seller = await create_user(db_session, org)
    instance = await create_instance(db_session, org)
    conversation = await create_conversation(
        db_session, instance, status="assigned", assigned_user_id=seller.id, designated_user_id=seller.id,
    )

    result = await conversation_service.update_conversation_status(db_session, conversation.id, org.id, "pending")

    assert result["success"] is True
    stored = await _fresh(db_session, conversation.id)
    assert stored.assigned_user_id is None
    assert stored.designated_user_id is None


async def test_status_invalid_value(db_session):
    org = await create_organization(db_session)
    instance = await create_instance(db_session, org)
    conversation = await create_conversation(db_session, instance)

    result = await conversation_service.update_conversation_status(db_session, conversation.id, org.id, "archived")

    assert result == {"success": False, "error": "Status inválido: archived"}


async def test_status_assigned_to_unknown_user_leaves_conversation_untouched(db_session):
    org = await create_organization(db_session)
    instance = await create_instance(db_session, org)
    conversation = await create_conversation(db_session, instance, status="pending")

    result = await conversation_service.update_conversation_status(
        db_session, conversation.id, org.id, "assigned", assigned_user_id=999999,
    )

    assert result == {"success": False, "error": "Atendente não encontrado"}
    assert conversation.status == "pending"
    assert conversation.assigned_user_id is None
    assert conversation not in db_session.dirty
    history = (await db_session.execute(select(ConversationAssignment))).scalars().all()
    assert history == []


async def test_status_closed_stamps_closed_at(db_session):
    org = await create_organization(db_session)
    instance = await create_instance(db_session, org)
    conversation = await create_conversation(db_session, instance)

    await conversation_service.update_conversation_status(db_session, conversation.id, org.id, "closed")

    assert (await _fresh(db_session, conversation.id)).closed_at is not None


# =============================================================================
# REATIVAR
# =============================================================================

async def test_reactivate_closed_conversation(db_session):
    org = await create_organization(db_session)
    stage = await create_stage(db_session, org, "Novo contato", 0)
    org.default_stage_whatsapp = stage.id
    previous = await create_user(db_session, org, name="Antigo")
    seller = await create_user(db_session, org, name="Atual")
    instance = await create_instance(db_session, org)
    lead = await create_lead(db_session, org, assigned_to=previous.id)
    conversation = await create_conversation(
        db_session, instance, status="closed", assigned_user_id=previous.id, lead_id=lead.id,
    )

    result = await conversation_service.reactivate_conversation(db_session, conversation.id, org.id, seller.id)

    assert result["success"] is True
    stored = await _fresh(db_session, conversation.id)
    assert stored.status == "assigned"
    assert stored.assigned_user_id == seller.id
    assert stored.closed_at is None

    stored_lead = await db_session.get(Lead, lead.id, populate_existing=True)
    assert stored_lead.assigned_to == seller.id
    assert stored_lead.funnel_stage_id == stage.id

    transfer = await db_session.scalar(select(LeadOwnershipTransfer))
    assert transfer.transfer_reason == "reativacao_conversa"
    assert (transfer.from_user_id, transfer.to_user_id) == (previous.id, seller.id)


async def test_reactivate_open_conversation_is_refused(db_session):
    org = await create_organization(db_session)
    seller = await create_user(db_session, org)
    instance = await create_instance(db_session, org)
    conversation = await create_conversation(db_session, instance, status="pending")

    result = await conversation_service.reactivate_conversation(db_session, conversation.id, org.id, seller.id)

    assert result["success"] is False
