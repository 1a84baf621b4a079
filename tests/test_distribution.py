"""
TESTES: DISTRIBUIÇÃO E MENSAGENS RECEBIDAS
==========================================
"""

from sqlalchemy import func, select

from morphews.domain.entities import (
    ConversationAssignment,
    WhatsAppConversation,
    WhatsAppInstance,
    WhatsAppInstanceUser,
    WhatsAppMessage,
)
from morphews.infrastructure.services.distribution_service import (
    get_available_users,
    reopen_conversation,
    select_by_round_robin,
)
from morphews.infrastructure.services.inbound_message_service import (
    extract_content,
    ingest_evolution_event,
)
from tests.utils import (
    create_conversation,
    create_instance,
    create_lead,
    create_organization,
    create_user,
)


def _upsert_event(instance_name, remote_jid="5511988887777@s.whatsapp.net", message_id="MSG1", text="Oi", from_me=False):
    return {
        "event": "messages.upsert",
        "instance": instance_name,
        "data": {
            "key": {"remoteJid": remote_jid, "fromMe": from_me, "id": message_id},
            "pushName": "Maria",
            "message": {"conversation": text},
        },
    }


# =============================================================================
# RODÍZIO
# =============================================================================

class FakeUser:
    def __init__(self, id):
        self.id = id


def test_round_robin_uses_id_cursor():
    users = [FakeUser(7), FakeUser(3), FakeUser(5)]

    assert select_by_round_robin(users, None).id == 3
    assert select_by_round_robin(users, 3).id == 5
    assert select_by_round_robin(users, 5).id == 7
    assert select_by_round_robin(users, 7).id == 3
    # Cursor de usuário removido continua a partir do próximo ID
    assert select_by_round_robin(users, 4).id == 5
    assert select_by_round_robin([], 1) is None


async def test_available_users_skip_inactive_and_opted_out(db_session):
    org = await create_organization(db_session)
    ana = await create_user(db_session, org, name="Ana")
    inactive = await create_user(db_session, org, name="Inativo", active=False)
    opted_out = await create_user(db_session, org, name="Fora")
    instance = await create_instance(db_session, org, distribution_mode="auto", users=(ana, inactive))
    db_session.add(WhatsAppInstanceUser(instance_id=instance.id, user_id=opted_out.id, can_receive_distribution=False))
    await db_session.flush()

    users = await get_available_users(db_session, instance)

    assert [user.id for user in users] == [ana.id]


async def test_auto_instance_rotates_between_users(db_session):
    org = await create_organization(db_session)
    ana = await create_user(db_session, org, name="Ana")
    bruno = await create_user(db_session, org, name="Bruno")
    instance = await create_instance(db_session, org, distribution_mode="auto", users=(ana, bruno))

    designated = []
    for index in range(3):
        conversation = await create_conversation(db_session, instance, chat_id=f"55119000000{index}@s.whatsapp.net")
        result = await reopen_conversation(db_session, conversation, instance, is_new=True)
        assert result["action"] == "autodistributed"
        assert conversation.status == "autodistributed"
        designated.append(conversation.designated_user_id)

    assert designated == [ana.id, bruno.id, ana.id]
    assert instance.last_distributed_user_id == ana.id


async def test_auto_instance_without_users_falls_back_to_pending(db_session):
    org = await create_organization(db_session)
    instance = await create_instance(db_session, org, distribution_mode="auto")
    conversation = await create_conversation(db_session, instance)

    result = await reopen_conversation(db_session, conversation, instance, is_new=True)

    assert result["action"] == "reopened"
    assert conversation.status == "pending"


async def test_ongoing_conversation_keeps_owner(db_session):
    org = await create_organization(db_session)
    ana = await create_user(db_session, org, name="Ana")
    instance = await create_instance(db_session, org, distribution_mode="auto", users=(ana,))
    conversation = await create_conversation(db_session, instance, status="assigned", assigned_user_id=ana.id)

    result = await reopen_conversation(db_session, conversation, instance, is_new=False)

    assert result["action"] == "none"
    assert conversation.assigned_user_id == ana.id


async def test_closed_conversation_on_bot_instance_goes_to_bot(db_session):
    org = await create_organization(db_session)
    ana = await create_user(db_session, org, name="Ana")
    instance = await create_instance(db_session, org, distribution_mode="bot")
    conversation = await create_conversation(db_session, instance, status="closed", assigned_user_id=ana.id)

    await reopen_conversation(db_session, conversation, instance, is_new=False)
    await db_session.flush()

    assert conversation.status == "with_bot"
    assert conversation.assigned_user_id is None
    action = await db_session.scalar(select(ConversationAssignment.action))
    assert action == "reopen"


# =============================================================================
# WEBHOOK EVOLUTION
# =============================================================================

def test_extract_content_variants():
    assert extract_content({"conversation": "oi"}) == ("text", "oi")
    assert extract_content({"extendedTextMessage": {"text": "link"}}) == ("text", "link")
    assert extract_content({"imageMessage": {"caption": "foto"}}) == ("image", "foto")
    assert extract_content({"audioMessage": {}}) == ("audio", "")
    assert extract_content({}) == ("unknown", "")


async def test_inbound_message_creates_conversation_and_links_lead(db_session):
    org = await create_organization(db_session)
    instance = await create_instance(db_session, org)
    lead = await create_lead(db_session, org, whatsapp="5511988887777")

    result = await ingest_evolution_event(db_session, _upsert_event(instance.evolution_instance_id))

    assert result["success"] is True
    conversation = await db_session.scalar(select(WhatsAppConversation))
    assert conversation.lead_id == lead.id
    assert conversation.contact_name == "Maria"
    assert conversation.status == "pending"
    assert conversation.unread_count == 1
    message = await db_session.scalar(select(WhatsAppMessage))
    assert (message.direction, message.content) == ("inbound", "Oi")


async def test_inbound_message_is_idempotent(db_session):
    org = await create_organization(db_session)
    instance = await create_instance(db_session, org)
    event = _upsert_event(instance.evolution_instance_id)

    await ingest_evolution_event(db_session, event)
    second = await ingest_evolution_event(db_session, event)

    assert second["duplicate"] is True
    assert await db_session.scalar(select(func.count(WhatsAppMessage.id))) == 1


async def test_inbound_message_reopens_closed_conversation(db_session):
    org = await create_organization(db_session)
    ana = await create_user(db_session, org, name="Ana")
    instance = await create_instance(db_session, org, distribution_mode="auto", users=(ana,))
    conversation = await create_conversation(db_session, instance, status="closed")

    result = await ingest_evolution_event(db_session, _upsert_event(instance.evolution_instance_id))

    assert result["conversation_id"] == conversation.id
    assert conversation.status == "autodistributed"
    assert conversation.designated_user_id == ana.id


async def test_survey_answer_does_not_reopen_conversation(db_session):
    org = await create_organization(db_session)
    instance = await create_instance(db_session, org)
    conversation = await create_conversation(
        db_session, instance, status="closed", awaiting_satisfaction_response=True,
    )

    await ingest_evolution_event(db_session, _upsert_event(instance.evolution_instance_id, text="10"))

    assert conversation.status == "closed"
    assert conversation.awaiting_satisfaction_response is True


async def test_ignored_events(db_session):
    org = await create_organization(db_session)
    instance = await create_instance(db_session, org)

    from_me = await ingest_evolution_event(db_session, _upsert_event(instance.evolution_instance_id, from_me=True))
    group = await ingest_evolution_event(db_session, _upsert_event(instance.evolution_instance_id, remote_jid="1203@g.us"))
    unknown_instance = await ingest_evolution_event(db_session, _upsert_event("nao-existe"))
    other_event = await ingest_evolution_event(db_session, {"event": "presence.update"})

    assert from_me["ignored"] and group["ignored"] and unknown_instance["ignored"]
    assert other_event["unhandled"] is True
    assert await db_session.scalar(select(func.count(WhatsAppConversation.id))) == 0


async def test_connection_update(db_session):
    org = await create_organization(db_session)
    instance = await create_instance(db_session, org, is_connected=False)

    await ingest_evolution_event(db_session, {
        "event": "CONNECTION_UPDATE",
        "instance": instance.evolution_instance_id,
        "data": {"state": "open"},
    })

    stored = await db_session.get(WhatsAppInstance, instance.id)
    assert stored.is_connected is True
    assert stored.status == "connected"
