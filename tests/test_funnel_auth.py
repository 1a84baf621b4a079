"""
TESTES: FUNIL E AUTENTICAÇÃO
============================
"""

from datetime import timedelta

import pytest
from sqlalchemy import select

from morphews.domain.entities import LeadStageHistory
from morphews.infrastructure.services.auth_service import (
    create_access_token,
    create_user_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from morphews.infrastructure.services.funnel_service import move_lead_to_stage, reorder_funnel_stages
from tests.utils import create_lead, create_organization, create_stage


# =============================================================================
# FUNIL
# =============================================================================

async def test_reorder_rewrites_positions(db_session):
    org = await create_organization(db_session)
    novo = await create_stage(db_session, org, "Novo", 0)
    contato = await create_stage(db_session, org, "Em contato", 1)
    fechado = await create_stage(db_session, org, "Fechado", 2)

    stages = await reorder_funnel_stages(db_session, org.id, [fechado.id, novo.id, contato.id])

    assert [stage.id for stage in stages] == [fechado.id, novo.id, contato.id]
    assert (fechado.position, novo.position, contato.position) == (0, 1, 2)


async def test_reorder_rejects_foreign_or_repeated_ids(db_session):
    org = await create_organization(db_session)
    other_org = await create_organization(db_session, slug="outra-loja")
    mine = await create_stage(db_session, org, "Novo", 0)
    theirs = await create_stage(db_session, other_org, "Novo", 0)

    with pytest.raises(ValueError):
        await reorder_funnel_stages(db_session, org.id, [mine.id, theirs.id])

    with pytest.raises(ValueError):
        await reorder_funnel_stages(db_session, org.id, [mine.id, mine.id])

    assert mine.position == 0


async def test_move_lead_records_history(db_session):
    org = await create_organization(db_session)
    novo = await create_stage(db_session, org, "Novo", 0)
    contato = await create_stage(db_session, org, "Em contato", 1)
    lead = await create_lead(db_session, org, funnel_stage_id=novo.id)

    assert await move_lead_to_stage(db_session, lead, contato, changed_by=None) is True
    assert await move_lead_to_stage(db_session, lead, contato) is False

    history = (await db_session.execute(select(LeadStageHistory))).scalars().all()
    assert len(history) == 1
    assert (history[0].previous_stage_id, history[0].funnel_stage_id) == (novo.id, contato.id)
    assert lead.funnel_stage_id == contato.id


# =============================================================================
# AUTENTICAÇÃO
# =============================================================================

def test_password_hash_is_salted():
    first = hash_password("senha123")
    second = hash_password("senha123")

    assert first != second
    assert verify_password("senha123", first)
    assert not verify_password("outra", first)
    assert not verify_password("senha123", "hash-sem-salt")


def test_access_token_round_trip_and_expiry():
    token = create_access_token({"sub": "7"})
    expired = create_access_token({"sub": "7"}, expires_delta=timedelta(minutes=-1))

    assert decode_access_token(token)["sub"] == "7"
    assert decode_access_token(expired) is None
    assert decode_access_token("nao-e-um-token") is None


def test_user_token_claims():
    claims = decode_access_token(create_user_token(12, 3, "manager"))

    assert (claims["sub"], claims["org"], claims["role"]) == ("12", 3, "manager")
