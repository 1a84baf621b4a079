"""
TESTES: PEGAR LEAD
==================
Dois vendedores disputando o mesmo lead: exatamente um vence.
"""

from sqlalchemy import select

from morphews.domain.entities import Lead, LeadOwnershipTransfer, LeadResponsible
from morphews.infrastructure.services.lead_claim_service import (
    claim_lead,
    list_uncontacted_leads,
    upsert_primary_responsible,
)
from tests.utils import create_lead, create_organization, create_user


async def test_claim_unassigned_lead(db_session):
    org = await create_organization(db_session)
    seller = await create_user(db_session, org, name="Ana")
    lead = await create_lead(db_session, org)

    result = await claim_lead(db_session, lead.id, seller.id, org.id)

    assert result["success"] is True
    refreshed = await db_session.get(Lead, lead.id, populate_existing=True)
    assert refreshed.assigned_to == seller.id
    assert refreshed.claimed_at is not None

    responsible = await db_session.scalar(select(LeadResponsible).where(LeadResponsible.lead_id == lead.id))
    assert responsible.user_id == seller.id
    assert responsible.is_primary is True

    transfer = await db_session.scalar(select(LeadOwnershipTransfer).where(LeadOwnershipTransfer.lead_id == lead.id))
    assert transfer.to_user_id == seller.id
    assert transfer.transfer_reason == "claim"


async def test_double_claim_has_single_winner(session_factory):
    async with session_factory() as setup:
        org = await create_organization(setup)
        ana = await create_user(setup, org, name="Ana")
        bruno = await create_user(setup, org, name="Bruno")
        lead = await create_lead(setup, org)
        await setup.commit()

    async with session_factory() as first:
        first_result = await claim_lead(first, lead.id, ana.id, org.id)
        await first.commit()

    async with session_factory() as second:
        second_result = await claim_lead(second, lead.id, bruno.id, org.id)
        await second.commit()

    assert first_result["success"] is True
    assert second_result == {"success": False, "error": "Lead já foi assumido por outro vendedor"}

    async with session_factory() as check:
        stored = await check.get(Lead, lead.id)
        assert stored.assigned_to == ana.id
        transfers = (await check.execute(select(LeadOwnershipTransfer))).scalars().all()
        assert len(transfers) == 1


async def test_claim_own_lead_again(db_session):
    org = await create_organization(db_session)
    seller = await create_user(db_session, org)
    lead = await create_lead(db_session, org)

    await claim_lead(db_session, lead.id, seller.id, org.id)
    result = await claim_lead(db_session, lead.id, seller.id, org.id)

    assert result == {"success": False, "error": "Lead já é seu"}


async def test_claim_lead_from_other_organization(db_session):
    org = await create_organization(db_session)
    other_org = await create_organization(db_session, slug="outra-loja")
    seller = await create_user(db_session, org)
    foreign_lead = await create_lead(db_session, other_org)

    result = await claim_lead(db_session, foreign_lead.id, seller.id, org.id)

    assert result == {"success": False, "error": "Lead não encontrado"}


async def test_inactive_user_cannot_claim(db_session):
    org = await create_organization(db_session)
    seller = await create_user(db_session, org, active=False)
    lead = await create_lead(db_session, org)

    result = await claim_lead(db_session, lead.id, seller.id, org.id)

    assert result["success"] is False


async def test_only_one_primary_responsible(db_session):
    org = await create_organization(db_session)
    ana = await create_user(db_session, org, name="Ana")
    bruno = await create_user(db_session, org, name="Bruno")
    lead = await create_lead(db_session, org)

    await upsert_primary_responsible(db_session, org.id, lead.id, ana.id)
    await db_session.flush()
    await upsert_primary_responsible(db_session, org.id, lead.id, bruno.id)
    await db_session.flush()

    rows = (await db_session.execute(
        select(LeadResponsible)
        .where(LeadResponsible.lead_id == lead.id)
        .execution_options(populate_existing=True)
    )).scalars().all()
    primaries = {row.user_id for row in rows if row.is_primary}
    assert primaries == {bruno.id}
    assert len(rows) == 2


async def test_list_uncontacted_leads_is_scoped_and_unassigned(db_session):
    org = await create_organization(db_session)
    other_org = await create_organization(db_session, slug="outra-loja")
    seller = await create_user(db_session, org)

    free_lead = await create_lead(db_session, org, name="Livre", source="instagram")
    await create_lead(db_session, org, name="Com dono", assigned_to=seller.id)
    await create_lead(db_session, other_org, name="Outra loja")

    leads = await list_uncontacted_leads(db_session, org.id)
    assert [lead.id for lead in leads] == [free_lead.id]

    assert await list_uncontacted_leads(db_session, org.id, source="facebook") == []
