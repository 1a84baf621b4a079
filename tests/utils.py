"""Fábricas de registros para os testes."""

from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from morphews.domain.entities import (
    FunnelStage,
    Lead,
    Organization,
    Sale,
    User,
    WhatsAppConversation,
    WhatsAppInstance,
    WhatsAppInstanceUser,
)
from morphews.infrastructure.services.auth_service import hash_password

DEFAULT_PASSWORD = "senha123"


async def create_organization(db: AsyncSession, slug: str = "loja-teste", **kwargs) -> Organization:
    org = Organization(name=kwargs.pop("name", "Loja Teste"), slug=slug, email="contato@loja.com", **kwargs)
    db.add(org)
    await db.flush()
    return org


async def create_user(
    db: AsyncSession,
    organization: Organization,
    name: str = "Vendedor",
    email: Optional[str] = None,
    role: str = "seller",
    active: bool = True,
) -> User:
    user = User(
        organization_id=organization.id,
        name=name,
        email=email or f"{name.lower().replace(' ', '.')}.{organization.id}@loja.com",
        password_hash=hash_password(DEFAULT_PASSWORD),
        role=role,
        active=active,
    )
    db.add(user)
    await db.flush()
    return user


async def create_instance(
    db: AsyncSession,
    organization: Organization,
    name: str = "comercial",
    distribution_mode: str = "manual",
    users: tuple = (),
    **kwargs,
) -> WhatsAppInstance:
    kwargs.setdefault("is_connected", True)
    instance = WhatsAppInstance(
        organization_id=organization.id,
        name=name,
        evolution_instance_id=f"{name}-{organization.id}",
        distribution_mode=distribution_mode,
        **kwargs,
    )
    db.add(instance)
    await db.flush()

    for user in users:
        db.add(WhatsAppInstanceUser(instance_id=instance.id, user_id=user.id, can_receive_distribution=True))
    await db.flush()
    return instance


async def create_lead(db: AsyncSession, organization: Organization, **kwargs) -> Lead:
    kwargs.setdefault("name", "Maria Souza")
    kwargs.setdefault("whatsapp", "5511988887777")
    lead = Lead(organization_id=organization.id, **kwargs)
    db.add(lead)
    await db.flush()
    return lead


async def create_conversation(
    db: AsyncSession,
    instance: WhatsAppInstance,
    chat_id: str = "5511988887777@s.whatsapp.net",
    **kwargs,
) -> WhatsAppConversation:
    kwargs.setdefault("status", "pending")
    kwargs.setdefault("phone_number", chat_id.split("@")[0])
    conversation = WhatsAppConversation(
        organization_id=instance.organization_id,
        instance_id=instance.id,
        chat_id=chat_id,
        **kwargs,
    )
    db.add(conversation)
    await db.flush()
    return conversation


async def create_sale(
    db: AsyncSession,
    organization: Organization,
    lead: Optional[Lead] = None,
    created_at: Optional[datetime] = None,
    **kwargs,
) -> Sale:
    kwargs.setdefault("status", "payment_pending")
    kwargs.setdefault("total_cents", 10000)
    sale = Sale(
        organization_id=organization.id,
        lead_id=lead.id if lead else None,
        **kwargs,
    )
    if created_at is not None:
        sale.created_at = created_at
    db.add(sale)
    await db.flush()
    return sale


async def create_stage(db: AsyncSession, organization: Organization, name: str, position: int) -> FunnelStage:
    stage = FunnelStage(organization_id=organization.id, name=name, position=position)
    db.add(stage)
    await db.flush()
    return stage
