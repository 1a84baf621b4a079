"""
SPLIT FINANCEIRO
================

Quando uma venda é paga, o valor é dividido entre:
- afiliado (se a venda já tem um split de afiliado criado no checkout)
- tenant (valor - taxa da plataforma - comissão do afiliado)
- plataforma (taxa percentual + fixa)

Os créditos entram como pendentes e são liberados após `release_days`.
Processar a mesma venda duas vezes não gera crédito em dobro: a
existência do split do tenant marca a venda como já dividida.
"""

import logging
from datetime import timedelta
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from morphews.config import get_settings
from morphews.domain.entities import (
    Organization,
    PlatformSetting,
    Sale,
    SaleSplit,
    VirtualAccount,
    VirtualTransaction,
)
from morphews.domain.time_utils import utcnow

logger = logging.getLogger(__name__)


async def load_fee_rules(db: AsyncSession) -> Tuple[float, int, int]:
    """(percentual, fixo em centavos, dias para liberação)"""
    settings = get_settings()
    percentage = settings.platform_fee_percentage
    fixed_cents = settings.platform_fee_fixed_cents
    release_days = settings.release_days

    result = await db.execute(
        select(PlatformSetting).where(
            PlatformSetting.setting_key.in_(("platform_fees", "withdrawal_rules"))
        )
    )
    for setting in result.scalars().all():
        value = setting.setting_value or {}
        if setting.setting_key == "platform_fees":
            percentage = value.get("percentage", percentage)
            fixed_cents = value.get("fixed_cents", fixed_cents)
        elif setting.setting_key == "withdrawal_rules":
            release_days = value.get("release_days", release_days)

    return float(percentage), int(fixed_cents), int(release_days)


def calculate_platform_fee(total_cents: int, percentage: float, fixed_cents: int) -> int:
    return int(round(total_cents * percentage / 100)) + fixed_cents


async def get_or_create_tenant_account(db: AsyncSession, organization_id: int) -> VirtualAccount:
    account = await db.scalar(
        select(VirtualAccount).where(
            VirtualAccount.organization_id == organization_id,
            VirtualAccount.account_type == "tenant",
        )
    )
    if account:
        return account

    organization = await db.get(Organization, organization_id)
    account = VirtualAccount(
        organization_id=organization_id,
        account_type="tenant",
        holder_name=organization.name if organization else "Tenant",
        holder_email=organization.email if organization else None,
        pending_balance_cents=0,
        total_received_cents=0,
    )
    db.add(account)
    await db.flush()
    logger.info(f"🏦 [split] Conta virtual criada para a organização {organization_id}")
    return account


def _credit(
    db: AsyncSession,
    account: VirtualAccount,
    sale_id: int,
    amount_cents: int,
    fee_cents: int,
    description: str,
    release_at,
) -> VirtualTransaction:
    transaction = VirtualTransaction(
        virtual_account_id=account.id,
        sale_id=sale_id,
        transaction_type="credit",
        amount_cents=amount_cents,
        fee_cents=fee_cents,
        net_amount_cents=amount_cents,
        description=description,
        status="pending",
        release_at=release_at,
    )
    db.add(transaction)
    account.pending_balance_cents = (account.pending_balance_cents or 0) + amount_cents
    account.total_received_cents = (account.total_received_cents or 0) + amount_cents
    return transaction


async def process_sale_splits(db: AsyncSession, sale_id: int) -> Optional[dict]:
    """
    Divide o valor da venda paga.

    Returns:
        Resumo dos valores, ou None se a venda não existe ou já foi dividida.
    """
    sale = await db.get(Sale, sale_id)
    if not sale:
        logger.error(f"❌ [split] Venda {sale_id} não encontrada")
        return None

    existing = await db.scalar(
        select(SaleSplit.id).where(SaleSplit.sale_id == sale_id, SaleSplit.split_type == "tenant")
    )
    if existing:
        logger.info(f"ℹ️ [split] Venda {sale_id} já foi dividida")
        return None

    percentage, fixed_cents, release_days = await load_fee_rules(db)
    total_cents = sale.total_cents or 0
    platform_fee_cents = calculate_platform_fee(total_cents, percentage, fixed_cents)
    release_at = utcnow() + timedelta(days=release_days)

    tenant_account = await get_or_create_tenant_account(db, sale.organization_id)

    # Comissão do afiliado (split criado no checkout)
    affiliate_cents = 0
    affiliate_split = await db.scalar(
        select(SaleSplit).where(SaleSplit.sale_id == sale_id, SaleSplit.split_type == "affiliate")
    )
    if affiliate_split:
        affiliate_cents = affiliate_split.gross_amount_cents or 0
        affiliate_account = await db.get(VirtualAccount, affiliate_split.virtual_account_id)
        if affiliate_account:
            transaction = _credit(
                db, affiliate_account, sale_id, affiliate_cents, 0,
                f"Comissão venda #{sale_id}", release_at,
            )
            await db.flush()
            affiliate_split.transaction_id = transaction.id

    tenant_cents = total_cents - platform_fee_cents - affiliate_cents
    tenant_percentage = 100 - (affiliate_cents / total_cents * 100) if total_cents else 100.0

    tenant_transaction = _credit(
        db, tenant_account, sale_id, tenant_cents, platform_fee_cents,
        f"Venda #{sale_id} (- taxa plataforma)", release_at,
    )
    await db.flush()

    db.add(SaleSplit(
        sale_id=sale_id,
        virtual_account_id=tenant_account.id,
        split_type="tenant",
        gross_amount_cents=total_cents - affiliate_cents,
        fee_cents=platform_fee_cents,
        net_amount_cents=tenant_cents,
        percentage=tenant_percentage,
        transaction_id=tenant_transaction.id,
    ))
    db.add(SaleSplit(
        sale_id=sale_id,
        virtual_account_id=tenant_account.id,
        split_type="platform",
        gross_amount_cents=platform_fee_cents,
        fee_cents=0,
        net_amount_cents=platform_fee_cents,
        percentage=percentage,
    ))
    await db.flush()

    logger.info(
        f"💰 [split] Venda {sale_id}: tenant={tenant_cents} afiliado={affiliate_cents} "
        f"plataforma={platform_fee_cents}"
    )
    return {
        "tenant_cents": tenant_cents,
        "affiliate_cents": affiliate_cents,
        "platform_fee_cents": platform_fee_cents,
    }
