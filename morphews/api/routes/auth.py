"""
ROTAS: AUTENTICAÇÃO
====================
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from morphews.api.schemas import LoginRequest, TokenResponse
from morphews.domain.entities import User
from morphews.infrastructure.database import get_db
from morphews.infrastructure.services.auth_service import create_user_token, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Autenticação"])


@router.post("/token", response_model=TokenResponse)
async def login(payload: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Troca email/senha por um token JWT."""
    user = await db.scalar(
        select(User).where(User.email == payload.email.lower().strip())
    )

    if not user or not verify_password(payload.password, user.password_hash):
        logger.warning(f"🔐 Login inválido para {payload.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Email ou senha incorretos",
        )

    if not user.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Usuário desativado",
        )

    token = create_user_token(user.id, user.organization_id, user.role)
    return TokenResponse(
        access_token=token,
        user_id=user.id,
        organization_id=user.organization_id,
    )
