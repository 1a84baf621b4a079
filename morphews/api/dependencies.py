"""
DEPENDENCIES (Dependências)
============================

Funções que são injetadas nas rotas para validação.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from morphews.infrastructure.database import get_db
from morphews.infrastructure.services.auth_service import decode_access_token
from morphews.infrastructure.services.evolution_service import EvolutionService
from morphews.domain.entities import Organization, User
from morphews.domain.entities.enums import UserRole

# Esquema de autenticação Bearer
security = HTTPBearer()

MANAGER_ROLES = (UserRole.OWNER.value, UserRole.ADMIN.value, UserRole.MANAGER.value)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Valida o token e retorna o usuário autenticado.

    Uso nas rotas:
        @router.get("/rota-protegida")
        async def rota(user: User = Depends(get_current_user)):
            # user está disponível aqui
    """
    payload = decode_access_token(credentials.credentials)

    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token inválido ou expirado",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if not user_id or not str(user_id).isdigit():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token inválido",
        )

    user = await db.scalar(
        select(User).where(User.id == int(user_id), User.active.is_(True))
    )

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Usuário não encontrado",
        )

    return user


async def get_current_organization(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Organization:
    """Organização ativa do usuário autenticado."""
    organization = await db.scalar(
        select(Organization).where(
            Organization.id == user.organization_id,
            Organization.active.is_(True),
        )
    )

    if not organization:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Organização não encontrada ou inativa",
        )

    return organization


async def require_manager(user: User = Depends(get_current_user)) -> User:
    """Apenas dono, admin ou gerente."""
    if user.role not in MANAGER_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Acesso restrito a gestores",
        )
    return user


def get_evolution_service() -> EvolutionService:
    return EvolutionService()


def raise_for_result(result: dict) -> dict:
    """
    Converte a recusa de um serviço em HTTPException.

    não encontrado -> 404, inválido -> 400, demais recusas -> 409
    """
    if result.get("success"):
        return result

    error = result.get("error") or "Operação não permitida"
    lowered = error.lower()
    if "não encontrad" in lowered:
        code = status.HTTP_404_NOT_FOUND
    elif "inválid" in lowered:
        code = status.HTTP_400_BAD_REQUEST
    else:
        code = status.HTTP_409_CONFLICT

    raise HTTPException(status_code=code, detail=error)
