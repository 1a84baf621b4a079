"""
SERVIÇO DE AUTENTICAÇÃO
========================

Senhas com SHA256 + salt e tokens JWT (HS256) do painel.

Claims do token:
    sub  - ID do usuário (string)
    org  - ID da organização
    role - papel do usuário (owner, admin, manager, seller)
"""

from datetime import timedelta
from typing import Optional
import hashlib
import secrets
from jose import JWTError, jwt

from morphews.config import get_settings
from morphews.domain.time_utils import utcnow

ALGORITHM = "HS256"


def _digest(password: str, salt: str) -> str:
    return hashlib.sha256((password + salt).encode()).hexdigest()


def hash_password(password: str) -> str:
    salt = secrets.token_hex(16)
    return f"{salt}${_digest(password, salt)}"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Hash fora do formato salt$hash nunca confere."""
    salt, sep, expected = (hashed_password or "").partition("$")
    if not sep:
        return False
    return secrets.compare_digest(_digest(plain_password, salt), expected)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    settings = get_settings()
    expire = utcnow() + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    return jwt.encode({**data, "exp": expire}, settings.secret_key, algorithm=ALGORITHM)


def create_user_token(user_id: int, organization_id: int, role: str) -> str:
    """Token de sessão do painel para o usuário."""
    return create_access_token({"sub": str(user_id), "org": organization_id, "role": role})


def decode_access_token(token: str) -> Optional[dict]:
    """Claims do token, ou None se a assinatura não confere ou expirou."""
    try:
        return jwt.decode(token, get_settings().secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None
