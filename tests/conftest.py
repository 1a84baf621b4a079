import os

# Configuração precisa existir antes de importar o pacote (settings em cache)
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ["EVOLUTION_API_URL"] = ""
os.environ["EVOLUTION_API_KEY"] = ""

from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from morphews.domain.entities import Base
from morphews.infrastructure.services.evolution_service import EvolutionService


@pytest.fixture
async def engine():
    """
    Banco SQLite em memória, novo a cada teste.
    StaticPool mantém a mesma conexão para todas as sessões.
    """
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Sessão limpa para cada teste."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def evolution_mock():
    """EvolutionService falso: todo envio dá certo."""
    mock = AsyncMock(spec=EvolutionService)
    mock.send_text.return_value = {"success": True, "data": {}}
    mock.send_media.return_value = {"success": True, "data": {}}
    return mock


@pytest.fixture
async def async_client(session_factory, evolution_mock) -> AsyncGenerator[AsyncClient, None]:
    """Cliente HTTP da API usando o banco do teste."""
    from morphews.api.dependencies import get_evolution_service
    from morphews.api.main import app
    from morphews.infrastructure.database import get_db

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_evolution_service] = lambda: evolution_mock

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
