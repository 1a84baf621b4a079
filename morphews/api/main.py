"""
MORPHEWS API - Ponto de Entrada
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from morphews import __version__
from morphews.config import get_settings
from morphews.infrastructure.database import init_db
from morphews.infrastructure.logging_config import setup_logging
from morphews.infrastructure.scheduler import create_scheduler, start_scheduler, stop_scheduler
from morphews.api.routes import (
    auth_router,
    webhooks_router,
    leads_router,
    conversations_router,
    funnel_router,
    jobs_router,
    health_router,
)

settings = get_settings()
logger = logging.getLogger(__name__)


# ============================================================
# 🔁 LIFESPAN
# ============================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(
        logging.DEBUG if settings.debug else logging.INFO,
        json_format=settings.is_production,
    )
    logger.info("🚀 Iniciando Morphews API...")

    await init_db()
    logger.info("✅ Tabelas criadas!")

    if settings.scheduler_enabled:
        create_scheduler()
        start_scheduler()

    yield

    stop_scheduler()
    logger.info("👋 Encerrando Morphews API...")


# ============================================================
# FASTAPI APP
# ============================================================
app = FastAPI(
    title="Morphews API",
    description="CRM multi-tenant com vendas e atendimento via WhatsApp",
    version=__version__,
    lifespan=lifespan,
)

# ============================================================
# ⭐ CORS
# ============================================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================
# ROTAS
# ============================================================
app.include_router(auth_router, prefix="/api/v1")
app.include_router(webhooks_router, prefix="/api/v1")
app.include_router(leads_router, prefix="/api/v1")
app.include_router(conversations_router, prefix="/api/v1")
app.include_router(funnel_router, prefix="/api/v1")
app.include_router(jobs_router, prefix="/api/v1")
app.include_router(health_router, prefix="/api/v1")


@app.get("/")
async def root():
    return {"name": "Morphews API", "status": "running", "version": __version__}
