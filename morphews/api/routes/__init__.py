"""Rotas da API."""

from .auth import router as auth_router
from .webhooks import router as webhooks_router
from .leads import router as leads_router
from .conversations import router as conversations_router
from .funnel import router as funnel_router
from .jobs import router as jobs_router
from .health import router as health_router

__all__ = [
    "auth_router",
    "webhooks_router",
    "leads_router",
    "conversations_router",
    "funnel_router",
    "jobs_router",
    "health_router",
]
