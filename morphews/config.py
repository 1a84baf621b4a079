"""Configurações da aplicação - carrega variáveis do .env"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===========================================
    # CORE
    # ===========================================
    environment: str = "development"
    database_url: str = "sqlite+aiosqlite://"
    secret_key: str = "change-me"
    access_token_expire_minutes: int = 1440
    debug: bool = False
    timezone: str = "America/Sao_Paulo"
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:8080"]

    # ===========================================
    # EVOLUTION API (WhatsApp)
    # ===========================================
    evolution_api_url: Optional[str] = None
    evolution_api_key: Optional[str] = None

    # ===========================================
    # PEDIDOS E PAGAMENTOS
    # ===========================================
    order_expiry_hours: int = 48
    platform_fee_percentage: float = 5.0
    platform_fee_fixed_cents: int = 0
    release_days: int = 14

    # ===========================================
    # JOBS
    # ===========================================
    scheduler_enabled: bool = True
    order_expiry_sweep_minutes: int = 15
    auto_close_interval_minutes: int = 5
    scheduled_messages_interval_minutes: int = 1
    scheduled_messages_batch_size: int = 50

    # ===========================================
    # PROPRIEDADES
    # ===========================================
    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def evolution_configured(self) -> bool:
        """Verifica se a Evolution API está configurada."""
        return bool(self.evolution_api_url and self.evolution_api_key)


@lru_cache
def get_settings() -> Settings:
    return Settings()
