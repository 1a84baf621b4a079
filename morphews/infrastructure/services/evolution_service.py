"""
SERVIÇO EVOLUTION API (WhatsApp)
================================

Cliente HTTP mínimo para envio de mensagens pelas instâncias conectadas.

Usado por:
- Job de mensagens agendadas
- Auto-close de conversas (mensagem de encerramento / NPS)
- Encerramento manual com pesquisa de satisfação
"""

import logging
from typing import Optional

import httpx

from morphews.config import get_settings

logger = logging.getLogger(__name__)


class EvolutionService:
    """Cliente Evolution API. Nunca levanta exceção em erro HTTP."""

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None, timeout: float = 30):
        settings = get_settings()
        self.base_url = (base_url or settings.evolution_api_url or "").rstrip("/")
        self.api_key = api_key or settings.evolution_api_key or ""
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    # ==========================
    # HTTP HELPERS
    # ==========================
    async def _post(self, endpoint: str, payload: dict) -> dict:
        if not self.configured:
            return {"success": False, "error": "Evolution API não configurada"}

        url = f"{self.base_url}/{endpoint}"
        headers = {"Content-Type": "application/json", "apikey": self.api_key}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"❌ [evolution] Falha de rede em {endpoint}: {e}")
            return {"success": False, "error": str(e)}

        if response.is_error:
            try:
                raw = response.json()
            except ValueError:
                raw = {}
            if not isinstance(raw, dict):
                raw = {}
            error = raw.get("message") or raw.get("error") or f"HTTP {response.status_code}"
            logger.error(f"❌ [evolution] {endpoint} respondeu {response.status_code}: {error}")
            return {"success": False, "error": str(error), "status_code": response.status_code}

        return {"success": True}

    # ==========================
    # SENDERS
    # ==========================
    async def send_text(self, instance_name: str, phone: str, text: str) -> dict:
        logger.info(f"📤 [evolution] Texto para {phone} via {instance_name}")
        return await self._post(
            f"message/sendText/{instance_name}",
            {"number": phone, "text": text},
        )

    async def send_media(
        self,
        instance_name: str,
        phone: str,
        media_type: str,
        media_url: str,
        caption: str = "",
        filename: Optional[str] = None,
    ) -> dict:
        """
        Envia imagem, áudio ou documento. Áudio não tem legenda: o texto
        segue numa segunda mensagem.
        """
        logger.info(f"📤 [evolution] {media_type} para {phone} via {instance_name}")

        if media_type == "audio":
            result = await self._post(
                f"message/sendWhatsAppAudio/{instance_name}",
                {"number": phone, "audio": media_url},
            )
            if result["success"] and caption:
                await self.send_text(instance_name, phone, caption)
            return result

        payload = {"number": phone, "mediatype": media_type, "media": media_url, "caption": caption}
        if media_type == "document":
            payload["fileName"] = filename or "document"

        return await self._post(f"message/sendMedia/{instance_name}", payload)
