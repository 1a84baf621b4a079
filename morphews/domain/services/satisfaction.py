"""
Pesquisa de satisfação (NPS) e janela de horário comercial do auto-close.
"""

import re
from datetime import datetime
from typing import Optional

# Nota <= 6 = detrator, precisa de revisão do gestor
DETRACTOR_MAX_RATING = 6

TEXT_TO_NUMBER = {
    "zero": 0, "um": 1, "dois": 2, "três": 3, "tres": 3, "quatro": 4,
    "cinco": 5, "seis": 6, "sete": 7, "oito": 8, "nove": 9, "dez": 10,
}

DIRECT_PATTERN = re.compile(r"^(10|[0-9])$")
CONTEXT_PATTERN = re.compile(r"\b(10|[0-9])\b")


def extract_rating(text: Optional[str]) -> Optional[int]:
    """
    Extrai a nota (0-10) da resposta do cliente.

    "9" -> 9, "dou nota 8!" -> 8, "nota dez" -> 10, "obrigado" -> None
    """
    cleaned = (text or "").lower().strip()
    if not cleaned:
        return None

    direct = DIRECT_PATTERN.match(cleaned)
    if direct:
        return int(direct.group(1))

    in_context = CONTEXT_PATTERN.search(cleaned)
    if in_context:
        return int(in_context.group(1))

    # Palavra inteira, senão "um" casaria com "algum"
    for word, number in TEXT_TO_NUMBER.items():
        if re.search(rf"\b{word}\b", cleaned):
            return number

    return None


def is_pending_review(rating: Optional[int]) -> bool:
    return rating is not None and rating <= DETRACTOR_MAX_RATING


def _to_minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


def is_within_business_hours(start: str, end: str, now: datetime) -> bool:
    """Janela inclusiva HH:MM-HH:MM no horário local de `now`."""
    current = now.hour * 60 + now.minute
    return _to_minutes(start) <= current <= _to_minutes(end)
