"""Normalização de números de WhatsApp (Brasil)."""

import re

NON_DIGITS = re.compile(r"\D")


def normalize_whatsapp(phone: str) -> str:
    """
    Deixa só dígitos, garante DDI 55 e insere o nono dígito.

    "(11) 8888-7777" -> "5511988887777"
    """
    clean = NON_DIGITS.sub("", phone or "")
    if not clean:
        return ""
    if not clean.startswith("55"):
        clean = f"55{clean}"
    if len(clean) == 12:
        clean = clean[:4] + "9" + clean[4:]
    return clean


def chat_id_to_phone(chat_id: str) -> str:
    return (chat_id or "").replace("@s.whatsapp.net", "").replace("@g.us", "")
