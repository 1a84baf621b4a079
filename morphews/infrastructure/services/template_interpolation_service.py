"""
Template Interpolation Service
===============================

Substitui variáveis nos templates de mensagens automáticas.

Variáveis suportadas:
- {{nome}} - Nome completo do lead
- {{primeiro_nome}} - Primeiro nome do lead
- {{vendedor}} - Nome do vendedor da venda
- {{produto}} - Produto de interesse do lead

Exemplo:
    Template: "Oi {{primeiro_nome}}, seu pedido saiu para entrega!"
    Resultado: "Oi Maria, seu pedido saiu para entrega!"
"""
import re
from typing import Dict, Optional

VARIABLE_PATTERN = re.compile(r"\{\{(\w+)\}\}")


def build_context(
    lead_name: Optional[str] = None,
    seller_name: Optional[str] = None,
    product_name: Optional[str] = None,
) -> Dict[str, str]:
    name = (lead_name or "").strip()
    return {
        "nome": name,
        "primeiro_nome": name.split(" ")[0] if name else "",
        "vendedor": (seller_name or "").strip(),
        "produto": (product_name or "").strip(),
    }


def interpolate(template: str, context: Dict[str, str]) -> str:
    """Variável desconhecida fica como está no texto."""
    def replace(match: re.Match) -> str:
        key = match.group(1)
        return context.get(key, match.group(0))

    return VARIABLE_PATTERN.sub(replace, template or "")
