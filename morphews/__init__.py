"""Morphews CRM - backend de vendas, atendimento WhatsApp e pedidos."""

__version__ = "0.1.0"
