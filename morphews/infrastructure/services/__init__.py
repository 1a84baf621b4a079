"""Serviços de aplicação (regras que tocam banco e integrações)."""
