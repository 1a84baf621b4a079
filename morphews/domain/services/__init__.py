"""Regras de negócio puras (sem banco, sem rede)."""
