"""
Transmissores de NF-e - Strategy Pattern para provedores plugáveis.
"""

from caixa_nfe.nfe.backends.registry import get_backend

__all__ = ["get_backend"]
