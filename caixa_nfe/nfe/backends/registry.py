"""
Registro de transmissores - escolhe a implementação a partir de
``NFE_CONFIG["BACKEND"]``.
"""

import logging

from django.conf import settings

from caixa_nfe.nfe.backends.base import BaseTransmissorNFe

logger = logging.getLogger(__name__)

_BACKEND_MAP: dict[str, type[BaseTransmissorNFe]] = {}


def register_backend(key: str, backend_class: type[BaseTransmissorNFe]) -> None:
    """Registra uma classe de transmissor sob a chave informada."""
    _BACKEND_MAP[key] = backend_class


def _ensure_defaults() -> None:
    """Registra os transmissores embutidos no primeiro acesso."""
    if "mock" not in _BACKEND_MAP:
        from caixa_nfe.nfe.backends.mock import MockTransmissor

        register_backend("mock", MockTransmissor)


def get_backend(key: str | None = None) -> BaseTransmissorNFe:
    """
    Devolve uma instância do transmissor configurado.
    Cai no MockTransmissor quando a chave é desconhecida.
    """
    _ensure_defaults()

    backend_key = key or settings.NFE_CONFIG.get("BACKEND", "mock")
    backend_class = _BACKEND_MAP.get(backend_key)

    if backend_class is None:
        logger.warning("Transmissor desconhecido '%s', usando MockTransmissor", backend_key)
        return _BACKEND_MAP["mock"]()

    logger.debug("Transmissor selecionado: %s", backend_key)
    return backend_class()


def list_backends() -> dict[str, type[BaseTransmissorNFe]]:
    """Cópia do mapa de transmissores registrados."""
    _ensure_defaults()
    return dict(_BACKEND_MAP)
