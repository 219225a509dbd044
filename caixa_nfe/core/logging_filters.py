"""
Logging filter that injects document context (chave_acesso, cnpj_emitente)
into every log record for structured observability.
"""

import logging
import threading
from contextlib import contextmanager

_documento_context = threading.local()

_CAMPOS = ("chave_acesso", "cnpj_emitente")


def set_documento_context(*, chave_acesso: str, cnpj_emitente: str) -> None:
    """Set context for the current thread (called by the emission pipeline)."""
    _documento_context.chave_acesso = chave_acesso
    _documento_context.cnpj_emitente = cnpj_emitente


def clear_documento_context() -> None:
    """Clear context after the document is handed off."""
    for attr in _CAMPOS:
        try:
            delattr(_documento_context, attr)
        except AttributeError:
            pass


@contextmanager
def documento_context(*, chave_acesso: str, cnpj_emitente: str):
    """Scoped context; nested blocks restore the outer document on exit."""
    anterior = {attr: getattr(_documento_context, attr) for attr in _CAMPOS if hasattr(_documento_context, attr)}
    set_documento_context(chave_acesso=chave_acesso, cnpj_emitente=cnpj_emitente)
    try:
        yield
    finally:
        clear_documento_context()
        if anterior:
            set_documento_context(**anterior)


class DocumentoContextFilter(logging.Filter):
    """Adds chave_acesso and cnpj_emitente to every log record."""

    def filter(self, record):
        for attr in _CAMPOS:
            setattr(record, attr, getattr(_documento_context, attr, "-"))
        return True
