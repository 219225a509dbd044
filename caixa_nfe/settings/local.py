"""
Django settings for local development.
"""

from .base import *  # noqa: F401, F403

DEBUG = True

# Simplified logging for development
LOGGING["handlers"]["console"]["level"] = "DEBUG"  # noqa: F405
LOGGING["loggers"]["caixa_nfe"]["level"] = "DEBUG"  # noqa: F405

# Arquivo de log simples em desenvolvimento, sem rotação
LOGGING["handlers"]["file"] = {  # noqa: F405
    "class": "logging.FileHandler",
    "filename": BASE_DIR / "logs" / "caixa_nfe_local.log",  # noqa: F405
    "formatter": "verbose",
    "filters": ["documento_context"],
    "delay": True,
}
