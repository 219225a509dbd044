"""
Django settings for testing.
"""

from .base import *  # noqa: F401, F403

DEBUG = False
SECRET_KEY = "test-secret-key-not-for-production"

NFE_CONFIG = {
    "AMBIENTE": "homologacao",
    "VERSAO_PROCESSO": "caixa_nfe_teste",
    "DIAS_ALERTA_VENCIMENTO": 30,
    "BACKEND": "mock",
}

# Logging - disable file logging during tests to avoid lock issues
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "CRITICAL",  # Only critical errors
    },
}
