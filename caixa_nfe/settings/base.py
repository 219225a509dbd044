"""
Django base settings for caixa_nfe project.
"""

from pathlib import Path

from decouple import config

# Build paths inside the project
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = config("SECRET_KEY", default="django-insecure-caixa-nfe")

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = config("DEBUG", default=False, cast=bool)

ALLOWED_HOSTS: list[str] = []

# Application definition
DJANGO_APPS = [
    "django.contrib.contenttypes",
]

LOCAL_APPS = [
    "caixa_nfe.nfe",
]

INSTALLED_APPS = DJANGO_APPS + LOCAL_APPS

# O núcleo fiscal não persiste nada; a persistência é de outro serviço.
DATABASES: dict = {}

# Internationalization
LANGUAGE_CODE = "pt-br"
TIME_ZONE = "America/Sao_Paulo"
USE_I18N = True
USE_TZ = True

# Default primary key field type
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Sentry
SENTRY_DSN = config("SENTRY_DSN", default="")
if SENTRY_DSN:
    import sentry_sdk
    from sentry_sdk.integrations.django import DjangoIntegration

    sentry_sdk.init(
        dsn=SENTRY_DSN,
        integrations=[DjangoIntegration()],
        traces_sample_rate=0.1,
        send_default_pii=False,
    )

# NF-e Configuration
NFE_CONFIG = {
    "AMBIENTE": config("NFE_AMBIENTE", default="homologacao"),
    "VERSAO_PROCESSO": config("NFE_VERSAO_PROCESSO", default="caixa_nfe_1.0"),
    "DIAS_ALERTA_VENCIMENTO": config("NFE_DIAS_ALERTA_VENCIMENTO", default=30, cast=int),
    "BACKEND": config("NFE_BACKEND", default="mock"),
}

# Logging
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "documento_context": {
            "()": "caixa_nfe.core.logging_filters.DocumentoContextFilter",
        },
    },
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {module} {process:d} {thread:d} "
            "[chave={chave_acesso} emitente={cnpj_emitente}] {message}",
            "style": "{",
        },
        "simple": {
            "format": "{levelname} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
        "file": {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": BASE_DIR / "logs" / "caixa_nfe.log",
            "maxBytes": 10485760,  # 10MB
            "backupCount": 10,
            "formatter": "verbose",
            "filters": ["documento_context"],
            "delay": True,
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "INFO",
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": config("DJANGO_LOG_LEVEL", default="INFO"),
            "propagate": False,
        },
        "caixa_nfe": {
            "handlers": ["console", "file"],
            "level": "DEBUG",
            "propagate": False,
        },
    },
}
