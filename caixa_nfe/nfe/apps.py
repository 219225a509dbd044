from django.apps import AppConfig


class NfeConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "caixa_nfe.nfe"
    verbose_name = "NF-e"
