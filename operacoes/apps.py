from django.apps import AppConfig


class OperacoesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "operacoes"
    verbose_name = "Operacoes"

    def ready(self):
        from . import signals  # noqa: F401
