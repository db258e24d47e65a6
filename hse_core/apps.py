# hse_core/apps.py

from django.apps import AppConfig


class HseCoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "hse_core"
    verbose_name = "HSE compliance"

    def ready(self):
        from . import signals  # noqa
