"""
Django Batchline app configuration.
"""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class BatchlineConfig(AppConfig):
    """Batchline application configuration."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "batchline"
    verbose_name = _("Execução de Lotes")

    def ready(self):
        """Import signal handlers when app is ready."""
        # Import handlers to register them
        from batchline.signals import handlers  # noqa: F401
