# File: core/apps.py
# Version: 1.1.0
# Author: vas
# Modified: 2026-10-18

from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core"
    verbose_name = "Core"

    def ready(self):
        """Connect the auth logging signals."""
        import core.signals  # noqa: F401
