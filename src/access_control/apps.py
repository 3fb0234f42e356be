"""App configuration for the access_control Django application.

This module wires up the application config, registers the catalog
system checks, and connects the bootstrap seeder to ``post_migrate`` so
the privilege catalog is in place before the server takes traffic.
"""

from django.apps import AppConfig
from django.db.models.signals import post_migrate


class AccessControlConfig(AppConfig):
    """Application configuration for the access_control app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "access_control"

    def ready(self) -> None:
        """Register system checks and the seeding hook when the app is loaded."""
        # Import system checks so they are registered with Django.
        from . import checks  # noqa: F401
        from .seeding import seed_on_migrate

        post_migrate.connect(seed_on_migrate, sender=self, dispatch_uid="access_control.seed_on_migrate")
