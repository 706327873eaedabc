"""User customization application."""

from django.apps import AppConfig


class UserConfig(AppConfig):
    """Configuration class for the user app."""

    name = "test_project.user"
    verbose_name = "User manager"
    app_label = "user"

    def ready(self):
        """Register the user model for newsletter synchronization."""
        from listmonk_sync import registry  # noqa: PLC0415

        from .models import User  # noqa: PLC0415
        from .newsletter import UserSubscriber  # noqa: PLC0415

        registry.register(User, UserSubscriber)
