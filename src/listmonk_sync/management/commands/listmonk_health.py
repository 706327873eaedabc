"""Check the connection to the Listmonk API."""

from django.core.exceptions import ImproperlyConfigured
from django.core.management.base import BaseCommand, CommandError

from listmonk_sync import newsletter
from listmonk_sync.conf import get_settings
from listmonk_sync.exceptions import NewsletterError, RemoteConnectionError


class Command(BaseCommand):
    """Check the Listmonk API connection and show the configuration."""

    help = "Check Listmonk API connection and health"

    def handle(self, *args, **options):
        """Call the health endpoint of the configured backend."""
        self.stdout.write("Checking Listmonk API health...")
        config = get_settings()

        try:
            newsletter.health()
        except ImproperlyConfigured as err:
            raise CommandError(f"Listmonk is not configured: {err}") from err
        except RemoteConnectionError as err:
            raise CommandError(
                f"Cannot connect to Listmonk API: {err}\n"
                "Please check that the base URL is correct, that Listmonk is running "
                "and the network connectivity."
            ) from err
        except NewsletterError as err:
            raise CommandError(f"Listmonk API health check failed: {err}") from err

        self.stdout.write(self.style.SUCCESS("Listmonk API is healthy and accessible"))
        parameters = config["PARAMETERS"] or {}
        for label, value in (
            ("Backend", config["BACKEND"]),
            ("Base URL", parameters.get("base_url", "-")),
            ("API User", parameters.get("api_user", "-")),
            ("Queue Enabled", "Yes" if config["QUEUE"]["ENABLED"] else "No"),
            ("Preconfirm Subscriptions", "Yes" if config["PRECONFIRM_SUBSCRIPTIONS"] else "No"),
            ("Rate Limit Enabled", "Yes" if config["RATE_LIMIT"]["ENABLED"] else "No"),
        ):
            self.stdout.write(f"  {label:<26} {value}")
