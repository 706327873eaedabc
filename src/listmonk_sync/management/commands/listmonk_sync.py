"""Bulk synchronization of a registered model with Listmonk."""

from django.apps import apps
from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from listmonk_sync import registry
from listmonk_sync.engine import get_manager

MAX_REPORTED_FAILURES = 10


class Command(BaseCommand):
    """Sync every instance of a registered model to Listmonk."""

    help = "Sync subscribers to Listmonk"

    def add_arguments(self, parser):
        """Declare the command arguments."""
        parser.add_argument(
            "model",
            nargs="?",
            help="Label of the model to sync, app_label.ModelName (defaults to AUTH_USER_MODEL)",
        )
        parser.add_argument(
            "--chunk",
            type=int,
            default=100,
            help="Number of records to load at once (default: 100)",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be synced without making changes",
        )
        parser.add_argument(
            "--noinput",
            "--no-input",
            action="store_false",
            dest="interactive",
            help="Do not prompt for confirmation",
        )

    def get_model(self, label):
        """Resolve and check the model to sync."""
        try:
            model = apps.get_model(label)
        except (LookupError, ValueError) as err:
            raise CommandError(f"Model {label!r} does not exist.") from err
        if not registry.is_registered(model):
            raise CommandError(f"Model {label!r} is not registered for newsletter synchronization.")
        return model

    def handle(self, *args, **options):
        """Sync the instances chunk by chunk."""
        model = self.get_model(options["model"] or settings.AUTH_USER_MODEL)
        dry_run = options["dry_run"]
        chunk = max(options["chunk"], 1)

        queryset = model._default_manager.order_by("pk")  # noqa: SLF001
        total = queryset.count()
        self.stdout.write(f"Found {total} records to sync.")
        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE - No changes will be made"))

        if options["interactive"] and not dry_run:
            answer = input("Do you want to continue? [Y/n] ")
            if answer.strip().lower() not in ("", "y", "yes"):
                self.stdout.write(self.style.WARNING("Sync cancelled."))
                return

        manager = get_manager()
        synced = 0
        failures = []
        batch = []

        for instance in queryset.iterator(chunk_size=chunk):
            batch.append(registry.get_adapter(instance))
            if len(batch) >= chunk:
                synced += self.sync_batch(manager, batch, failures, dry_run, options["verbosity"])
                batch = []
        if batch:
            synced += self.sync_batch(manager, batch, failures, dry_run, options["verbosity"])

        self.stdout.write(self.style.SUCCESS("Dry run completed!" if dry_run else "Sync completed!"))
        self.stdout.write(f"  Total: {total}")
        self.stdout.write(f"  {'Would sync' if dry_run else 'Synced'}: {synced}")

        if failures:
            self.stdout.write(self.style.ERROR(f"  Failed: {len(failures)}"))
            for failure in failures[:MAX_REPORTED_FAILURES]:
                self.stdout.write(f"  - {failure.email} ({failure.subscriber.identity}): {failure.error}")
            if len(failures) > MAX_REPORTED_FAILURES:
                self.stdout.write(f"  ... and {len(failures) - MAX_REPORTED_FAILURES} more")
            raise CommandError(f"{len(failures)} subscribers could not be synced.")

    def sync_batch(self, manager, batch, failures, dry_run, verbosity):
        """Sync a batch and return the number of synced subscribers."""
        if dry_run:
            if verbosity > 1:
                for subscriber in batch:
                    lists = ", ".join(str(list_id) for list_id in subscriber.get_lists())
                    self.stdout.write(f"  Would sync: {subscriber.get_email()} to lists: {lists}")
            return len(batch)

        report = manager.sync_many(batch)
        failures.extend(report.failures)
        return report.succeeded
