"""Newsletter synchronization tasks module."""

import logging

from celery import shared_task
from django.apps import apps

from listmonk_sync import registry
from listmonk_sync.engine import get_manager
from listmonk_sync.exceptions import TRANSIENT_ERRORS, EmailChangeError, ValidationError
from listmonk_sync.retry import RetryPolicy

logger = logging.getLogger(__name__)

# Failures retried without logging a traceback.
EXPECTED_ERRORS = (*TRANSIENT_ERRORS, EmailChangeError)


def load_subscriber(model_label, pk):
    """Reload a registered instance and wrap it in its adapter, None if it is gone."""
    model = apps.get_model(model_label)
    # The base manager also returns soft deleted rows.
    instance = model._base_manager.filter(pk=pk).first()  # noqa: SLF001
    if instance is None:
        logger.warning("Newsletter job skipped, %s:%s does not exist anymore", model_label, pk)
        return None
    return registry.get_adapter(instance)


def run_with_retry(task, arguments, operation):
    """
    Run the operation, scheduling a retry of the whole task when it fails.

    Retries follow the backoff schedule of the RetryPolicy. When the attempts are
    exhausted the job is logged as critical, handed to the dead letter callback
    and the error is raised again. Validation errors are never retried, every
    other error is, unexpected ones being logged with their traceback.
    """
    policy = RetryPolicy.from_settings()
    try:
        return operation()
    except ValidationError:
        raise
    except Exception as err:
        retries = task.request.retries
        if not policy.is_exhausted(retries):
            countdown = policy.countdown(retries)
            expected = isinstance(err, EXPECTED_ERRORS)
            logger.log(
                logging.WARNING if expected else logging.ERROR,
                "Newsletter job %s%r failed (attempt %s/%s), retrying in %ss: %s",
                task.name,
                arguments,
                retries + 1,
                policy.max_attempts,
                countdown,
                err,
                exc_info=None if expected else err,
            )
            options = {"queue": policy.queue} if policy.queue else {}
            raise task.retry(exc=err, countdown=countdown, max_retries=policy.max_retries, **options) from err

        logger.critical(
            "Newsletter job %s%r failed after %s attempts: %s",
            task.name,
            arguments,
            policy.max_attempts,
            err,
            exc_info=err,
        )
        policy.dead_letter(task.name, arguments, err)
        raise


@shared_task(bind=True)
def sync_subscriber(self, model_label: str, pk):
    """Create or update the remote record of a registered instance."""
    subscriber = load_subscriber(model_label, pk)
    if subscriber is None:
        return None
    outcome = run_with_retry(self, (model_label, pk), lambda: get_manager().sync(subscriber))
    return str(outcome.kind)


@shared_task(bind=True)
def update_subscriber(self, model_label: str, pk, fields: list[str] | None = None):
    """Patch the email and/or name of the remote record of a registered instance."""
    subscriber = load_subscriber(model_label, pk)
    if subscriber is None:
        return None
    fields = tuple(fields or ("email", "name"))
    outcome = run_with_retry(self, (model_label, pk, fields), lambda: get_manager().update_partial(subscriber, fields))
    return str(outcome.kind)


@shared_task(bind=True)
def change_subscriber_email(self, model_label: str, pk, old_email: str, policy: str | None = None):
    """Release the old email record and sync the instance under its new email."""
    subscriber = load_subscriber(model_label, pk)
    if subscriber is None:
        return None
    outcome = run_with_retry(
        self,
        (model_label, pk, old_email),
        lambda: get_manager().change_email(subscriber, old_email, policy=policy),
    )
    return str(outcome.kind)


@shared_task(bind=True)
def unsubscribe_by_email(self, email: str):
    """Delete the remote record of an email."""
    return run_with_retry(self, (email,), lambda: get_manager().unsubscribe_by_email(email))


@shared_task(bind=True)
def move_to_passive_list_by_email(self, email: str, passive_list_id: int):
    """Move the remote record of an email to the passive list."""
    return run_with_retry(
        self,
        (email, passive_list_id),
        lambda: get_manager().move_to_passive_list_by_email(email, passive_list_id),
    )
