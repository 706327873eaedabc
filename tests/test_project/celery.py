"""Celery application of the test project, tasks run eagerly."""

from celery import Celery

app = Celery("test_project")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
