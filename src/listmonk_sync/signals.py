"""
Outcome signals of the newsletter synchronization.

Every signal is sent with the subscriber class as ``sender`` and the subscriber
as ``subscriber`` keyword argument:

- ``subscriber_created``: no remote record existed, one was created
  (``response`` holds the raw remote record).
- ``subscriber_updated``: the remote record was updated (``response``).
- ``subscriber_sync_failed``: the operation failed (``error``).
- ``subscriber_unsubscribed``: the remote record was deleted.
"""

from django.dispatch import Signal

subscriber_created = Signal()
subscriber_updated = Signal()
subscriber_sync_failed = Signal()
subscriber_unsubscribed = Signal()
