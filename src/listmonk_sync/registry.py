"""
Explicit registry of the models synchronized with the newsletter.

Models are registered by the host application, usually in ``AppConfig.ready``:

    from listmonk_sync import registry

    registry.register(User, UserSubscriber)

Registration connects the model signals feeding the lifecycle dispatcher.
"""

import logging

from django.db.models.signals import post_delete, post_init, post_save

from listmonk_sync.adapters import SubscriberAdapter
from listmonk_sync.dispatcher import dispatcher

logger = logging.getLogger(__name__)

_registry: dict = {}


class AlreadyRegistered(Exception):
    """The model is already registered."""


class NotRegistered(Exception):
    """The model is not registered."""


def _dispatch_uid(model, signal_name):
    return f"listmonk_sync.{signal_name}.{model._meta.label_lower}"  # noqa: SLF001


def _on_post_init(sender, instance, **kwargs):
    get_adapter(instance).take_snapshot()


def _on_post_save(sender, instance, created, raw=False, **kwargs):
    if raw:
        # Fixture loading
        return
    subscriber = get_adapter(instance)
    try:
        dispatcher.saved(subscriber, created)
    finally:
        subscriber.take_snapshot()


def _on_post_delete(sender, instance, **kwargs):
    dispatcher.force_deleted(get_adapter(instance))


def register(model, adapter_class=SubscriberAdapter):
    """Register a model with the adapter exposing it to the engine."""
    if model in _registry:
        raise AlreadyRegistered(f"The model {model.__name__} is already registered")
    if not issubclass(adapter_class, SubscriberAdapter):
        raise TypeError(f"{adapter_class!r} is not a SubscriberAdapter subclass")

    _registry[model] = adapter_class
    post_init.connect(_on_post_init, sender=model, dispatch_uid=_dispatch_uid(model, "post_init"))
    post_save.connect(_on_post_save, sender=model, dispatch_uid=_dispatch_uid(model, "post_save"))
    post_delete.connect(_on_post_delete, sender=model, dispatch_uid=_dispatch_uid(model, "post_delete"))
    logger.debug("Model %s registered for newsletter synchronization", model._meta.label)  # noqa: SLF001


def subscriber_adapter(*models):
    """
    Register the decorated adapter class for the given models.

        @subscriber_adapter(User)
        class UserSubscriber(SubscriberAdapter):
            list_ids = [1]
    """

    def _wrapper(adapter_class):
        for model in models:
            register(model, adapter_class)
        return adapter_class

    return _wrapper


def unregister(model):
    """Disconnect a registered model."""
    if model not in _registry:
        raise NotRegistered(f"The model {model.__name__} is not registered")
    del _registry[model]
    post_init.disconnect(sender=model, dispatch_uid=_dispatch_uid(model, "post_init"))
    post_save.disconnect(sender=model, dispatch_uid=_dispatch_uid(model, "post_save"))
    post_delete.disconnect(sender=model, dispatch_uid=_dispatch_uid(model, "post_delete"))


def is_registered(model) -> bool:
    """Tell whether the model is registered."""
    return model in _registry


def get_registered_models() -> list:
    """Return the registered models."""
    return list(_registry)


def get_adapter_class(model):
    """Return the adapter class of a registered model, or of its concrete parent."""
    for klass in model.__mro__:
        if klass in _registry:
            return _registry[klass]
    raise NotRegistered(f"The model {model.__name__} is not registered")


def get_adapter(instance) -> SubscriberAdapter:
    """Wrap an instance of a registered model in its adapter."""
    return get_adapter_class(type(instance))(instance)
