import logging

from django.db import transaction
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from websocket_chat.notifications import (
    EVENT_MESSAGE_CREATED,
    EVENT_MESSAGE_DELETED,
    EVENT_MESSAGE_MODERATED,
    EVENT_THREAD_CREATED,
    notify_thread_activity,
)

from .models import Message, Thread

logger = logging.getLogger(__name__)


def _notify_on_commit(thread_id, event):
    transaction.on_commit(lambda: notify_thread_activity(thread_id, event))


@receiver(post_save, sender=Thread)
def thread_saved(sender, instance, created, **kwargs):
    if created:
        _notify_on_commit(instance.pk, EVENT_THREAD_CREATED)


@receiver(post_save, sender=Message)
def message_saved(sender, instance, created, **kwargs):
    event = EVENT_MESSAGE_CREATED if created else EVENT_MESSAGE_MODERATED
    _notify_on_commit(instance.thread_id, event)


@receiver(post_delete, sender=Message)
def message_deleted(sender, instance, **kwargs):
    _notify_on_commit(instance.thread_id, EVENT_MESSAGE_DELETED)
