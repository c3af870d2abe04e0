"""
Publishes "thread X has new activity" events to connected WebSocket clients.

Content is never pushed. Clients refetch through the REST API so the usual
visibility rules apply to what they see.
"""

import logging
import re
import uuid

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

from conversations.models import Thread
from users.models import User

logger = logging.getLogger(__name__)

EVENT_MESSAGE_CREATED = "message_created"
EVENT_MESSAGE_MODERATED = "message_moderated"
EVENT_MESSAGE_DELETED = "message_deleted"
EVENT_THREAD_CREATED = "thread_created"
EVENTS = [
    EVENT_MESSAGE_CREATED,
    EVENT_MESSAGE_MODERATED,
    EVENT_MESSAGE_DELETED,
    EVENT_THREAD_CREATED,
]

MODERATORS_GROUP = "moderators"

_GROUP_UNSAFE = re.compile(r"[^0-9A-Za-z_.\-]")


def thread_group_name(thread_id):
    return f"thread_{thread_id}"


def user_group_name(user_id):
    # Channel layer group names only allow ASCII alphanumerics, hyphens, underscores and periods
    return f"user_{_GROUP_UNSAFE.sub('_', str(user_id))}"[:100]


def thread_member_ids(thread):
    """Ids of the non-admin users taking part in a thread."""
    member_ids = {p.user_id for p in thread.participants.all()}
    if thread.is_project_thread and thread.project is not None:
        roles = thread.topology_roles
        if User.ROLE_CLIENT in roles:
            member_ids.add(thread.project.client_id)
        if User.ROLE_FREELANCER in roles:
            member_ids.update(thread.project.freelancer_ids())
    return member_ids


def notify_thread_activity(thread_id, event):
    """
    Send a thread_activity event to the thread's subscribers, its members and
    the moderators.
    """
    channel_layer = get_channel_layer()
    if channel_layer is None:
        logger.debug("No channel layer configured; skipping %s for thread %s", event, thread_id)
        return

    groups = {thread_group_name(thread_id), MODERATORS_GROUP}
    thread = Thread.objects.select_related('project').prefetch_related('participants').filter(
        pk=thread_id
    ).first()
    if thread is not None:
        groups.update(user_group_name(user_id) for user_id in thread_member_ids(thread))

    payload = {
        'type': 'thread.activity',
        'event_id': uuid.uuid4().hex,
        'thread_id': thread_id,
        'event': event,
    }

    for group in sorted(groups):
        try:
            async_to_sync(channel_layer.group_send)(group, payload)
        except Exception:
            # The write already committed; a lost push is recovered by the activity poll
            logger.exception("Failed to publish %s for thread %s to %s", event, thread_id, group)

    logger.debug("Published %s for thread %s to %d groups", event, thread_id, len(groups))
