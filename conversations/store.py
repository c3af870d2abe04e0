import html
import logging

import bleach
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from .aggregator import ConversationAggregator
from .exceptions import AuthorizationError, NotFoundError, ValidationError
from .models import Message, Thread
from .moderation import ModerationEngine
from .registry import ThreadRegistry

logger = logging.getLogger(__name__)


def sanitize_content(content):
    """
    Strip every HTML tag and surrounding whitespace from message content.

    bleach escapes the text it keeps, so the result is unescaped again: messages
    are stored as plain text and escaped when rendered.
    """
    return html.unescape(bleach.clean(content, tags=[], attributes={}, strip=True)).strip()


class MessageStore:
    def __init__(self, registry=None, moderation=None, aggregator=None):
        self.registry = registry or ThreadRegistry()
        self.aggregator = aggregator or ConversationAggregator(self.registry)
        self.moderation = moderation or ModerationEngine(self.aggregator)

    def append_message(self, actor, thread_id, content):
        """
        Append a message to a thread the actor takes part in.

        Appends to one thread are serialized on the thread row, which keeps
        sent_at non-decreasing within the thread even if the clock steps back.
        """
        if not isinstance(content, str):
            raise ValidationError("Message content is required")

        content = sanitize_content(content)
        if not content:
            raise ValidationError("Message content cannot be empty")

        max_length = getattr(settings, 'MESSAGE_MAX_LENGTH', 5000)
        if len(content) > max_length:
            raise ValidationError(f"Message content cannot exceed {max_length} characters")

        with transaction.atomic():
            thread = Thread.objects.select_for_update().filter(pk=thread_id).first()
            if thread is None:
                raise NotFoundError(f"Thread {thread_id} not found")
            if not self.registry.can_post(actor, thread):
                raise AuthorizationError("You are not a participant of this thread")

            requires_approval = self.moderation.requires_approval(thread, actor.role, actor.user_id)

            sent_at = timezone.now()
            if thread.last_message_at and sent_at < thread.last_message_at:
                sent_at = thread.last_message_at

            message = Message.objects.create(
                thread=thread,
                sender_id=actor.user_id,
                content=content,
                sent_at=sent_at,
                requires_approval=requires_approval,
                approval_status=Message.STATUS_PENDING if requires_approval else None,
            )

            thread.last_message_at = sent_at
            thread.updated_at = sent_at
            thread.mark_activity(sent_at)
            thread.save(update_fields=['last_message_at', 'updated_at', 'last_activity_at'])

            self.aggregator.record_append(message)

        logger.info(
            "Message %s appended to thread %s by %s%s",
            message.pk, thread.pk, actor.user_id,
            " (pending approval)" if requires_approval else "",
        )
        return message

    def clamp_limit(self, limit=None):
        if limit in (None, ""):
            return getattr(settings, 'MESSAGE_PAGE_SIZE', 50)
        try:
            limit = int(limit)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid limit: {limit}")
        return max(1, min(limit, getattr(settings, 'MESSAGE_PAGE_MAX', 200)))

    def list_messages(self, actor, thread_id, limit=None):
        """The most recent `limit` messages visible to the actor, oldest first."""
        thread = self.registry.get_thread(actor, thread_id)
        limit = self.clamp_limit(limit)

        recent = thread.messages.visible_to(
            actor.user_id, self.moderation.has_authority(actor, thread)
        ).latest_first()[:limit]
        return list(recent)[::-1]
