import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import List, Optional

from django.conf import settings
from django.db.models import Count, Q
from django.utils import timezone

from taskhub.permissions import role_has_permission
from users.directory import display_names

from .models import LastVisibleMessage, Message, Thread, ThreadReadMarker
from .registry import ThreadRegistry

logger = logging.getLogger(__name__)


def truncate(content, length=None):
    length = length or getattr(settings, 'CONVERSATION_SNIPPET_LENGTH', 100)
    return content[:length] + '...' if len(content) > length else content


@dataclass
class Conversation:
    """One inbox entry: a thread as seen by a particular viewer."""

    thread: Thread
    title: str
    participants: List[dict] = field(default_factory=list)
    last_message: Optional[Message] = None
    unread_count: int = 0

    @property
    def last_message_snippet(self):
        if self.last_message is None:
            return None
        return truncate(self.last_message.content)

    @property
    def last_message_at(self):
        if self.last_message is None:
            return None
        return self.last_message.sent_at


class ConversationAggregator:
    """
    Builds the conversation list for a viewer and keeps the per-audience
    last-visible-message cache in step with appends, decisions and deletes.
    """

    def __init__(self, registry=None):
        self.registry = registry or ThreadRegistry()

    # Cache maintenance. Callers hold the thread row lock.

    def record_append(self, message):
        audiences = [
            LastVisibleMessage.AUDIENCE_MODERATOR,
            LastVisibleMessage.sender_audience(message.sender_id),
        ]
        if not message.requires_approval:
            audiences.append(LastVisibleMessage.AUDIENCE_PUBLIC)
        for audience in audiences:
            self._advance(message.thread_id, audience, message)

    def record_decision(self, message):
        # Rejected messages stay visible to the sender and moderators only
        if message.approval_status == Message.STATUS_APPROVED:
            self._advance(message.thread_id, LastVisibleMessage.AUDIENCE_PUBLIC, message)

    def audiences_showing(self, message_id):
        return list(
            LastVisibleMessage.objects.filter(message_id=message_id).values_list('audience', flat=True)
        )

    def record_delete(self, thread, audiences):
        """Recompute the cache rows that pointed at a deleted message."""
        for audience in audiences:
            latest = self._latest_for_audience(thread, audience)
            LastVisibleMessage.objects.filter(thread=thread, audience=audience).update(message=latest)
            logger.debug("Recomputed %s snippet for thread %s", audience, thread.pk)

    def _advance(self, thread_id, audience, message):
        row, created = LastVisibleMessage.objects.select_related('message').get_or_create(
            thread_id=thread_id, audience=audience, defaults={'message': message}
        )
        if created:
            return
        if row.message is None or message.sort_key() > row.message.sort_key():
            row.message = message
            row.save(update_fields=['message'])

    def _latest_for_audience(self, thread, audience):
        messages = thread.messages.latest_first()
        if audience == LastVisibleMessage.AUDIENCE_PUBLIC:
            messages = messages.publicly_visible()
        elif audience.startswith(LastVisibleMessage.SENDER_PREFIX):
            messages = messages.filter(sender_id=audience[len(LastVisibleMessage.SENDER_PREFIX):])
        return messages.first()

    # Read side

    def _audiences_for(self, actor, can_moderate):
        if can_moderate:
            return [LastVisibleMessage.AUDIENCE_MODERATOR]
        return [LastVisibleMessage.AUDIENCE_PUBLIC, LastVisibleMessage.sender_audience(actor.user_id)]

    @staticmethod
    def _pick_latest(cached):
        candidates = [message for message in cached.values() if message is not None]
        return max(candidates, key=lambda message: message.sort_key(), default=None)

    def last_visible_message(self, actor, thread):
        can_moderate = role_has_permission(actor.role, 'moderate')
        rows = LastVisibleMessage.objects.filter(
            thread=thread, audience__in=self._audiences_for(actor, can_moderate)
        ).select_related('message')
        return self._pick_latest({row.audience: row.message for row in rows})

    def list_conversations_for(self, actor):
        """Threads the actor takes part in, most recently active first."""
        threads = list(
            self.registry.threads_for(actor)
            .select_related('project')
            .prefetch_related('participants')
        )
        if not threads:
            return []

        can_moderate = role_has_permission(actor.role, 'moderate')

        cached = defaultdict(dict)
        rows = LastVisibleMessage.objects.filter(
            thread__in=threads,
            audience__in=self._audiences_for(actor, can_moderate),
            message__isnull=False,
        ).select_related('message')
        for row in rows:
            cached[row.thread_id][row.audience] = row.message

        read_markers = dict(
            ThreadReadMarker.objects.filter(thread__in=threads, user_id=actor.user_id)
            .values_list('thread_id', 'last_read_at')
        )
        unread = self.unread_counts(threads, actor, can_moderate, read_markers)
        names = display_names({p.user_id for thread in threads for p in thread.participants.all()})

        conversations = []
        for thread in threads:
            conversations.append(Conversation(
                thread=thread,
                title=self.title_for(thread, actor, names),
                participants=[
                    {'user_id': p.user_id, 'role': p.role, 'user_name': names[p.user_id]}
                    for p in thread.participants.all()
                ],
                last_message=self._pick_latest(cached[thread.pk]),
                unread_count=unread.get(thread.pk, 0),
            ))

        conversations.sort(key=lambda c: (c.thread.updated_at, c.thread.pk), reverse=True)
        return conversations

    def title_for(self, thread, actor, names):
        if thread.title:
            return thread.title
        others = [names[p.user_id] for p in thread.participants.all() if p.user_id != actor.user_id]
        return ", ".join(sorted(others)) or "Conversation"

    def unread_counts(self, threads, actor, can_moderate, read_markers):
        """
        Unread counts for several threads in one query, keyed by thread id.

        A message is unread when it was sent after the viewer's read marker or,
        for viewers who could not see it while it was pending, when it was
        approved after the marker.
        """
        pending = Q()
        for thread in threads:
            if thread.last_message_at is None:
                continue
            last_read_at = read_markers.get(thread.pk)
            if last_read_at is None:
                pending |= Q(thread_id=thread.pk)
                continue
            if last_read_at >= thread.last_activity_at:
                continue
            became_visible = Q(sent_at__gt=last_read_at)
            if not can_moderate:
                became_visible |= Q(
                    approval_status=Message.STATUS_APPROVED, moderated_at__gt=last_read_at
                )
            pending |= Q(thread_id=thread.pk) & became_visible

        if not pending:
            return {}

        rows = (
            Message.objects.filter(pending)
            .visible_to(actor.user_id, can_moderate)
            .exclude(sender_id=actor.user_id)
            .order_by()
            .values('thread_id')
            .annotate(unread=Count('id'))
        )
        return {row['thread_id']: row['unread'] for row in rows}

    def mark_read(self, actor, thread_id):
        thread = self.registry.get_thread(actor, thread_id)
        last_read_at = max(timezone.now(), thread.last_activity_at)
        marker, _ = ThreadReadMarker.objects.update_or_create(
            thread=thread,
            user_id=actor.user_id,
            defaults={'last_read_at': last_read_at},
        )
        logger.debug("User %s read thread %s up to %s", actor.user_id, thread.pk, marker.last_read_at)
        return marker

    def activity_since(self, actor, since):
        """
        Threads visible to the actor with activity after `since`: new messages,
        moderation decisions and deletes.
        """
        return list(
            self.registry.threads_for(actor)
            .filter(last_activity_at__gt=since)
            .order_by('-last_activity_at', '-id')
        )
