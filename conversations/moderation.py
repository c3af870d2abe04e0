import logging

from django.db import transaction

from taskhub.permissions import COUNTERPART_ROLES, role_has_permission

from .aggregator import ConversationAggregator
from .exceptions import AuthorizationError, NotFoundError, StateError, ValidationError
from .models import Message, Thread

logger = logging.getLogger(__name__)


class ModerationEngine:
    """
    Decides which messages need admin approval and applies approve, reject and
    delete actions.

    A sender whose role bypasses moderation never needs approval. Any other
    sender needs it when the counterpart role (client for a freelancer and the
    reverse) is among the thread's recipient roles.
    """

    def __init__(self, aggregator=None):
        self.aggregator = aggregator or ConversationAggregator()

    def recipient_roles(self, thread, sender_id=None):
        if thread.is_project_thread:
            return set(thread.topology_roles)
        return {p.role for p in thread.participants.all() if p.user_id != sender_id}

    def requires_approval(self, thread, sender_role, sender_id=None):
        if role_has_permission(sender_role, 'bypass_moderation'):
            return False
        counterpart = COUNTERPART_ROLES.get(sender_role)
        if counterpart is None:
            return False
        return counterpart in self.recipient_roles(thread, sender_id)

    def has_authority(self, actor, thread=None):
        return role_has_permission(actor.role, 'moderate')

    def decide(self, actor, message_id, decision):
        """Approve or reject a pending message. The first decision is final."""
        if decision not in Message.DECISIONS:
            raise ValidationError(f"Invalid decision: {decision}")
        if not self.has_authority(actor):
            raise AuthorizationError("Only admins can moderate messages")

        with transaction.atomic():
            thread_id = Message.objects.filter(pk=message_id).values_list('thread_id', flat=True).first()
            if thread_id is None:
                raise NotFoundError(f"Message {message_id} not found")

            thread = Thread.objects.select_for_update().filter(pk=thread_id).first()
            message = Message.objects.select_for_update().filter(pk=message_id).first()
            if thread is None or message is None:
                raise NotFoundError(f"Message {message_id} not found")

            if message.approval_status != Message.STATUS_PENDING:
                raise StateError(
                    f"Message {message_id} is not pending approval "
                    f"(status: {message.approval_status or 'not moderated'})"
                )

            message.approval_status = decision
            message.moderated_by = actor.user_id
            message.moderated_at = thread.mark_activity()
            message.save(update_fields=['approval_status', 'moderated_by', 'moderated_at'])
            thread.save(update_fields=['last_activity_at'])
            self.aggregator.record_decision(message)

        logger.info("Message %s %s by %s", message.pk, decision, actor.user_id)
        return message

    def delete_message(self, actor, message_id):
        """Delete a message. Deleting a message that no longer exists is a no-op."""
        if not role_has_permission(actor.role, 'delete'):
            raise AuthorizationError("Only admins can delete messages")

        with transaction.atomic():
            thread_id = Message.objects.filter(pk=message_id).values_list('thread_id', flat=True).first()
            if thread_id is None:
                logger.debug("Message %s already deleted", message_id)
                return

            thread = Thread.objects.select_for_update().filter(pk=thread_id).first()
            message = Message.objects.filter(pk=message_id).first()
            if thread is None or message is None:
                return

            audiences = self.aggregator.audiences_showing(message.pk)
            message.delete()
            thread.mark_activity()
            thread.save(update_fields=['last_activity_at'])
            self.aggregator.record_delete(thread, audiences)

        logger.info("Message %s deleted from thread %s by %s", message_id, thread_id, actor.user_id)

    def pending_messages(self, actor, project_id=None):
        """Messages awaiting a decision, oldest first."""
        if not self.has_authority(actor):
            raise AuthorizationError("Only admins can view the moderation queue")

        messages = Message.objects.filter(approval_status=Message.STATUS_PENDING).select_related(
            'thread', 'thread__project'
        )
        if project_id is not None:
            messages = messages.filter(thread__project_id=project_id)
        return messages.order_by('sent_at', 'id')
