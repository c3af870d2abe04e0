from datetime import timedelta

from django.test import TestCase, override_settings
from django.utils import timezone

from conversations.aggregator import truncate
from conversations.models import Message, Thread, ThreadReadMarker

from .fixtures import MessagingFixtures


class TruncateTest(TestCase):
    @override_settings(CONVERSATION_SNIPPET_LENGTH=5)
    def test_long_content_is_truncated(self):
        self.assertEqual(truncate("abcdefgh"), "abcde...")
        self.assertEqual(truncate("abc"), "abc")


class ConversationListTest(MessagingFixtures, TestCase):
    def setUp(self):
        super().setUp()
        self.caf = self.project_thread(Thread.TYPE_CLIENT_ADMIN_FREELANCER)

    def conversation_for(self, actor, thread):
        return next(c for c in self.aggregator.list_conversations_for(actor) if c.thread.pk == thread.pk)

    def test_pending_content_never_leaks_into_snippet(self):
        approved = self.store.append_message(self.admin, self.caf.pk, "Welcome aboard")
        pending = self.store.append_message(self.freelancer, self.caf.pk, "Secret draft")

        self.assertEqual(self.conversation_for(self.client_actor, self.caf).last_message, approved)
        self.assertEqual(self.conversation_for(self.freelancer, self.caf).last_message, pending)
        self.assertEqual(self.conversation_for(self.admin, self.caf).last_message, pending)

    def test_snippet_follows_approval(self):
        pending = self.store.append_message(self.freelancer, self.caf.pk, "Please review")
        self.assertIsNone(self.conversation_for(self.client_actor, self.caf).last_message)

        self.moderation.decide(self.admin, pending.pk, Message.STATUS_APPROVED)

        conversation = self.conversation_for(self.client_actor, self.caf)
        self.assertEqual(conversation.last_message, pending)
        self.assertEqual(conversation.last_message_snippet, "Please review")

    def test_rejection_leaves_public_snippet(self):
        visible = self.store.append_message(self.admin, self.caf.pk, "Status update")
        pending = self.store.append_message(self.freelancer, self.caf.pk, "Rude remark")

        self.moderation.decide(self.admin, pending.pk, Message.STATUS_REJECTED)

        self.assertEqual(self.conversation_for(self.client_actor, self.caf).last_message, visible)
        self.assertEqual(self.conversation_for(self.freelancer, self.caf).last_message, pending)

    def test_conversations_ordered_by_activity(self):
        admin_client = self.project_thread(Thread.TYPE_ADMIN_CLIENT)
        self.store.append_message(self.admin, self.caf.pk, "Older")
        self.store.append_message(self.admin, admin_client.pk, "Newer")

        conversations = self.aggregator.list_conversations_for(self.client_actor)

        self.assertEqual([c.thread.pk for c in conversations], [admin_client.pk, self.caf.pk])

    def test_direct_thread_title_names_other_participants(self):
        thread = self.direct_thread(self.client_actor, self.admin)

        conversation = self.conversation_for(self.client_actor, thread)

        self.assertEqual(conversation.title, "Ada Admin")
        self.assertEqual(
            {p["user_id"] for p in conversation.participants}, {"admin-1", "client-1"}
        )

    def test_no_threads(self):
        self.assertEqual(self.aggregator.list_conversations_for(self.outsider), [])


class UnreadCountTest(MessagingFixtures, TestCase):
    def setUp(self):
        super().setUp()
        self.thread = self.project_thread(Thread.TYPE_ADMIN_CLIENT)

    def unread(self, actor):
        conversation = next(
            c for c in self.aggregator.list_conversations_for(actor) if c.thread.pk == self.thread.pk
        )
        return conversation.unread_count

    def test_messages_from_others_are_unread(self):
        self.store.append_message(self.admin, self.thread.pk, "One")
        self.store.append_message(self.admin, self.thread.pk, "Two")
        self.store.append_message(self.client_actor, self.thread.pk, "Mine")

        self.assertEqual(self.unread(self.client_actor), 2)
        self.assertEqual(self.unread(self.admin), 1)

    def test_mark_read_clears_unread(self):
        self.store.append_message(self.admin, self.thread.pk, "One")

        marker = self.aggregator.mark_read(self.client_actor, self.thread.pk)

        self.assertEqual(self.unread(self.client_actor), 0)
        self.assertEqual(ThreadReadMarker.objects.get(user_id="client-1").pk, marker.pk)

        self.store.append_message(self.admin, self.thread.pk, "Two")
        self.assertEqual(self.unread(self.client_actor), 1)

    def test_pending_messages_are_not_counted_for_counterpart(self):
        caf = self.project_thread(Thread.TYPE_CLIENT_ADMIN_FREELANCER)
        self.store.append_message(self.freelancer, caf.pk, "Awaiting approval")

        conversation = next(
            c for c in self.aggregator.list_conversations_for(self.client_actor) if c.thread.pk == caf.pk
        )
        self.assertEqual(conversation.unread_count, 0)

    def test_message_approved_after_mark_read_is_unread(self):
        caf = self.project_thread(Thread.TYPE_CLIENT_ADMIN_FREELANCER)
        pending = self.store.append_message(self.freelancer, caf.pk, "Can we extend the deadline?")
        self.aggregator.mark_read(self.client_actor, caf.pk)

        self.moderation.decide(self.admin, pending.pk, Message.STATUS_APPROVED)

        conversation = next(
            c for c in self.aggregator.list_conversations_for(self.client_actor) if c.thread.pk == caf.pk
        )
        self.assertEqual(conversation.last_message_snippet, "Can we extend the deadline?")
        self.assertEqual(conversation.unread_count, 1)

    def test_approval_does_not_count_again_for_moderators(self):
        caf = self.project_thread(Thread.TYPE_CLIENT_ADMIN_FREELANCER)
        pending = self.store.append_message(self.freelancer, caf.pk, "Seen while pending")
        self.aggregator.mark_read(self.admin, caf.pk)

        self.moderation.decide(self.admin, pending.pk, Message.STATUS_APPROVED)

        conversation = next(
            c for c in self.aggregator.list_conversations_for(self.admin) if c.thread.pk == caf.pk
        )
        self.assertEqual(conversation.unread_count, 0)

    def test_counts_for_many_threads_use_one_query(self):
        caf = self.project_thread(Thread.TYPE_CLIENT_ADMIN_FREELANCER)
        self.store.append_message(self.admin, self.thread.pk, "One")
        self.store.append_message(self.admin, caf.pk, "Two")
        self.store.append_message(self.admin, caf.pk, "Three")
        threads = list(Thread.objects.filter(pk__in=[self.thread.pk, caf.pk]))

        with self.assertNumQueries(1):
            counts = self.aggregator.unread_counts(threads, self.client_actor, False, {})

        self.assertEqual(counts, {self.thread.pk: 1, caf.pk: 2})


class ActivitySinceTest(MessagingFixtures, TestCase):
    def test_only_changed_threads_are_returned(self):
        quiet = self.project_thread(Thread.TYPE_ADMIN_CLIENT)
        busy = self.project_thread(Thread.TYPE_CLIENT_ADMIN_FREELANCER)
        hour_ago = timezone.now() - timedelta(hours=1)
        Thread.objects.filter(pk=quiet.pk).update(updated_at=hour_ago, last_activity_at=hour_ago)
        since = timezone.now() - timedelta(minutes=1)

        self.store.append_message(self.admin, busy.pk, "Ping")

        threads = self.aggregator.activity_since(self.client_actor, since)

        self.assertEqual([t.pk for t in threads], [busy.pk])

    def test_moderation_is_reported_as_activity(self):
        caf = self.project_thread(Thread.TYPE_CLIENT_ADMIN_FREELANCER)
        pending = self.store.append_message(self.freelancer, caf.pk, "Needs a look")
        since = timezone.now()

        self.moderation.decide(self.admin, pending.pk, Message.STATUS_APPROVED)

        self.assertEqual([t.pk for t in self.aggregator.activity_since(self.client_actor, since)], [caf.pk])

    def test_delete_is_reported_as_activity(self):
        thread = self.project_thread(Thread.TYPE_ADMIN_CLIENT)
        message = self.store.append_message(self.admin, thread.pk, "Wrong thread")
        since = timezone.now()

        self.moderation.delete_message(self.admin, message.pk)

        self.assertEqual([t.pk for t in self.aggregator.activity_since(self.client_actor, since)], [thread.pk])

    def test_rejection_is_reported_as_activity(self):
        caf = self.project_thread(Thread.TYPE_CLIENT_ADMIN_FREELANCER)
        pending = self.store.append_message(self.client_actor, caf.pk, "Off-topic")
        since = timezone.now()

        self.moderation.decide(self.admin, pending.pk, Message.STATUS_REJECTED)

        self.assertEqual([t.pk for t in self.aggregator.activity_since(self.freelancer, since)], [caf.pk])
