from django.test import TestCase

from conversations.exceptions import AuthorizationError, NotFoundError, StateError, ValidationError
from conversations.models import LastVisibleMessage, Message, Thread

from .fixtures import MessagingFixtures


class ApprovalRuleTest(MessagingFixtures, TestCase):
    def test_project_thread_rules(self):
        caf = self.project_thread(Thread.TYPE_CLIENT_ADMIN_FREELANCER)
        admin_client = self.project_thread(Thread.TYPE_ADMIN_CLIENT)
        admin_freelancer = self.project_thread(Thread.TYPE_ADMIN_FREELANCER)

        self.assertTrue(self.moderation.requires_approval(caf, "freelancer", "free-1"))
        self.assertTrue(self.moderation.requires_approval(caf, "client", "client-1"))
        self.assertFalse(self.moderation.requires_approval(caf, "admin", "admin-1"))
        self.assertFalse(self.moderation.requires_approval(admin_client, "client", "client-1"))
        self.assertFalse(self.moderation.requires_approval(admin_freelancer, "freelancer", "free-1"))

    def test_direct_thread_rules(self):
        client_freelancer = self.direct_thread(self.client_actor, self.freelancer)
        client_admin = self.direct_thread(self.client_actor, self.admin)
        group = self.direct_thread(self.admin, self.client_actor, self.freelancer)

        self.assertTrue(self.moderation.requires_approval(client_freelancer, "client", "client-1"))
        self.assertTrue(self.moderation.requires_approval(client_freelancer, "freelancer", "free-1"))
        self.assertFalse(self.moderation.requires_approval(client_admin, "client", "client-1"))
        self.assertTrue(self.moderation.requires_approval(group, "client", "client-1"))
        self.assertFalse(self.moderation.requires_approval(group, "admin", "admin-1"))


class DecideTest(MessagingFixtures, TestCase):
    def setUp(self):
        super().setUp()
        self.caf = self.project_thread(Thread.TYPE_CLIENT_ADMIN_FREELANCER)
        self.pending = self.store.append_message(self.freelancer, self.caf.pk, "Milestone one is done")

    def test_approve_makes_message_visible(self):
        message = self.moderation.decide(self.admin, self.pending.pk, Message.STATUS_APPROVED)

        self.assertEqual(message.approval_status, Message.STATUS_APPROVED)
        self.assertEqual(message.moderated_by, "admin-1")
        self.assertIsNotNone(message.moderated_at)
        self.assertIn(message, self.store.list_messages(self.client_actor, self.caf.pk))

    def test_decision_is_one_shot(self):
        self.moderation.decide(self.admin, self.pending.pk, Message.STATUS_REJECTED)

        with self.assertRaises(StateError):
            self.moderation.decide(self.admin, self.pending.pk, Message.STATUS_APPROVED)

        self.pending.refresh_from_db()
        self.assertEqual(self.pending.approval_status, Message.STATUS_REJECTED)

    def test_unmoderated_message_cannot_be_decided(self):
        message = self.store.append_message(self.admin, self.caf.pk, "Welcome")

        with self.assertRaises(StateError):
            self.moderation.decide(self.admin, message.pk, Message.STATUS_APPROVED)

    def test_invalid_decision(self):
        with self.assertRaises(ValidationError):
            self.moderation.decide(self.admin, self.pending.pk, "maybe")

    def test_unknown_message(self):
        with self.assertRaises(NotFoundError):
            self.moderation.decide(self.admin, 123456, Message.STATUS_APPROVED)

    def test_non_admin_cannot_decide(self):
        with self.assertRaises(AuthorizationError):
            self.moderation.decide(self.client_actor, self.pending.pk, Message.STATUS_APPROVED)

        self.pending.refresh_from_db()
        self.assertTrue(self.pending.is_pending)

    def test_approval_advances_public_snippet(self):
        self.moderation.decide(self.admin, self.pending.pk, Message.STATUS_APPROVED)

        row = LastVisibleMessage.objects.get(thread=self.caf, audience=LastVisibleMessage.AUDIENCE_PUBLIC)
        self.assertEqual(row.message_id, self.pending.pk)

    def test_pending_queue(self):
        admin_client = self.project_thread(Thread.TYPE_ADMIN_CLIENT)
        self.store.append_message(self.client_actor, admin_client.pk, "Not moderated")
        second = self.store.append_message(self.client_actor, self.caf.pk, "Also pending")

        queue = list(self.moderation.pending_messages(self.admin))

        self.assertEqual([m.pk for m in queue], [self.pending.pk, second.pk])
        self.assertEqual(list(self.moderation.pending_messages(self.admin, project_id=9999)), [])

    def test_pending_queue_requires_moderator(self):
        with self.assertRaises(AuthorizationError):
            self.moderation.pending_messages(self.freelancer)


class DeleteMessageTest(MessagingFixtures, TestCase):
    def setUp(self):
        super().setUp()
        self.thread = self.project_thread(Thread.TYPE_ADMIN_CLIENT)
        self.first = self.store.append_message(self.client_actor, self.thread.pk, "First")
        self.second = self.store.append_message(self.admin, self.thread.pk, "Second")

    def test_delete_is_idempotent(self):
        self.moderation.delete_message(self.admin, self.second.pk)
        self.moderation.delete_message(self.admin, self.second.pk)

        self.assertFalse(Message.objects.filter(pk=self.second.pk).exists())

    def test_delete_recomputes_snippets(self):
        self.moderation.delete_message(self.admin, self.second.pk)

        rows = dict(
            LastVisibleMessage.objects.filter(thread=self.thread).values_list("audience", "message_id")
        )
        self.assertEqual(rows[LastVisibleMessage.AUDIENCE_PUBLIC], self.first.pk)
        self.assertEqual(rows[LastVisibleMessage.AUDIENCE_MODERATOR], self.first.pk)
        self.assertIsNone(rows[LastVisibleMessage.sender_audience("admin-1")])
        self.assertEqual(rows[LastVisibleMessage.sender_audience("client-1")], self.first.pk)

    def test_non_admin_cannot_delete(self):
        with self.assertRaises(AuthorizationError):
            self.moderation.delete_message(self.client_actor, self.first.pk)

        self.assertTrue(Message.objects.filter(pk=self.first.pk).exists())
