import asyncio

from django.test import SimpleTestCase

from messaging_client.errors import AuthorizationError, StateError, ValidationError
from messaging_client.surfaces import InboxSurface, ProjectSurface

from .fakes import FakeApi, transport_error


class InboxSurfaceTest(SimpleTestCase):
    def setUp(self):
        self.api = FakeApi()
        self.api.add_thread(1, messages=[{"id": 10, "content": "hi", "sent_at": "2026-01-01T00:00:00Z"}])
        self.inbox = InboxSurface(self.api, user_id="client-1", retry_delay=0)

    async def test_send_success_replaces_provisional(self):
        await self.inbox.open_thread(1)
        self.inbox.set_draft(1, "Hello there")

        result = await self.inbox.send(1)

        state = self.inbox.thread(1)
        self.assertTrue(result.ok)
        self.assertEqual(state.draft, "")
        self.assertEqual(state.provisional, [])
        self.assertEqual([m["content"] for m in state.visible_messages], ["hi", "Hello there"])
        self.assertIn(("list_conversations",), self.api.calls)

    async def test_failed_send_rolls_back_and_keeps_draft(self):
        await self.inbox.open_thread(1)
        self.api.fail("send_message", transport_error())

        result = await self.inbox.send(1, "Are you there?")

        state = self.inbox.thread(1)
        self.assertFalse(result.ok)
        self.assertEqual(result.error_kind, "transport")
        self.assertEqual(state.provisional, [])
        self.assertEqual(state.draft, "Are you there?")
        self.assertFalse(state.sending)
        # Sends are never retried
        self.assertEqual(len([c for c in self.api.calls if c[0] == "send_message"]), 1)

    async def test_empty_send_is_rejected_locally(self):
        result = await self.inbox.send(1, "   ")

        self.assertFalse(result.ok)
        self.assertIsInstance(result.error, ValidationError)
        self.assertNotIn("send_message", [c[0] for c in self.api.calls])

    async def test_reads_retry_transport_errors(self):
        self.api.fail("list_messages", transport_error(), transport_error())

        result = await self.inbox.open_thread(1)

        self.assertTrue(result.ok)
        self.assertEqual(len([c for c in self.api.calls if c[0] == "list_messages"]), 3)

    async def test_reads_give_up_after_retries(self):
        self.api.fail("list_conversations", *[transport_error() for _ in range(3)])

        result = await self.inbox.refresh()

        self.assertFalse(result.ok)
        self.assertEqual(result.error_kind, "transport")
        self.assertIsNotNone(self.inbox.conversations_error)

    async def test_moderation_always_refetches(self):
        await self.inbox.open_thread(1)
        self.api.calls.clear()
        self.api.fail("decide", StateError("Message 10 is not pending approval"))

        result = await self.inbox.approve(1, 10)

        self.assertFalse(result.ok)
        self.assertEqual(result.error_kind, "state")
        names = [c[0] for c in self.api.calls]
        self.assertIn("list_messages", names)
        self.assertIn("list_conversations", names)

    async def test_delete_refetches(self):
        await self.inbox.open_thread(1)

        result = await self.inbox.delete(1, 10)

        self.assertTrue(result.ok)
        self.assertIn(("delete_message", 10), self.api.calls)

    async def test_poll_refetches_changed_open_threads(self):
        await self.inbox.open_thread(1)
        self.api.add_thread(2)
        await self.inbox.open_thread(2)
        self.api.messages[1].append({"id": 11, "content": "approved later", "sent_at": "2026-01-02T00:00:00Z"})
        self.api.activity = [1]
        self.api.calls.clear()

        result = await self.inbox.poll_activity("2026-01-01T12:00:00Z")

        self.assertTrue(result.ok)
        self.assertEqual(result.value, [1])
        self.assertEqual([m["id"] for m in self.inbox.thread(1).messages], [10, 11])
        self.assertIn(("list_messages", 1), self.api.calls)
        self.assertNotIn(("list_messages", 2), self.api.calls)
        self.assertIn(("list_conversations",), self.api.calls)
        self.assertEqual(self.inbox.last_polled_at, self.api.server_time)

    async def test_next_poll_starts_from_server_time(self):
        await self.inbox.poll_activity("2026-01-01T12:00:00Z")
        self.api.server_time = "2026-01-01T13:00:00Z"
        await self.inbox.poll_activity()

        polls = [c for c in self.api.calls if c[0] == "activity_since"]
        self.assertEqual(polls[1], ("activity_since", "2026-01-01T00:00:00Z"))
        self.assertEqual(self.inbox.last_polled_at, "2026-01-01T13:00:00Z")

    async def test_quiet_poll_fetches_nothing_else(self):
        await self.inbox.poll_activity("2026-01-01T12:00:00Z")

        self.assertEqual([c[0] for c in self.api.calls], ["activity_since"])

    async def test_moderation_queue(self):
        self.api.pending = [{"id": 7, "content": "Awaiting approval"}]

        result = await self.inbox.refresh_pending()

        self.assertTrue(result.ok)
        self.assertEqual(self.inbox.pending, [{"id": 7, "content": "Awaiting approval"}])

    async def test_moderation_queue_failure(self):
        self.api.fail("pending_messages", AuthorizationError("Only admins can view the moderation queue"))

        result = await self.inbox.refresh_pending()

        self.assertEqual(result.error_kind, "authorization")
        self.assertEqual(self.inbox.pending, [])

    async def test_start_direct_chat(self):
        result = await self.inbox.start_direct_chat(["admin-1"])

        self.assertTrue(result.ok)
        self.assertEqual(result.value.thread_type, "direct")
        self.assertIn(result.value.thread_id, self.inbox.open_threads)

    async def test_start_direct_chat_denied(self):
        self.api.fail("resolve_thread", AuthorizationError("nope"))

        result = await self.inbox.start_direct_chat(["admin-1"])

        self.assertFalse(result.ok)
        self.assertEqual(result.error_kind, "authorization")


class ProjectSurfaceTest(SimpleTestCase):
    def setUp(self):
        self.api = FakeApi()
        caf = self.api.add_thread(5, "project_client_admin_freelancer",
                                  messages=[{"id": 50, "content": "kickoff", "sent_at": "2026-01-01T00:00:00Z"}])
        caf["project_id"] = 9
        self.api.projects[9] = {
            "project_id": 9,
            "project_title": "Website",
            "threads": {
                "project_client_admin_freelancer": caf,
                "project_admin_client": None,
            },
        }
        self.surface = ProjectSurface(self.api, 9, user_id="client-1", retry_delay=0)

    async def test_load_builds_independent_states(self):
        result = await self.surface.load()

        self.assertTrue(result.ok)
        self.assertEqual(self.surface.project_title, "Website")
        caf = self.surface.threads["project_client_admin_freelancer"]
        admin_client = self.surface.threads["project_admin_client"]
        self.assertEqual([m["id"] for m in caf.messages], [50])
        self.assertIsNone(admin_client.thread_id)
        self.assertEqual(admin_client.messages, [])

    async def test_slow_thread_does_not_block_another(self):
        await self.surface.load()
        self.api.add_thread(6, "project_admin_client")
        admin_client = self.surface.threads["project_admin_client"]
        admin_client.thread_id = 6
        caf = self.surface.threads["project_client_admin_freelancer"]

        self.api.delays["list_messages"] = 0.05
        slow = asyncio.ensure_future(self.surface.refresh_thread(caf))
        await asyncio.sleep(0)
        admin_client.draft = "typing while the other thread loads"

        self.assertTrue(caf.loading)
        self.assertFalse(admin_client.loading)
        await slow
        self.assertFalse(caf.loading)

    async def test_send_into_missing_thread_resolves_it_first(self):
        await self.surface.load()

        result = await self.surface.send("project_admin_client", "First message")

        state = self.surface.threads["project_admin_client"]
        self.assertTrue(result.ok)
        self.assertIsNotNone(state.thread_id)
        names = [c[0] for c in self.api.calls]
        self.assertLess(names.index("resolve_thread"), names.index("send_message"))
        self.assertEqual([m["content"] for m in state.visible_messages], ["First message"])

    async def test_failed_resolution_keeps_draft(self):
        await self.surface.load()
        self.api.fail("resolve_thread", transport_error())

        result = await self.surface.send("project_admin_client", "Hello admin")

        self.assertFalse(result.ok)
        self.assertEqual(self.surface.threads["project_admin_client"].draft, "Hello admin")

    async def test_project_queue_is_scoped_to_the_project(self):
        await self.surface.refresh_pending()

        self.assertIn(("pending_messages", 9), self.api.calls)

    async def test_unavailable_thread_type(self):
        await self.surface.load()

        result = await self.surface.send("project_admin_freelancer", "Hi")

        self.assertFalse(result.ok)
        self.assertEqual(result.error_kind, "validation")

    async def test_stale_refresh_does_not_overwrite_newer_one(self):
        await self.surface.load()
        caf = self.surface.threads["project_client_admin_freelancer"]

        self.api.delays["list_messages"] = 0.05
        older = asyncio.ensure_future(self.surface.refresh_thread(caf))
        await asyncio.sleep(0.01)
        self.api.delays["list_messages"] = 0
        self.api.messages[5].append({"id": 51, "content": "newer", "sent_at": "2026-01-02T00:00:00Z"})
        await self.surface.refresh_thread(caf)
        self.api.messages[5].pop()
        await older

        self.assertEqual([m["id"] for m in caf.messages], [50, 51])
