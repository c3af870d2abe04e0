import asyncio
import logging
from datetime import datetime, timezone

from .errors import ClientError, TransportError, ValidationError
from .state import OperationResult, ThreadState

logger = logging.getLogger(__name__)

DECISION_APPROVE = "approved"
DECISION_REJECT = "rejected"


class MessagingSurface:
    """
    Reconciliation shared by the inbox and project views.

    Only the user's own sends are shown optimistically. Moderation actions
    always refetch the thread and the conversation list, including after a
    StateError, since they change what other users can see.
    """

    def __init__(self, api, user_id=None, read_retries=2, retry_delay=0.2):
        self.api = api
        self.user_id = user_id
        self.read_retries = read_retries
        self.retry_delay = retry_delay
        self.conversations = []
        self.conversations_loading = False
        self.conversations_error = None
        self._conversations_generation = 0
        self.last_polled_at = None
        self.pending = []
        self.pending_error = None

    async def _read(self, call, *args):
        """Run an idempotent read, retrying transport failures."""
        attempt = 0
        while True:
            try:
                return await call(*args)
            except TransportError as e:
                if attempt >= self.read_retries:
                    raise
                attempt += 1
                logger.info("Retrying read after transport error (%d/%d): %s", attempt, self.read_retries, e)
                await asyncio.sleep(self.retry_delay * attempt)

    async def refresh_conversations(self):
        self._conversations_generation += 1
        generation = self._conversations_generation
        self.conversations_loading = True

        try:
            conversations = await self._read(self.api.list_conversations)
        except ClientError as e:
            if generation == self._conversations_generation:
                self.conversations_loading = False
                self.conversations_error = e
            return OperationResult.failure(e)

        if generation == self._conversations_generation:
            self.conversations = conversations
            self.conversations_loading = False
            self.conversations_error = None
        else:
            logger.debug("Discarded stale conversation list")
        return OperationResult.success(self.conversations)

    async def refresh_thread(self, state):
        if state.thread_id is None:
            return OperationResult.success(state.visible_messages)

        generation = state.begin_refresh()
        try:
            messages = await self._read(self.api.list_messages, state.thread_id)
        except ClientError as e:
            state.fail_refresh(generation, e)
            return OperationResult.failure(e)

        if not state.apply_refresh(generation, messages):
            logger.debug("Discarded stale refresh for thread %s", state.thread_id)
        return OperationResult.success(state.visible_messages)

    def tracked_threads(self):
        """Thread states this surface keeps loaded."""
        return []

    async def poll_activity(self, since=None):
        """
        Ask the server which threads changed and refetch the loaded ones.

        `since` defaults to the server time returned by the previous poll, so a
        push missed over the WebSocket is picked up on the next poll. Without
        either, polling starts from the local clock.
        """
        since = since or self.last_polled_at
        if since is None:
            since = datetime.now(timezone.utc).isoformat()

        try:
            activity = await self._read(self.api.activity_since, since)
        except ClientError as e:
            return OperationResult.failure(e)

        self.last_polled_at = activity.get("server_time") or since
        changed = {entry["thread_id"] for entry in activity["threads"]}
        if changed:
            states = [state for state in self.tracked_threads() if state.thread_id in changed]
            await asyncio.gather(
                self.refresh_conversations(),
                *(self.refresh_thread(state) for state in states),
            )
        return OperationResult.success(sorted(changed))

    async def refresh_pending(self, project_id=None):
        """Reload the moderation queue."""
        try:
            self.pending = await self._read(self.api.pending_messages, project_id)
        except ClientError as e:
            self.pending_error = e
            return OperationResult.failure(e)
        self.pending_error = None
        return OperationResult.success(self.pending)

    async def send_in(self, state, content=None):
        """
        Send a message into a resolved thread.

        The message is shown as provisional right away. On failure it is
        removed and the text is kept as the draft. Sends are never retried.
        """
        text = state.draft if content is None else content
        if not text or not text.strip():
            error = ValidationError("Message content cannot be empty")
            state.last_error = error
            return OperationResult.failure(error)

        provisional = state.add_provisional(text, self.user_id)
        try:
            message = await self.api.send_message(state.thread_id, text)
        except ClientError as e:
            logger.info("Send to thread %s failed: %s", state.thread_id, e)
            state.discard_provisional(provisional["id"])
            state.draft = text
            state.last_error = e
            return OperationResult.failure(e)

        state.acknowledge(provisional["id"], message)
        if state.draft == text:
            state.draft = ""
        state.last_error = None

        await self.refresh_thread(state)
        return OperationResult.success(message)

    async def moderate_in(self, state, message_id, decision):
        """Approve, reject or delete a message, then refetch."""
        value = None
        error = None
        try:
            if decision is None:
                await self.api.delete_message(message_id)
            else:
                value = await self.api.decide(message_id, decision)
        except ClientError as e:
            logger.info("Moderation of message %s failed: %s", message_id, e)
            error = e

        await asyncio.gather(self.refresh_thread(state), self.refresh_conversations())

        if error is not None:
            state.last_error = error
            return OperationResult.failure(error)
        return OperationResult.success(value)


class InboxSurface(MessagingSurface):
    """Conversation list plus the threads the user has opened from it"""

    def __init__(self, api, user_id=None, read_retries=2, retry_delay=0.2):
        super().__init__(api, user_id, read_retries, retry_delay)
        self.open_threads = {}

    async def refresh(self):
        return await self.refresh_conversations()

    def tracked_threads(self):
        return list(self.open_threads.values())

    def thread(self, thread_id):
        if thread_id not in self.open_threads:
            self.open_threads[thread_id] = ThreadState(thread_id=thread_id)
        return self.open_threads[thread_id]

    async def open_thread(self, thread_id):
        state = self.thread(thread_id)
        result = await self.refresh_thread(state)
        if not result.ok:
            return result
        return OperationResult.success(state)

    async def start_direct_chat(self, participant_ids):
        """Resolve the direct thread with the given users and open it."""
        try:
            thread, created = await self.api.resolve_thread("direct", participant_ids=participant_ids)
        except ClientError as e:
            return OperationResult.failure(e)

        state = self.thread(thread["id"])
        state.thread_type = thread.get("thread_type")
        result = await self.open_thread(thread["id"])
        if created:
            await self.refresh_conversations()
        return result

    def set_draft(self, thread_id, text):
        self.thread(thread_id).draft = text

    async def send(self, thread_id, content=None):
        result = await self.send_in(self.thread(thread_id), content)
        if result.ok:
            await self.refresh_conversations()
        return result

    async def mark_read(self, thread_id):
        try:
            marker = await self.api.mark_read(thread_id)
        except ClientError as e:
            return OperationResult.failure(e)
        await self.refresh_conversations()
        return OperationResult.success(marker)

    async def approve(self, thread_id, message_id):
        return await self.moderate_in(self.thread(thread_id), message_id, DECISION_APPROVE)

    async def reject(self, thread_id, message_id):
        return await self.moderate_in(self.thread(thread_id), message_id, DECISION_REJECT)

    async def delete(self, thread_id, message_id):
        return await self.moderate_in(self.thread(thread_id), message_id, None)


class ProjectSurface(MessagingSurface):
    """
    The project threads one user may take part in, each with its own messages,
    draft and loading state. Threads are loaded concurrently.
    """

    def __init__(self, api, project_id, user_id=None, read_retries=2, retry_delay=0.2):
        super().__init__(api, user_id, read_retries, retry_delay)
        self.project_id = project_id
        self.project_title = ""
        self.threads = {}

    def tracked_threads(self):
        return list(self.threads.values())

    async def refresh_pending(self, project_id=None):
        return await super().refresh_pending(self.project_id if project_id is None else project_id)

    async def load(self):
        try:
            data = await self._read(self.api.project_threads, self.project_id)
        except ClientError as e:
            return OperationResult.failure(e)

        self.project_title = data.get("project_title", "")
        for thread_type, thread in data["threads"].items():
            state = self.threads.setdefault(thread_type, ThreadState(thread_type=thread_type))
            if thread is not None:
                state.thread_id = thread["id"]
                state.title = thread.get("title", "")

        await asyncio.gather(*(
            self.refresh_thread(state) for state in self.threads.values() if state.thread_id is not None
        ))
        return OperationResult.success(self.threads)

    def _state(self, thread_type):
        state = self.threads.get(thread_type)
        if state is None:
            raise ValidationError(f"Thread type {thread_type} is not available on project {self.project_id}")
        return state

    def set_draft(self, thread_type, text):
        self._state(thread_type).draft = text

    async def ensure_thread(self, state):
        if state.thread_id is not None:
            return
        thread, _ = await self.api.resolve_thread(state.thread_type, project_id=self.project_id)
        state.thread_id = thread["id"]
        state.title = thread.get("title", "")

    async def send(self, thread_type, content=None):
        """Send into a project thread, creating the thread on first use."""
        try:
            state = self._state(thread_type)
        except ValidationError as e:
            return OperationResult.failure(e)

        text = state.draft if content is None else content
        if state.thread_id is None and text and text.strip():
            try:
                await self.ensure_thread(state)
            except ClientError as e:
                if content is not None:
                    state.draft = content
                state.last_error = e
                return OperationResult.failure(e)

        return await self.send_in(state, content)

    async def _moderate(self, thread_type, message_id, decision):
        try:
            state = self._state(thread_type)
        except ValidationError as e:
            return OperationResult.failure(e)
        return await self.moderate_in(state, message_id, decision)

    async def approve(self, thread_type, message_id):
        return await self._moderate(thread_type, message_id, DECISION_APPROVE)

    async def reject(self, thread_type, message_id):
        return await self._moderate(thread_type, message_id, DECISION_REJECT)

    async def delete(self, thread_type, message_id):
        return await self._moderate(thread_type, message_id, None)
