import asyncio

from messaging_client.errors import TransportError


class FakeApi:
    """In-memory stand-in for AsyncThreadApi with scriptable failures"""

    def __init__(self):
        self.threads = {}
        self.messages = {}
        self.conversations = []
        self.projects = {}
        self.calls = []
        self.failures = {}
        self.delays = {}
        self.next_id = 100
        self.activity = []
        self.pending = []
        self.server_time = "2026-01-01T00:00:00Z"

    def fail(self, name, *errors):
        self.failures.setdefault(name, []).extend(errors)

    async def _enter(self, name, *args):
        self.calls.append((name,) + args)
        delay = self.delays.get(name)
        if delay:
            await asyncio.sleep(delay)
        pending = self.failures.get(name)
        if pending:
            raise pending.pop(0)

    def add_thread(self, thread_id, thread_type="direct", messages=None):
        self.threads[thread_id] = {"id": thread_id, "thread_type": thread_type, "title": ""}
        self.messages[thread_id] = list(messages or [])
        return self.threads[thread_id]

    async def list_conversations(self):
        await self._enter("list_conversations")
        return list(self.conversations)

    async def list_messages(self, thread_id, limit=None):
        await self._enter("list_messages", thread_id)
        return list(self.messages[thread_id])

    async def send_message(self, thread_id, content):
        await self._enter("send_message", thread_id, content)
        self.next_id += 1
        message = {"id": self.next_id, "thread_id": thread_id, "content": content,
                   "sent_at": "2026-01-01T00:00:00Z", "approval_status": None}
        self.messages[thread_id].append(message)
        return message

    async def resolve_thread(self, thread_type, project_id=None, participant_ids=None):
        await self._enter("resolve_thread", thread_type, project_id)
        for thread in self.threads.values():
            if thread["thread_type"] == thread_type and thread.get("project_id") == project_id:
                return thread, False
        self.next_id += 1
        thread = self.add_thread(self.next_id, thread_type)
        thread["project_id"] = project_id
        return thread, True

    async def project_threads(self, project_id):
        await self._enter("project_threads", project_id)
        return self.projects[project_id]

    async def decide(self, message_id, decision):
        await self._enter("decide", message_id, decision)
        return {"id": message_id, "approval_status": decision}

    async def delete_message(self, message_id):
        await self._enter("delete_message", message_id)

    async def activity_since(self, since):
        await self._enter("activity_since", since)
        return {"threads": [{"thread_id": t} for t in self.activity], "server_time": self.server_time}

    async def pending_messages(self, project_id=None):
        await self._enter("pending_messages", project_id)
        return list(self.pending)

    async def mark_read(self, thread_id):
        await self._enter("mark_read", thread_id)
        return {"thread_id": thread_id}


def transport_error():
    return TransportError("connection reset")
