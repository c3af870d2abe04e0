import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .errors import ClientError

PROVISIONAL_PREFIX = "tmp-"


def parse_timestamp(value):
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class OperationResult:
    """Outcome of a surface operation; failures carry a typed error"""

    ok: bool
    value: Any = None
    error: Optional[ClientError] = None

    @classmethod
    def success(cls, value=None):
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error):
        return cls(ok=False, error=error)

    @property
    def error_kind(self):
        return self.error.kind if self.error is not None else None


@dataclass
class ThreadState:
    """
    Local view of one thread.

    `messages` is exactly what the server last returned. `provisional` holds
    the user's own sends that the server has not acknowledged yet; they are
    shown after the last real message and dropped once a refresh supersedes
    them.
    """

    thread_id: Optional[int] = None
    thread_type: Optional[str] = None
    title: str = ""
    messages: List[Dict] = field(default_factory=list)
    provisional: List[Dict] = field(default_factory=list)
    draft: str = ""
    loading: bool = False
    last_error: Optional[ClientError] = None
    generation: int = 0

    @property
    def visible_messages(self) -> List[Dict]:
        return self.messages + self.provisional

    @property
    def sending(self) -> bool:
        return any(m.get("server_id") is None for m in self.provisional)

    def begin_refresh(self) -> int:
        self.generation += 1
        self.loading = True
        return self.generation

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    def apply_refresh(self, generation: int, messages: List[Dict]) -> bool:
        """Install an authoritative message list unless a newer refresh started since."""
        if not self.is_current(generation):
            return False
        self.messages = list(messages)
        # Acknowledged sends are now covered by the server's list
        self.provisional = [m for m in self.provisional if m.get("server_id") is None]
        self.loading = False
        self.last_error = None
        return True

    def fail_refresh(self, generation: int, error: ClientError) -> bool:
        if not self.is_current(generation):
            return False
        self.loading = False
        self.last_error = error
        return True

    def add_provisional(self, content: str, sender_id: Optional[str] = None) -> Dict:
        sent_at = datetime.now(timezone.utc)
        if self.messages:
            last_sent_at = parse_timestamp(self.messages[-1].get("sent_at"))
            if last_sent_at is not None and last_sent_at > sent_at:
                sent_at = last_sent_at

        message = {
            "id": f"{PROVISIONAL_PREFIX}{uuid.uuid4().hex}",
            "thread_id": self.thread_id,
            "sender_id": sender_id,
            "content": content,
            "sent_at": sent_at.isoformat(),
            "provisional": True,
            "server_id": None,
        }
        self.provisional.append(message)
        return message

    def acknowledge(self, temp_id: str, server_message: Dict) -> None:
        for message in self.provisional:
            if message["id"] == temp_id:
                message["server_id"] = server_message.get("id")
                message["approval_status"] = server_message.get("approval_status")

    def discard_provisional(self, temp_id: str) -> None:
        self.provisional = [m for m in self.provisional if m["id"] != temp_id]
