import logging
from typing import Dict, List, Optional, Tuple

import requests
from asgiref.sync import sync_to_async

from .errors import TransportError, error_from_response

logger = logging.getLogger(__name__)


class ThreadApiClient:
    """Client for the taskhub messaging REST API"""

    def __init__(self, base_url: str, token: str, timeout: float = 10, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, path: str, **kwargs):
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.session.request(
                method, url, headers=self._get_headers(), timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise TransportError(f"Could not reach messaging service: {e}")

        if response.status_code >= 400:
            error = error_from_response(response)
            logger.info("%s %s returned %s (%s)", method, url, response.status_code, error.kind)
            raise error

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def list_conversations(self) -> List[Dict]:
        return self._request("GET", "conversations/")["results"]

    def activity_since(self, since: str) -> Dict:
        """Return `{"threads": [...], "server_time": ...}` for threads changed after `since`."""
        return self._request("GET", "conversations/activity/", params={"since": since})

    def resolve_thread(self, thread_type: str, project_id: Optional[int] = None,
                       participant_ids: Optional[List[str]] = None) -> Tuple[Dict, bool]:
        """Return `(thread, created)` for a conversation scope."""
        payload = {"thread_type": thread_type}
        if project_id is not None:
            payload["project_id"] = project_id
        if participant_ids:
            payload["participant_ids"] = list(participant_ids)

        data = self._request("POST", "threads/resolve/", json=payload)
        return data["thread"], data["is_new"]

    def get_thread(self, thread_id: int) -> Dict:
        return self._request("GET", f"threads/{thread_id}/")

    def list_messages(self, thread_id: int, limit: Optional[int] = None) -> List[Dict]:
        params = {"limit": limit} if limit else None
        return self._request("GET", f"threads/{thread_id}/messages/", params=params)["messages"]

    def send_message(self, thread_id: int, content: str) -> Dict:
        return self._request("POST", f"threads/{thread_id}/messages/", json={"content": content})

    def mark_read(self, thread_id: int) -> Dict:
        return self._request("POST", f"threads/{thread_id}/read/")

    def project_threads(self, project_id: int) -> Dict:
        return self._request("GET", f"projects/{project_id}/threads/")

    def decide(self, message_id: int, decision: str) -> Dict:
        return self._request("POST", f"messages/{message_id}/decision/", json={"decision": decision})

    def delete_message(self, message_id: int) -> None:
        self._request("DELETE", f"messages/{message_id}/")

    def pending_messages(self, project_id: Optional[int] = None) -> List[Dict]:
        params = {"project_id": project_id} if project_id is not None else None
        return self._request("GET", "messages/pending/", params=params)["results"]


class AsyncThreadApi:
    """
    Coroutine facade over ThreadApiClient.

    Each call runs in a worker thread so a slow request for one thread does not
    hold up requests for another.
    """

    def __init__(self, client: ThreadApiClient):
        self.client = client

    async def _call(self, name, *args, **kwargs):
        method = getattr(self.client, name)
        return await sync_to_async(method, thread_sensitive=False)(*args, **kwargs)

    async def list_conversations(self):
        return await self._call("list_conversations")

    async def activity_since(self, since):
        return await self._call("activity_since", since)

    async def resolve_thread(self, thread_type, project_id=None, participant_ids=None):
        return await self._call("resolve_thread", thread_type, project_id, participant_ids)

    async def get_thread(self, thread_id):
        return await self._call("get_thread", thread_id)

    async def list_messages(self, thread_id, limit=None):
        return await self._call("list_messages", thread_id, limit)

    async def send_message(self, thread_id, content):
        return await self._call("send_message", thread_id, content)

    async def mark_read(self, thread_id):
        return await self._call("mark_read", thread_id)

    async def project_threads(self, project_id):
        return await self._call("project_threads", project_id)

    async def decide(self, message_id, decision):
        return await self._call("decide", message_id, decision)

    async def delete_message(self, message_id):
        return await self._call("delete_message", message_id)

    async def pending_messages(self, project_id=None):
        return await self._call("pending_messages", project_id)
