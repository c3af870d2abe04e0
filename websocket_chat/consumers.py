import asyncio
import json
from collections import deque

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.conf import settings

from conversations.exceptions import MessagingError
from conversations.registry import ThreadRegistry
from taskhub.permissions import role_has_permission

from .notifications import MODERATORS_GROUP, thread_group_name, user_group_name


class ThreadActivityConsumer(AsyncWebsocketConsumer):
    """
    WebSocket consumer pushing thread activity notifications.

    Every connection receives activity for the threads its user takes part in;
    moderators also receive activity for every thread. Clients may subscribe to
    further threads they are allowed to view.
    """

    registry = ThreadRegistry()

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.actor = None
        self.joined_groups = set()
        self.subscriptions = set()
        self.recent_events = deque(maxlen=200)
        self.heartbeat_task = None

    async def connect(self):
        """Handle WebSocket connection with authentication and group joining"""
        self.actor = self.scope.get('actor')
        if self.actor is None:
            await self.close(code=4001)
            return

        await self.accept()

        await self.join_group(user_group_name(self.actor.user_id))
        if role_has_permission(self.actor.role, 'moderate'):
            await self.join_group(MODERATORS_GROUP)

        self.heartbeat_task = asyncio.create_task(self.heartbeat_loop())

    async def disconnect(self, code):
        """Handle WebSocket disconnection and cleanup"""
        if self.heartbeat_task:
            self.heartbeat_task.cancel()

        for group in list(self.joined_groups):
            await self.channel_layer.group_discard(group, self.channel_name)
        self.joined_groups.clear()
        self.subscriptions.clear()

    async def receive(self, text_data=None, bytes_data=None):
        """Handle incoming WebSocket messages"""
        if text_data is None:
            await self.send_error("Binary frames are not supported")
            return

        if len(text_data) > self.scope.get('max_message_size', settings.WEBSOCKET_MAX_MESSAGE_SIZE):
            await self.send_error("Message too large")
            return

        try:
            data = json.loads(text_data)
        except json.JSONDecodeError:
            await self.send_error("Invalid JSON format")
            return

        if not isinstance(data, dict):
            await self.send_error("Invalid message format")
            return

        message_type = data.get('type')

        if message_type == 'subscribe_thread':
            await self.handle_subscribe_thread(data)
        elif message_type == 'unsubscribe_thread':
            await self.handle_unsubscribe_thread(data)
        elif message_type == 'heartbeat':
            await self.handle_heartbeat()
        else:
            await self.send_error("Unknown message type")

    async def handle_subscribe_thread(self, data):
        thread_id = self.parse_thread_id(data)
        if thread_id is None:
            await self.send_error("Thread ID required")
            return

        if not await self.verify_thread_access(thread_id):
            await self.send_error("Access denied to thread")
            return

        await self.join_group(thread_group_name(thread_id))
        self.subscriptions.add(thread_id)

        await self.send(text_data=json.dumps({
            'type': 'thread_subscribed',
            'thread_id': thread_id
        }))

    async def handle_unsubscribe_thread(self, data):
        thread_id = self.parse_thread_id(data)
        if thread_id is None:
            await self.send_error("Thread ID required")
            return

        if thread_id in self.subscriptions:
            self.subscriptions.discard(thread_id)
            group = thread_group_name(thread_id)
            await self.channel_layer.group_discard(group, self.channel_name)
            self.joined_groups.discard(group)

        await self.send(text_data=json.dumps({
            'type': 'thread_unsubscribed',
            'thread_id': thread_id
        }))

    async def handle_heartbeat(self):
        await self.send(text_data=json.dumps({
            'type': 'heartbeat_response',
            'timestamp': asyncio.get_event_loop().time()
        }))

    async def thread_activity(self, event):
        """Forward a thread activity event once, whichever groups delivered it"""
        event_id = event.get('event_id')
        if event_id is not None:
            if event_id in self.recent_events:
                return
            self.recent_events.append(event_id)

        await self.send(text_data=json.dumps({
            'type': 'thread_activity',
            'thread_id': event['thread_id'],
            'event': event['event']
        }))

    async def join_group(self, group):
        await self.channel_layer.group_add(group, self.channel_name)
        self.joined_groups.add(group)

    @staticmethod
    def parse_thread_id(data):
        try:
            return int(data.get('thread_id'))
        except (TypeError, ValueError):
            return None

    async def heartbeat_loop(self):
        """Send periodic heartbeat to keep connection alive"""
        interval = self.scope.get('heartbeat_interval', settings.WEBSOCKET_HEARTBEAT_INTERVAL)
        while True:
            await asyncio.sleep(interval)
            await self.send(text_data=json.dumps({
                'type': 'heartbeat',
                'timestamp': asyncio.get_event_loop().time()
            }))

    async def send_error(self, message):
        await self.send(text_data=json.dumps({
            'type': 'error',
            'message': message
        }))

    @database_sync_to_async
    def verify_thread_access(self, thread_id):
        try:
            self.registry.get_thread(self.actor, thread_id)
        except MessagingError:
            return False
        return True

