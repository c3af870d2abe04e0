import logging
import time
from urllib.parse import parse_qs

import jwt
from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.conf import settings
from django.core.cache import cache

from taskhub.identity import actor_from_claims
from taskhub.jwt_utils import validate_jwt_token

logger = logging.getLogger(__name__)

CLOSE_UNAUTHENTICATED = 4001
CLOSE_RATE_LIMITED = 4029

RATE_LIMIT_WINDOW = 60


class WebSocketAuthMiddleware(BaseMiddleware):
    """
    Authenticates activity sockets from the `token` query parameter.

    Browsers cannot set an Authorization header on a WebSocket handshake, so
    the same JWT the REST API accepts is passed in the query string. The
    resolved Actor is placed in the scope for the consumer.
    """

    async def __call__(self, scope, receive, send):
        params = parse_qs(scope.get('query_string', b'').decode())
        token = params.get('token', [None])[0]

        if not token:
            return await self.reject(send, CLOSE_UNAUTHENTICATED, 'Authentication token required')

        actor = await self.authenticate(token)
        if actor is None:
            return await self.reject(send, CLOSE_UNAUTHENTICATED, 'Invalid authentication token')

        if not self.allow_connection(actor.user_id):
            return await self.reject(send, CLOSE_RATE_LIMITED, 'Rate limit exceeded')

        scope['actor'] = actor
        scope['user_id'] = actor.user_id
        return await super().__call__(scope, receive, send)

    async def reject(self, send, code, reason):
        await send({'type': 'websocket.close', 'code': code, 'reason': reason})

    async def authenticate(self, token):
        """Validate the JWT and return the Actor it identifies, or None."""
        try:
            claims = validate_jwt_token(token)
        except jwt.InvalidTokenError as e:
            logger.warning("WebSocket JWT validation failed: %s", e)
            return None
        return await database_sync_to_async(actor_from_claims)(claims)

    def allow_connection(self, user_id):
        """Count a connection attempt in the user's current window."""
        window = int(time.time()) // RATE_LIMIT_WINDOW
        key = f"ws_connections:{user_id}:{window}"

        cache.add(key, 0, RATE_LIMIT_WINDOW)
        attempts = cache.incr(key)

        limit = getattr(settings, 'WEBSOCKET_RATE_LIMIT', 30)
        if attempts > limit:
            logger.warning("WebSocket connection limit of %d/min exceeded for %s", limit, user_id)
            return False
        return True


class WebSocketSecurityMiddleware(BaseMiddleware):
    """Copies the socket limits from settings into the scope"""

    async def __call__(self, scope, receive, send):
        scope['max_message_size'] = getattr(settings, 'WEBSOCKET_MAX_MESSAGE_SIZE', 4096)
        scope['connection_timeout'] = getattr(settings, 'WEBSOCKET_CONNECTION_TIMEOUT', 3600)
        scope['heartbeat_interval'] = getattr(settings, 'WEBSOCKET_HEARTBEAT_INTERVAL', 30)

        return await super().__call__(scope, receive, send)
