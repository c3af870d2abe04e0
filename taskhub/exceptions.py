import logging

from rest_framework import status
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

from conversations.exceptions import AuthorizationError, MessagingError

logger = logging.getLogger(__name__)


def messaging_exception_handler(exc, context):
    """
    Render messaging errors as `{"error": ..., "kind": ...}` responses.

    Domain errors carry their own status code and kind. DRF request validation
    errors are folded into the `validation` kind; every other exception falls
    through to DRF's default handling.
    """
    if isinstance(exc, MessagingError):
        view = context.get('view')
        log = logger.warning if isinstance(exc, AuthorizationError) else logger.info
        log("%s rejected in %s: %s", exc.kind, view.__class__.__name__ if view else "unknown view", exc)
        return Response({'error': str(exc), 'kind': exc.kind}, status=exc.status_code)

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, DRFValidationError):
        response.data = {
            'error': 'Invalid request',
            'kind': 'validation',
            'details': response.data,
        }
    elif response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN):
        response.data = {
            'error': response.data.get('detail', 'Access denied') if isinstance(response.data, dict) else 'Access denied',
            'kind': 'authorization',
        }
    return response
