class ClientError(Exception):
    """Base class for failures reported to messaging surfaces."""

    kind = "error"

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload or {}


class ValidationError(ClientError):
    kind = "validation"


class AuthorizationError(ClientError):
    kind = "authorization"


class StateError(ClientError):
    """The action no longer matches the server's state; refetch and retry."""

    kind = "state"


class TransportError(ClientError):
    """The server could not be reached or failed to answer."""

    kind = "transport"


ERRORS_BY_KIND = {
    cls.kind: cls for cls in (ValidationError, AuthorizationError, StateError, TransportError)
}

ERRORS_BY_STATUS = {
    400: ValidationError,
    401: AuthorizationError,
    403: AuthorizationError,
    404: ValidationError,
    409: StateError,
}


def error_from_response(response):
    """Build the typed error for an HTTP error response."""
    try:
        payload = response.json()
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        payload = {}

    message = payload.get("error") or payload.get("detail") or f"HTTP {response.status_code}"

    if response.status_code >= 500:
        error_class = TransportError
    else:
        error_class = (
            ERRORS_BY_STATUS.get(response.status_code)
            or ERRORS_BY_KIND.get(payload.get("kind"))
            or ValidationError
        )
    return error_class(message, status_code=response.status_code, payload=payload)
