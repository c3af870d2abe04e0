class MessagingError(Exception):
    """Base class for errors raised by the messaging engine."""

    kind = "error"
    status_code = 500


class ValidationError(MessagingError):
    """Empty or invalid content, or a missing/unknown identifier."""

    kind = "validation"
    status_code = 400


class NotFoundError(ValidationError):
    status_code = 404


class AuthorizationError(MessagingError):
    """The actor lacks the role or participation needed for the operation."""

    kind = "authorization"
    status_code = 403


class StateError(MessagingError):
    """The operation conflicts with the current state of the entity."""

    kind = "state"
    status_code = 409
