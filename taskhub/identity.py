import logging
from dataclasses import dataclass
from typing import Optional

from users.models import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """The user performing an operation, passed explicitly into every core call."""

    user_id: str
    role: str
    name: str = ""

    # DRF checks these on request.user
    is_authenticated = True
    is_anonymous = False

    @property
    def is_admin(self) -> bool:
        return self.role == User.ROLE_ADMIN

    @property
    def display_name(self) -> str:
        return self.name or f"User {self.user_id}"


def actor_from_claims(claims: dict) -> Optional[Actor]:
    """
    Build an Actor from verified token claims.

    The role claim wins when present; otherwise the role recorded for the user in
    the local directory is used. Returns None when no valid role can be found.
    """
    user_id = claims.get('sub') or claims.get('user_id')
    if not user_id:
        return None

    role = claims.get('role')
    name = claims.get('name', '')

    if not role or not name:
        user = User.objects.filter(user_id=user_id).first()
        if user is not None:
            role = role or user.role
            name = name or user.user_name

    if role not in User.ROLES:
        logger.warning("Rejected identity for %s with unknown role %r", user_id, role)
        return None

    return Actor(user_id=str(user_id), role=role, name=name or "")
