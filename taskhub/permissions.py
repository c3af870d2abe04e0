"""
Role to permission table for the messaging engine.

Every role check in the thread registry and the moderation engine goes through
`role_has_permission`; nothing else branches on role names directly.
"""

from users.models import User


MESSAGING_PERMISSIONS = {
    'read': 'messages:read',
    'send': 'messages:send',
    'moderate': 'messages:moderate',
    'delete': 'messages:delete',
    'bypass_moderation': 'messages:bypass_moderation',
    'view_all_project_threads': 'threads:view_all_project',
    'open_any_project_thread': 'threads:open_any_project',
}

ROLE_PERMISSIONS = {
    User.ROLE_ADMIN: [
        'read', 'send', 'moderate', 'delete', 'bypass_moderation',
        'view_all_project_threads', 'open_any_project_thread',
    ],
    User.ROLE_CLIENT: ['read', 'send'],
    User.ROLE_FREELANCER: ['read', 'send'],
}

# A non-admin message reaching the counterpart role needs admin approval
COUNTERPART_ROLES = {
    User.ROLE_CLIENT: User.ROLE_FREELANCER,
    User.ROLE_FREELANCER: User.ROLE_CLIENT,
}


def role_has_permission(role, permission):
    """Return True if `role` carries the named permission."""
    if permission not in MESSAGING_PERMISSIONS:
        raise KeyError(f"Unknown messaging permission: {permission}")
    return permission in ROLE_PERMISSIONS.get(role, [])


def permissions_for_role(role):
    """Return the fully qualified permission strings granted to `role`."""
    return [MESSAGING_PERMISSIONS[name] for name in ROLE_PERMISSIONS.get(role, [])]
