"""
Lookups against the local user directory used by the messaging engine for
participant roles and display names.
"""

from django.db.models import Q

from .models import User


def display_names(user_ids):
    """Return `{user_id: user_name}`; unknown ids fall back to `User <id>`."""
    user_ids = list(user_ids)
    names = dict(
        User.objects.filter(user_id__in=user_ids).values_list("user_id", "user_name")
    )
    return {user_id: names.get(user_id) or f"User {user_id}" for user_id in user_ids}


def roles_for(user_ids):
    """Return `{user_id: role}` for the ids present in the directory."""
    return dict(
        User.objects.filter(user_id__in=list(user_ids)).values_list("user_id", "role")
    )


def messageable_users(actor):
    """
    Users the actor may open a direct conversation with.

    Admins can reach everyone. Clients reach admins and the freelancers assigned
    to their projects; freelancers reach admins and the clients of the projects
    they are assigned to.
    """
    users = User.objects.exclude(user_id=actor.user_id)

    if actor.role == User.ROLE_ADMIN:
        return users.order_by("user_name")

    if actor.role == User.ROLE_CLIENT:
        related = Q(assigned_projects__client_id=actor.user_id)
    elif actor.role == User.ROLE_FREELANCER:
        related = Q(client_projects__freelancers__user_id=actor.user_id)
    else:
        return User.objects.none()

    return users.filter(Q(role=User.ROLE_ADMIN) | related).distinct().order_by("user_name")
