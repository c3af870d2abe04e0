import logging

from django.db import IntegrityError, transaction
from django.db.models import Q

from projects.models import Project
from taskhub.permissions import role_has_permission
from users.directory import roles_for
from users.models import User

from .exceptions import AuthorizationError, NotFoundError, StateError, ValidationError
from .models import Thread, ThreadParticipant

logger = logging.getLogger(__name__)

TOPOLOGY_LABELS = dict(Thread.THREAD_TYPE_CHOICES)


def normalize_participants(user_ids):
    """Strip, deduplicate and sort participant ids."""
    normalized = {str(user_id).strip() for user_id in user_ids if user_id is not None}
    normalized.discard("")
    return sorted(normalized)


def participant_key(user_ids):
    return "|".join(normalize_participants(user_ids))


class ThreadRegistry:
    """
    Resolves the single thread for a (project, thread type) pair or for a
    direct participant set, and answers membership questions about threads.

    Project thread membership follows the project registry: the project's client
    and assigned freelancers take part according to the thread topology, and
    admins are members of every project thread by role.
    """

    def resolve_or_create_thread(self, actor, thread_type, project_id=None, participant_hint=None):
        """
        Return `(thread, created)` for the requested conversation scope.

        An existing thread is returned unchanged. A missing one is created
        exactly once; if a concurrent request wins the insert, the uniqueness
        constraint rejects ours and the winner is returned instead.
        """
        if thread_type not in Thread.THREAD_TYPES:
            raise ValidationError(f"Unknown thread type: {thread_type}")

        if thread_type == Thread.TYPE_DIRECT:
            return self._resolve_direct(actor, participant_hint or [])
        return self._resolve_project(actor, thread_type, project_id, participant_hint or [])

    def _resolve_project(self, actor, thread_type, project_id, participant_hint):
        if project_id in (None, ""):
            raise ValidationError("project_id is required for project threads")

        project = Project.objects.filter(pk=project_id).first()
        if project is None:
            raise NotFoundError(f"Project {project_id} not found")

        if not self._may_join(actor, project, thread_type):
            raise AuthorizationError("You are not a participant of this project thread")

        def lookup():
            return Thread.objects.filter(project=project, thread_type=thread_type).first()

        thread = lookup()
        if thread is not None:
            return thread, False

        participants = self._seed_project_participants(project, thread_type, participant_hint)
        return self._create(
            lookup,
            participants,
            thread_type=thread_type,
            project=project,
            title=f"{project.title} - {TOPOLOGY_LABELS[thread_type]}",
        )

    def _resolve_direct(self, actor, participant_hint):
        user_ids = normalize_participants(list(participant_hint) + [actor.user_id])
        if len(user_ids) < 2:
            raise ValidationError("At least 2 participants required")

        roles = roles_for(user_ids)
        roles[actor.user_id] = actor.role
        unknown = [user_id for user_id in user_ids if user_id not in roles]
        if unknown:
            raise ValidationError(f"Unknown participants: {', '.join(unknown)}")

        key = participant_key(user_ids)
        if len(key) > Thread._meta.get_field('participant_key').max_length:
            raise ValidationError("Too many participants for a direct conversation")

        def lookup():
            return Thread.objects.filter(thread_type=Thread.TYPE_DIRECT, participant_key=key).first()

        thread = lookup()
        if thread is not None:
            return thread, False

        return self._create(
            lookup,
            [(user_id, roles[user_id]) for user_id in user_ids],
            thread_type=Thread.TYPE_DIRECT,
            participant_key=key,
        )

    def _create(self, lookup, participants, **fields):
        try:
            with transaction.atomic():
                thread = Thread.objects.create(**fields)
                ThreadParticipant.objects.bulk_create([
                    ThreadParticipant(thread=thread, user_id=user_id, role=role)
                    for user_id, role in participants
                ])
        except IntegrityError:
            existing = lookup()
            if existing is None:
                raise StateError("Thread creation conflicted with another request; retry")
            logger.info(
                "Concurrent creation of %s thread resolved to existing thread %s",
                fields['thread_type'], existing.pk,
            )
            return existing, False

        logger.info("Created %s thread %s", thread.thread_type, thread.pk)
        return thread, True

    def _seed_project_participants(self, project, thread_type, participant_hint):
        members = project.members_by_role()
        required_roles = [role for role in Thread.TOPOLOGY[thread_type] if role != User.ROLE_ADMIN]

        hinted = None
        if participant_hint:
            hinted = set(normalize_participants(participant_hint))
            # Admin membership is implicit
            hinted -= {
                user_id for user_id, role in roles_for(hinted).items() if role == User.ROLE_ADMIN
            }

        participants = []
        for role in required_roles:
            candidates = members.get(role, [])
            if hinted is not None:
                candidates = [user_id for user_id in candidates if user_id in hinted]
            if not candidates:
                raise ValidationError(
                    f"A {TOPOLOGY_LABELS[thread_type]} thread needs a {role} on project {project.pk}"
                )
            participants.extend((user_id, role) for user_id in candidates)

        if hinted is not None:
            seeded = {user_id for user_id, _ in participants}
            strangers = sorted(hinted - seeded)
            if strangers:
                raise ValidationError(
                    f"Not members of project {project.pk} for this thread: {', '.join(strangers)}"
                )

        return participants

    def _may_join(self, actor, project, thread_type):
        if role_has_permission(actor.role, 'open_any_project_thread'):
            return True
        if actor.role not in Thread.TOPOLOGY[thread_type]:
            return False
        if actor.role == User.ROLE_CLIENT:
            return project.is_client(actor.user_id)
        if actor.role == User.ROLE_FREELANCER:
            return project.is_freelancer(actor.user_id)
        return False

    def is_member(self, actor, thread):
        if thread.is_project_thread:
            return self._may_join(actor, thread.project, thread.thread_type)
        return thread.participants.filter(user_id=actor.user_id).exists()

    def can_view(self, actor, thread):
        # Moderators need to read any thread holding messages awaiting approval
        return self.is_member(actor, thread) or role_has_permission(actor.role, 'moderate')

    def can_post(self, actor, thread):
        return role_has_permission(actor.role, 'send') and self.is_member(actor, thread)

    def get_thread(self, actor, thread_id):
        thread = Thread.objects.select_related('project').filter(pk=thread_id).first()
        if thread is None:
            raise NotFoundError(f"Thread {thread_id} not found")
        if not self.can_view(actor, thread):
            raise AuthorizationError("Access denied to thread")
        return thread

    def threads_for(self, actor):
        """Threads the actor takes part in, directly or through their project role."""
        membership = Q(thread_type=Thread.TYPE_DIRECT, participants__user_id=actor.user_id)

        if role_has_permission(actor.role, 'view_all_project_threads'):
            membership |= Q(project__isnull=False)
        elif actor.role == User.ROLE_CLIENT:
            membership |= Q(
                thread_type__in=self._project_types_with(User.ROLE_CLIENT),
                project__client_id=actor.user_id,
            )
        elif actor.role == User.ROLE_FREELANCER:
            membership |= Q(
                thread_type__in=self._project_types_with(User.ROLE_FREELANCER),
                project__freelancers__user_id=actor.user_id,
            )

        return Thread.objects.filter(membership).distinct()

    def project_threads(self, actor, project_id):
        """
        Return `(project, {thread_type: thread or None})` covering the project
        thread types the actor may take part in.
        """
        project = Project.objects.filter(pk=project_id).first()
        if project is None:
            raise NotFoundError(f"Project {project_id} not found")

        existing = {thread.thread_type: thread for thread in Thread.objects.filter(project=project)}
        threads = {
            thread_type: existing.get(thread_type)
            for thread_type in Thread.PROJECT_THREAD_TYPES
            if self._may_join(actor, project, thread_type)
        }
        if not threads:
            raise AuthorizationError("You are not a participant of this project")
        return project, threads

    @staticmethod
    def _project_types_with(role):
        return [
            thread_type for thread_type in Thread.PROJECT_THREAD_TYPES
            if role in Thread.TOPOLOGY[thread_type]
        ]
