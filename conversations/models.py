from django.db import models
from django.db.models import Q
from django.utils import timezone

from users.models import User


class Thread(models.Model):
    TYPE_DIRECT = "direct"
    TYPE_CLIENT_ADMIN_FREELANCER = "project_client_admin_freelancer"
    TYPE_ADMIN_CLIENT = "project_admin_client"
    TYPE_ADMIN_FREELANCER = "project_admin_freelancer"
    THREAD_TYPE_CHOICES = [
        (TYPE_DIRECT, "Direct"),
        (TYPE_CLIENT_ADMIN_FREELANCER, "Client, Admin & Freelancer"),
        (TYPE_ADMIN_CLIENT, "Admin & Client"),
        (TYPE_ADMIN_FREELANCER, "Admin & Freelancer"),
    ]
    THREAD_TYPES = [choice for choice, _ in THREAD_TYPE_CHOICES]
    PROJECT_THREAD_TYPES = [
        TYPE_CLIENT_ADMIN_FREELANCER,
        TYPE_ADMIN_CLIENT,
        TYPE_ADMIN_FREELANCER,
    ]

    # Roles taking part in each project thread; admins are members by role
    TOPOLOGY = {
        TYPE_CLIENT_ADMIN_FREELANCER: (User.ROLE_CLIENT, User.ROLE_ADMIN, User.ROLE_FREELANCER),
        TYPE_ADMIN_CLIENT: (User.ROLE_ADMIN, User.ROLE_CLIENT),
        TYPE_ADMIN_FREELANCER: (User.ROLE_ADMIN, User.ROLE_FREELANCER),
    }

    thread_type = models.CharField(max_length=40, choices=THREAD_TYPE_CHOICES)
    project = models.ForeignKey(
        "projects.Project", on_delete=models.CASCADE, related_name="threads", null=True, blank=True
    )
    participant_key = models.CharField(max_length=1024, null=True, blank=True)
    title = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(default=timezone.now)
    last_message_at = models.DateTimeField(null=True, blank=True)
    # Bumped by appends and by moderation actions; never moves backwards
    last_activity_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'conversations_thread'
        ordering = ['-updated_at', '-id']
        constraints = [
            models.UniqueConstraint(
                fields=['project', 'thread_type'],
                condition=Q(project__isnull=False),
                name='unique_project_thread_type',
            ),
            models.UniqueConstraint(
                fields=['participant_key'],
                condition=Q(thread_type='direct'),
                name='unique_direct_participant_set',
            ),
        ]
        indexes = [
            models.Index(fields=['updated_at'], name='conv_thread_updated_idx'),
            models.Index(fields=['last_activity_at'], name='conv_thread_activity_idx'),
        ]

    def __str__(self):
        if self.project_id:
            return f"Thread {self.pk} ({self.thread_type}, project {self.project_id})"
        return f"Thread {self.pk} ({self.thread_type})"

    @property
    def is_project_thread(self):
        return self.thread_type in self.PROJECT_THREAD_TYPES

    @property
    def topology_roles(self):
        return self.TOPOLOGY.get(self.thread_type, ())

    @property
    def participant_ids(self):
        return sorted(p.user_id for p in self.participants.all())

    def mark_activity(self, at=None):
        """Advance last_activity_at to `at` (default now) and return the stored value."""
        at = at or timezone.now()
        if self.last_activity_at and at < self.last_activity_at:
            at = self.last_activity_at
        self.last_activity_at = at
        return at


class ThreadParticipant(models.Model):
    thread = models.ForeignKey(Thread, on_delete=models.CASCADE, related_name='participants')
    user_id = models.CharField(max_length=100)
    role = models.CharField(max_length=20, choices=User.ROLE_CHOICES)
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'conversations_threadparticipant'
        constraints = [
            models.UniqueConstraint(fields=['thread', 'user_id'], name='unique_thread_participant'),
        ]
        indexes = [
            models.Index(fields=['user_id'], name='conv_participant_user_idx'),
        ]

    def __str__(self):
        return f"{self.user_id} ({self.role}) in thread {self.thread_id}"


class MessageQuerySet(models.QuerySet):
    def visible_to(self, user_id, can_moderate=False):
        """
        Messages `user_id` may see: everything for moderators; otherwise messages
        that need no approval, the viewer's own messages, and approved ones.
        """
        if can_moderate:
            return self
        return self.filter(
            Q(requires_approval=False)
            | Q(sender_id=user_id)
            | Q(approval_status=Message.STATUS_APPROVED)
        )

    def publicly_visible(self):
        return self.filter(Q(requires_approval=False) | Q(approval_status=Message.STATUS_APPROVED))

    def latest_first(self):
        return self.order_by('-sent_at', '-id')


class Message(models.Model):
    STATUS_PENDING = "pending"
    STATUS_APPROVED = "approved"
    STATUS_REJECTED = "rejected"
    APPROVAL_STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_REJECTED, "Rejected"),
    ]
    DECISIONS = [STATUS_APPROVED, STATUS_REJECTED]

    thread = models.ForeignKey(Thread, on_delete=models.CASCADE, related_name='messages')
    sender_id = models.CharField(max_length=100)
    content = models.TextField()
    sent_at = models.DateTimeField()
    requires_approval = models.BooleanField(default=False)
    approval_status = models.CharField(
        max_length=10, choices=APPROVAL_STATUS_CHOICES, null=True, blank=True
    )
    moderated_by = models.CharField(max_length=100, null=True, blank=True)
    moderated_at = models.DateTimeField(null=True, blank=True)

    objects = MessageQuerySet.as_manager()

    class Meta:
        db_table = 'conversations_message'
        ordering = ['sent_at', 'id']
        indexes = [
            models.Index(fields=['thread', 'sent_at'], name='conv_message_thread_sent_idx'),
            models.Index(fields=['approval_status'], name='conv_message_status_idx'),
        ]

    def __str__(self):
        return f"{self.sender_id}: {self.content[:50]}..."

    @property
    def is_pending(self):
        return self.approval_status == self.STATUS_PENDING

    def is_visible_to(self, user_id, can_moderate=False):
        return (
            can_moderate
            or not self.requires_approval
            or self.sender_id == user_id
            or self.approval_status == self.STATUS_APPROVED
        )

    def sort_key(self):
        return (self.sent_at, self.pk)


class LastVisibleMessage(models.Model):
    """
    Cached most recent message per (thread, audience).

    `public` holds what every participant can see, `moderator` holds the newest
    message of any status, and `sender:<user_id>` holds that sender's own newest
    message including pending and rejected ones.
    """

    AUDIENCE_PUBLIC = "public"
    AUDIENCE_MODERATOR = "moderator"
    SENDER_PREFIX = "sender:"

    thread = models.ForeignKey(Thread, on_delete=models.CASCADE, related_name='snippets')
    audience = models.CharField(max_length=120)
    message = models.ForeignKey(
        Message, on_delete=models.SET_NULL, related_name='+', null=True, blank=True
    )

    class Meta:
        db_table = 'conversations_lastvisiblemessage'
        constraints = [
            models.UniqueConstraint(fields=['thread', 'audience'], name='unique_thread_audience'),
        ]

    def __str__(self):
        return f"{self.audience} in thread {self.thread_id}: {self.message_id}"

    @classmethod
    def sender_audience(cls, user_id):
        return f"{cls.SENDER_PREFIX}{user_id}"


class ThreadReadMarker(models.Model):
    thread = models.ForeignKey(Thread, on_delete=models.CASCADE, related_name='read_markers')
    user_id = models.CharField(max_length=100)
    last_read_at = models.DateTimeField()

    class Meta:
        db_table = 'conversations_threadreadmarker'
        constraints = [
            models.UniqueConstraint(fields=['thread', 'user_id'], name='unique_thread_read_marker'),
        ]

    def __str__(self):
        return f"{self.user_id} read thread {self.thread_id} at {self.last_read_at}"
