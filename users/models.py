from django.db import models


class User(models.Model):
    ROLE_ADMIN = "admin"
    ROLE_CLIENT = "client"
    ROLE_FREELANCER = "freelancer"
    ROLE_CHOICES = [
        (ROLE_ADMIN, "Admin"),
        (ROLE_CLIENT, "Client"),
        (ROLE_FREELANCER, "Freelancer"),
    ]
    ROLES = [ROLE_ADMIN, ROLE_CLIENT, ROLE_FREELANCER]

    user_id = models.CharField(max_length=100, unique=True, primary_key=True)
    user_name = models.CharField(max_length=100)
    email = models.EmailField(max_length=255, null=True, blank=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'
        indexes = [
            models.Index(fields=['user_name'], name='users_user_na_7b5a8e_idx'),
            models.Index(fields=['role'], name='users_role_0c5f3e_idx'),
        ]

    def __str__(self):
        return f"{self.user_name} ({self.user_id})"
