from django.db import models

from users.models import User


class Project(models.Model):
    title = models.CharField(max_length=255)
    client = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name="client_projects"
    )
    freelancers = models.ManyToManyField(
        User, related_name="assigned_projects", blank=True
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'projects'
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.title} (client {self.client_id})"

    def is_client(self, user_id):
        return self.client_id == user_id

    def is_freelancer(self, user_id):
        return self.freelancers.filter(user_id=user_id).exists()

    def freelancer_ids(self):
        return list(self.freelancers.values_list("user_id", flat=True))

    def members_by_role(self):
        """Map each non-admin role to the ids of the users holding it on this project."""
        return {
            User.ROLE_CLIENT: [self.client_id],
            User.ROLE_FREELANCER: self.freelancer_ids(),
        }
