from django.test import TestCase

from users.models import User

from .models import Project


class ProjectMembershipTestCase(TestCase):
    def setUp(self):
        self.client_user = User.objects.create(user_id="client-1", user_name="Carla Client", role=User.ROLE_CLIENT)
        self.freelancer = User.objects.create(user_id="free-1", user_name="Fred Freelancer", role=User.ROLE_FREELANCER)
        User.objects.create(user_id="free-2", user_name="Fiona Freelancer", role=User.ROLE_FREELANCER)

        self.project = Project.objects.create(title="Website Redesign", client=self.client_user)
        self.project.freelancers.add(self.freelancer)

    def test_membership_checks(self):
        self.assertTrue(self.project.is_client("client-1"))
        self.assertFalse(self.project.is_client("free-1"))
        self.assertTrue(self.project.is_freelancer("free-1"))
        self.assertFalse(self.project.is_freelancer("free-2"))

    def test_members_by_role(self):
        self.assertEqual(
            self.project.members_by_role(),
            {User.ROLE_CLIENT: ["client-1"], User.ROLE_FREELANCER: ["free-1"]},
        )

    def test_project_without_freelancers(self):
        project = Project.objects.create(title="Logo", client=self.client_user)

        self.assertEqual(project.freelancer_ids(), [])
