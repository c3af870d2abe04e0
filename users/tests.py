from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from projects.models import Project
from taskhub.identity import Actor
from taskhub.jwt_utils import generate_test_token

from .directory import display_names, messageable_users, roles_for
from .models import User


class DirectoryTestCase(TestCase):
    def setUp(self):
        self.admin = User.objects.create(user_id="admin-1", user_name="Ada Admin", role=User.ROLE_ADMIN)
        self.client_user = User.objects.create(user_id="client-1", user_name="Carla Client", role=User.ROLE_CLIENT)
        self.freelancer = User.objects.create(user_id="free-1", user_name="Fred Freelancer", role=User.ROLE_FREELANCER)
        self.stranger = User.objects.create(user_id="free-2", user_name="Fiona Freelancer", role=User.ROLE_FREELANCER)

        project = Project.objects.create(title="Logo", client=self.client_user)
        project.freelancers.add(self.freelancer)

    def test_display_names_fall_back_to_user_id(self):
        self.assertEqual(
            display_names(["admin-1", "ghost"]),
            {"admin-1": "Ada Admin", "ghost": "User ghost"},
        )

    def test_roles_for_skips_unknown_users(self):
        self.assertEqual(roles_for(["client-1", "ghost"]), {"client-1": "client"})

    def test_client_reaches_admins_and_assigned_freelancers(self):
        actor = Actor(user_id="client-1", role=User.ROLE_CLIENT)
        self.assertEqual(
            sorted(messageable_users(actor).values_list("user_id", flat=True)),
            ["admin-1", "free-1"],
        )

    def test_freelancer_reaches_admins_and_their_clients(self):
        actor = Actor(user_id="free-1", role=User.ROLE_FREELANCER)
        self.assertEqual(
            sorted(messageable_users(actor).values_list("user_id", flat=True)),
            ["admin-1", "client-1"],
        )

    def test_admin_reaches_everyone(self):
        actor = Actor(user_id="admin-1", role=User.ROLE_ADMIN)
        self.assertEqual(messageable_users(actor).count(), 3)


class UserEndpointsAuthTestCase(APITestCase):
    def setUp(self):
        self.user = User.objects.create(
            user_id="client-1",
            user_name="Carla Client",
            email="carla@example.com",
            role=User.ROLE_CLIENT,
        )
        User.objects.create(user_id="admin-1", user_name="Ada Admin", role=User.ROLE_ADMIN)
        User.objects.create(user_id="admin-2", user_name="Bob Admin", role=User.ROLE_ADMIN)

        token = generate_test_token("client-1", User.ROLE_CLIENT)
        self.auth_headers = {"HTTP_AUTHORIZATION": f"Bearer {token}"}

        self.me_url = reverse("current_user")
        self.messageable_url = reverse("messageable_users")

    def test_current_user(self):
        response = self.client.get(self.me_url, **self.auth_headers)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["user_id"], "client-1")
        # Name comes from the directory when the token has none
        self.assertEqual(response.data["user_name"], "Carla Client")
        self.assertIn("messages:send", response.data["permissions"])
        self.assertNotIn("messages:moderate", response.data["permissions"])

    def test_messageable_users_search(self):
        response = self.client.get(self.messageable_url, {"q": "bob"}, **self.auth_headers)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([u["user_id"] for u in response.data["results"]], ["admin-2"])

    def test_requires_authentication(self):
        response = self.client.get(self.me_url)

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
