from taskhub.identity import Actor
from projects.models import Project
from users.models import User

from conversations.aggregator import ConversationAggregator
from conversations.moderation import ModerationEngine
from conversations.registry import ThreadRegistry
from conversations.store import MessageStore


class MessagingFixtures:
    """Users, a project and the messaging services shared by the test cases"""

    def setUp(self):
        super().setUp()
        self.admin_user = User.objects.create(
            user_id="admin-1", user_name="Ada Admin", email="ada@example.com", role=User.ROLE_ADMIN
        )
        self.client_user = User.objects.create(
            user_id="client-1", user_name="Carla Client", email="carla@example.com", role=User.ROLE_CLIENT
        )
        self.freelancer_user = User.objects.create(
            user_id="free-1", user_name="Fred Freelancer", email="fred@example.com", role=User.ROLE_FREELANCER
        )
        self.outsider_user = User.objects.create(
            user_id="free-2", user_name="Fiona Freelancer", email="fiona@example.com", role=User.ROLE_FREELANCER
        )

        self.project = Project.objects.create(title="Website Redesign", client=self.client_user)
        self.project.freelancers.add(self.freelancer_user)

        self.admin = Actor(user_id="admin-1", role=User.ROLE_ADMIN, name="Ada Admin")
        self.client_actor = Actor(user_id="client-1", role=User.ROLE_CLIENT, name="Carla Client")
        self.freelancer = Actor(user_id="free-1", role=User.ROLE_FREELANCER, name="Fred Freelancer")
        self.outsider = Actor(user_id="free-2", role=User.ROLE_FREELANCER, name="Fiona Freelancer")

        self.registry = ThreadRegistry()
        self.aggregator = ConversationAggregator(self.registry)
        self.moderation = ModerationEngine(self.aggregator)
        self.store = MessageStore(self.registry, self.moderation, self.aggregator)

    def project_thread(self, thread_type, actor=None):
        thread, _ = self.registry.resolve_or_create_thread(
            actor or self.admin, thread_type, project_id=self.project.pk
        )
        return thread

    def direct_thread(self, actor, *others):
        thread, _ = self.registry.resolve_or_create_thread(
            actor, "direct", participant_hint=[other.user_id for other in others]
        )
        return thread
