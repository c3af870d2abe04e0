from django.core.management.base import BaseCommand, CommandError

from taskhub.jwt_utils import generate_test_token
from users.models import User


class Command(BaseCommand):
    help = 'Issue a development JWT for a user in the local directory'

    def add_arguments(self, parser):
        parser.add_argument('user_id', help='ID of the user the token is issued for')
        parser.add_argument(
            '--hours',
            type=int,
            default=24,
            help='Token lifetime in hours',
        )
        parser.add_argument(
            '--role',
            choices=User.ROLES,
            help='Override the role recorded for the user',
        )

    def handle(self, *args, **options):
        user_id = options['user_id']
        user = User.objects.filter(user_id=user_id).first()

        if user is None and not options['role']:
            raise CommandError(f'User {user_id} not found; pass --role to issue a token anyway')

        role = options['role'] or user.role
        name = user.user_name if user else None

        token = generate_test_token(user_id, role, name=name, expires_in_hours=options['hours'])

        self.stderr.write(f'Issued {role} token for {user_id} valid for {options["hours"]}h')
        self.stdout.write(token)
