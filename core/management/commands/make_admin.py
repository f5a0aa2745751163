from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from core.models import User
from core.services.accounts import set_admin_flag

MANAGEMENT_COMMAND = 'management-command'


class Command(BaseCommand):
    help = 'Grant (or revoke) the application admin flag by email address'

    def add_arguments(self, parser):
        parser.add_argument(
            'email',
            type=str,
            help='Email address of the user'
        )
        parser.add_argument(
            '--revoke',
            action='store_true',
            help='Remove the admin flag instead of granting it'
        )
        parser.add_argument(
            '--staff',
            action='store_true',
            help='Also give access to the Django admin site'
        )

    def handle(self, *args, **options):
        email = options['email'].strip().lower()
        revoke = options['revoke']

        try:
            user = User.objects.get(email=email)
        except User.DoesNotExist:
            raise CommandError(f'User with email {email} does not exist')

        with transaction.atomic():
            set_admin_flag(user, not revoke, MANAGEMENT_COMMAND)
            if options['staff'] and not revoke:
                user.is_staff = True
                user.save(update_fields=['is_staff'])

        action = 'Revoked admin from' if revoke else 'Granted admin to'
        self.stdout.write(self.style.SUCCESS(f'🎉 {action} {email}'))
        self.stdout.write(f'   - is_admin: {user.is_admin}')
        self.stdout.write(f'   - is_staff: {user.is_staff}')
