import datetime

from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone

from core.models import User
from core.services import accounts


class Command(BaseCommand):
    help = 'Permanently delete accounts whose deletion grace period has ended'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be deleted without making changes',
        )
        parser.add_argument(
            '--limit',
            type=int,
            default=None,
            help='Delete at most this many accounts',
        )

    def handle(self, *args, **options):
        now = timezone.now()
        cutoff = now - datetime.timedelta(days=settings.ACCOUNT_DELETION_GRACE_DAYS)
        due = User.objects.filter(account_status='pending_deletion', marked_for_deletion_at__lte=cutoff)

        self.stdout.write(f"Found {due.count()} accounts past the {settings.ACCOUNT_DELETION_GRACE_DAYS}-day grace period")

        if options['dry_run']:
            self.stdout.write(self.style.WARNING('DRY RUN MODE - No changes will be made'))
            for user in due.order_by('marked_for_deletion_at')[:options['limit']]:
                self.stdout.write(f"  - {user.email} (marked {user.marked_for_deletion_at:%Y-%m-%d} by {user.deleted_by})")
            return

        result = accounts.purge_deleted_accounts(now, limit=options['limit'], actor='management-command')
        for email in result['emails']:
            self.stdout.write(f"  🗑️  {email}")

        if result['failed']:
            self.stdout.write(self.style.ERROR(f"{result['failed']} accounts could not be deleted, see logs"))
        self.stdout.write(self.style.SUCCESS(f"Deleted {result['deleted']} accounts"))
