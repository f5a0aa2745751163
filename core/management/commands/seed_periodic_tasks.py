from django.core.management.base import BaseCommand
from django_celery_beat.models import CrontabSchedule, IntervalSchedule, PeriodicTask


class Command(BaseCommand):
    help = "Seed periodic tasks for Celery Beat. Idempotent."

    def _save(self, name, task, **schedule):
        periodic_task, created = PeriodicTask.objects.update_or_create(
            name=name,
            defaults={"task": task, "enabled": True, **schedule},
        )
        status = "Created" if created else "Updated"
        self.stdout.write(f"  {status}: {name} ({task})")
        return periodic_task

    def ensure_interval_task(self, name, task, every_seconds):
        sched, _ = IntervalSchedule.objects.get_or_create(
            every=every_seconds,
            period=IntervalSchedule.SECONDS
        )
        return self._save(name, task, interval=sched, crontab=None)

    def ensure_crontab_task(self, name, task, minute="0", hour="*"):
        sched, _ = CrontabSchedule.objects.get_or_create(
            minute=minute,
            hour=hour,
            day_of_week="*",
            day_of_month="*",
            month_of_year="*",
        )
        return self._save(name, task, crontab=sched, interval=None)

    def handle(self, *args, **options):
        self.stdout.write("Seeding periodic tasks...")

        self.ensure_interval_task("expire-trials", "core.tasks.expire_trials", 300)
        self.ensure_interval_task(
            "expire-manual-subscriptions", "core.tasks.expire_manual_subscriptions", 900
        )
        self.ensure_crontab_task("expire-invitations", "core.tasks.expire_invitations", minute="0")
        self.ensure_crontab_task(
            "purge-deleted-accounts", "core.tasks.purge_deleted_accounts", minute="0", hour="3"
        )

        self.stdout.write(self.style.SUCCESS("Periodic tasks ensured."))
