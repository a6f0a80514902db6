"""
Add celery-beat schedules for the escrow release sweep and reminders.

- Process Due Escrow Releases: every 5 minutes, auto-releases delivered
  bookings whose release window has passed
- Send Escrow Release Reminders: every 15 minutes, 24h/12h/1h reminders
"""

from django.db import migrations

PERIODIC_TASKS = [
    {
        "name": "Process Due Escrow Releases",
        "task": "bookings.workers.release_scheduler.process_due_releases",
        "every": 5,
        "description": (
            "Releases delivered bookings to the creator once release_at has "
            "passed with no acceptance and no open dispute."
        ),
    },
    {
        "name": "Send Escrow Release Reminders",
        "task": "bookings.workers.release_scheduler.send_release_reminders",
        "every": 15,
        "description": "Notifies both parties before a booking auto-releases.",
    },
]


def create_periodic_tasks(apps, schema_editor):
    """Create the periodic tasks for the release scheduler."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    for entry in PERIODIC_TASKS:
        schedule, _ = IntervalSchedule.objects.get_or_create(
            every=entry["every"],
            period="minutes",
        )
        PeriodicTask.objects.get_or_create(
            name=entry["name"],
            defaults={
                "task": entry["task"],
                "interval": schedule,
                "enabled": True,
                "description": entry["description"],
            },
        )


def remove_periodic_tasks(apps, schema_editor):
    """Remove the periodic tasks on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(
        name__in=[entry["name"] for entry in PERIODIC_TASKS],
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("bookings", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
