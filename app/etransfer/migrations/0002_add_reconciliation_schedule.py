"""
Add celery-beat schedule for the e-transfer reconciliation sweep.

The processor never calls back, so pending orders are resolved by polling.
This migration creates a periodic task that runs the sweep every minute.
"""

from django.db import migrations

TASK_NAME = "Reconcile Pending E-Transfer Orders"


def create_periodic_task(apps, schema_editor):
    """Create the periodic task for the reconciliation sweep."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    # Create interval schedule: every minute
    schedule, _ = IntervalSchedule.objects.get_or_create(
        every=1,
        period="minutes",
    )

    PeriodicTask.objects.get_or_create(
        name=TASK_NAME,
        defaults={
            "task": "etransfer.workers.reconciliation_worker.run_scheduled_reconciliation",
            "interval": schedule,
            "enabled": True,
            "description": (
                "Fetches processor transactions for every pending e-transfer "
                "order and applies approved, failed and cancelled statuses."
            ),
        },
    )


def remove_periodic_task(apps, schema_editor):
    """Remove the periodic task on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(name=TASK_NAME).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("etransfer", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_task, remove_periodic_task),
    ]
