"""
Celery configuration for the e-transfer gateway service.

Celery runs the reconciliation sweep:
- run_scheduled_reconciliation: periodic, every minute (django-celery-beat)
- reconcile_single_order: on demand, e.g. from the admin

Redis is both the message broker and result backend. Tasks are
auto-discovered from each installed app's tasks.py.

Usage:
    celery -A config worker -l info
    celery -A config beat -l info

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Celery looks for a tasks.py module in each installed app
app.autodiscover_tasks()
