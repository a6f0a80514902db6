"""
Celery configuration for the escrow booking service.

Celery runs the time-driven side of the booking lifecycle:
- Escrow release sweep (auto-release delivered bookings after the window)
- Best-effort release reminders before the window closes

Periodic schedules live in django-celery-beat's database tables and are
created by the bookings data migrations. Tasks are auto-discovered from
each installed app's tasks.py.

Usage:
    # Worker
    celery -A config worker -l info

    # Beat (DatabaseScheduler is configured in settings)
    celery -A config beat -l info
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
