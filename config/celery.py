import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.local")

app = Celery("loyalty_ledger")

# Every CELERY_* Django setting configures the app.
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
