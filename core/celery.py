import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'core.settings.local')

app = Celery('adforge')
app.config_from_object('django.conf:settings', namespace='CELERY')

# Publishing and migration tasks are long-running remote walks; hand them out one at a time
app.conf.update(
    worker_prefetch_multiplier=1,
    task_acks_late=True,
)

# Task modules live outside the Django apps
app.autodiscover_tasks(['tasks'])
