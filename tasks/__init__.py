from core.celery import app as celery_app

__all__ = ('celery_app',)

# Register tasks explicitly
from .publishing import publish_campaign, sync_campaign_insights
from .assets import migrate_asset, migrate_assets_batch, migrate_pending_assets
from .credits import reconcile_stale_reservations

# Register periodic tasks
from celery.schedules import crontab
from django.conf import settings

if getattr(settings, 'PERIODIC_TASKS_ENABLED', False):
    celery_app.conf.beat_schedule = {
        'migrate-pending-assets': {
            'task': 'tasks.assets.migrate_pending_assets',
            'schedule': crontab(minute='*/10'),  # Every 10 minutes
        },
        'reconcile-stale-reservations': {
            'task': 'tasks.credits.reconcile_stale_reservations',
            'schedule': crontab(minute='*/15'),
        },
    }
