from dataclasses import asdict
from celery import group, shared_task
import logging

logger = logging.getLogger(__name__)


@shared_task
def migrate_asset(asset_id):
    from apps.creatives.migration import AssetMigrationPipeline

    return asdict(AssetMigrationPipeline().migrate_one(asset_id))


@shared_task
def migrate_assets_batch(asset_ids):
    """Fan out one task per asset so a slow or failing download holds up nothing else"""
    if not asset_ids:
        return {'queued': 0}
    group(migrate_asset.s(asset_id) for asset_id in asset_ids).apply_async()
    logger.info(f"Queued migration of {len(asset_ids)} asset(s)")
    return {'queued': len(asset_ids)}


@shared_task
def migrate_pending_assets(limit=None):
    """Periodic retry of pending and failed assets"""
    from apps.creatives.migration import AssetMigrationPipeline

    asset_ids = AssetMigrationPipeline.pending_asset_ids(limit=limit)
    if not asset_ids:
        logger.info("No pending assets found to process")
        return {'queued': 0}
    return migrate_assets_batch(asset_ids)
