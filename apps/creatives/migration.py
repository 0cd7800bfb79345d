# apps/creatives/migration.py
"""
Copies externally hosted generated media into owned storage.

Provider URLs expire, so every image an artifact references is downloaded and
re-uploaded to the project bucket. Videos are served from their source URL.
Each asset moves pending -> processing -> ready | failed on its own; nothing in
a batch depends on any other asset's outcome.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

import requests
from django.conf import settings
from django.db.models import F

from core.exceptions import AssetFetchError
from core.retry import RetryExecutor
from .models import ImageAsset
from .storage import AssetStorage

logger = logging.getLogger(__name__)


@dataclass
class MigrationResult:
    asset_id: int
    ok: bool
    status: str
    storage_url: Optional[str] = None
    error: Optional[str] = None


class AssetMigrationPipeline:
    def __init__(self, storage=None, executor=None, session=None, timeout=None):
        self.storage = storage or AssetStorage()
        self.executor = executor or RetryExecutor()
        self.session = session or requests.Session()
        self.timeout = timeout or settings.REMOTE_REQUEST_TIMEOUT

    def fetch(self, url):
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise AssetFetchError(f"Could not download {url}: {exc}") from exc

        if not response.ok:
            raise AssetFetchError(
                f"Failed to download {url}: {response.status_code} {response.reason}",
                status_code=response.status_code,
            )

        content_type = response.headers.get('Content-Type', 'image/png').split(';')[0].strip()
        return response.content, content_type

    def migrate_one(self, asset_id) -> MigrationResult:
        try:
            asset = ImageAsset.objects.get(pk=asset_id)
        except ImageAsset.DoesNotExist:
            logger.warning(f"Asset {asset_id} not found, nothing to migrate")
            return MigrationResult(asset_id=asset_id, ok=False, status='missing', error='Asset not found')

        if asset.is_video:
            self._mark(asset, 'ready', storage_url=asset.source_url, error_message='')
            logger.info(f"Asset {asset.pk} is a video, serving from source URL")
            return MigrationResult(asset_id=asset.pk, ok=True, status='ready', storage_url=asset.source_url)

        self._mark(asset, 'processing', error_message='')
        ImageAsset.objects.filter(pk=asset.pk).update(attempts=F('attempts') + 1)

        try:
            data, content_type = self.executor.call(self.fetch, asset.source_url)
            storage_url = self.executor.call(self.storage.upload_asset, data, asset.owner_id, content_type)
        except Exception as exc:
            logger.error(f"Migration of asset {asset.pk} from {asset.source_url} failed: {exc}")
            self._mark(asset, 'failed', error_message=str(exc))
            return MigrationResult(asset_id=asset.pk, ok=False, status='failed', error=str(exc))

        self._mark(asset, 'ready', storage_url=storage_url, error_message='')
        logger.info(f"Asset {asset.pk} migrated to {storage_url}")
        return MigrationResult(asset_id=asset.pk, ok=True, status='ready', storage_url=storage_url)

    def migrate_batch(self, asset_ids) -> List[MigrationResult]:
        results = [self.migrate_one(asset_id) for asset_id in asset_ids]
        migrated = sum(1 for r in results if r.ok)
        logger.info(f"Batch migration finished: {migrated}/{len(results)} ready")
        return results

    @staticmethod
    def pending_asset_ids(limit=None, owner_id=None):
        limit = limit or settings.ASSET_MIGRATION_BATCH_SIZE
        queryset = ImageAsset.objects.filter(status__in=ImageAsset.RETRYABLE_STATUSES)
        if owner_id is not None:
            queryset = queryset.filter(owner_id=owner_id)
        return list(queryset.order_by('updated_at').values_list('id', flat=True)[:limit])

    @staticmethod
    def _mark(asset, status, **fields):
        asset.status = status
        for name, value in fields.items():
            setattr(asset, name, value)
        asset.save(update_fields=['status', 'updated_at', *fields.keys()])
