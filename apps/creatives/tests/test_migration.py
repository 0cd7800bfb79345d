from unittest.mock import MagicMock

import requests
from django.contrib.auth.models import User
from django.test import TestCase
from google.api_core.exceptions import ServiceUnavailable
from rest_framework.test import APIClient

from apps.creatives.migration import AssetMigrationPipeline
from apps.creatives.models import ImageAsset
from apps.creatives.storage import AssetStorage
from core.exceptions import StorageError
from core.retry import RetryExecutor

GOOD_URL = 'https://cdn.provider.test/good.png'
MISSING_URL = 'https://cdn.provider.test/missing.png'
FLAKY_URL = 'https://cdn.provider.test/flaky.png'


def fake_response(status_code=200, content=b'\x89PNG', content_type='image/png'):
    response = MagicMock(ok=status_code < 400, status_code=status_code, content=content, reason='')
    response.headers = {'Content-Type': content_type}
    return response


class FakeSession:
    def __init__(self):
        self.requested = []
        self.flaky_failures = 1

    def get(self, url, timeout=None):
        self.requested.append(url)
        if url == MISSING_URL:
            return fake_response(404)
        if url == FLAKY_URL and self.flaky_failures:
            self.flaky_failures -= 1
            raise requests.ConnectionError('connection reset')
        return fake_response()


class AssetMigrationPipelineTest(TestCase):
    def setUp(self):
        self.session = FakeSession()
        self.storage = MagicMock()
        self.storage.upload_asset.side_effect = lambda data, owner_id, content_type: (
            f'https://storage.googleapis.com/adforge-test-assets/owner_{owner_id}/{len(data)}.png'
        )
        self.pipeline = AssetMigrationPipeline(
            storage=self.storage,
            executor=RetryExecutor(max_attempts=3, base_delay=0, sleep=lambda _: None),
            session=self.session,
        )

    def asset(self, url, media_type='image', **kwargs):
        return ImageAsset.objects.create(owner_id=3, source_url=url, media_type=media_type, **kwargs)

    def test_image_is_copied_to_owned_storage(self):
        asset = self.asset(GOOD_URL)

        result = self.pipeline.migrate_one(asset.pk)

        self.assertTrue(result.ok)
        asset.refresh_from_db()
        self.assertEqual(asset.status, 'ready')
        self.assertEqual(asset.storage_url, result.storage_url)
        self.assertEqual(asset.attempts, 1)
        self.storage.upload_asset.assert_called_once_with(b'\x89PNG', 3, 'image/png')

    def test_video_passes_through_without_download(self):
        asset = self.asset('https://cdn.provider.test/clip.mp4', media_type='video')

        result = self.pipeline.migrate_one(asset.pk)

        self.assertTrue(result.ok)
        self.assertEqual(result.storage_url, 'https://cdn.provider.test/clip.mp4')
        self.assertEqual(self.session.requested, [])
        self.assertEqual(ImageAsset.objects.get(pk=asset.pk).status, 'ready')

    def test_client_error_fails_without_retry(self):
        asset = self.asset(MISSING_URL)

        result = self.pipeline.migrate_one(asset.pk)

        self.assertFalse(result.ok)
        self.assertEqual(self.session.requested, [MISSING_URL])
        asset.refresh_from_db()
        self.assertEqual(asset.status, 'failed')
        self.assertIn('404', asset.error_message)

    def test_transient_fetch_error_is_retried(self):
        asset = self.asset(FLAKY_URL)

        result = self.pipeline.migrate_one(asset.pk)

        self.assertTrue(result.ok)
        self.assertEqual(self.session.requested, [FLAKY_URL, FLAKY_URL])

    def test_upload_failure_marks_failed(self):
        self.storage.upload_asset.side_effect = StorageError('forbidden', status_code=403)
        asset = self.asset(GOOD_URL)

        result = self.pipeline.migrate_one(asset.pk)

        self.assertFalse(result.ok)
        self.assertEqual(ImageAsset.objects.get(pk=asset.pk).status, 'failed')

    def test_batch_outcomes_are_independent(self):
        good = self.asset(GOOD_URL)
        bad = self.asset(MISSING_URL)
        other = self.asset('https://cdn.provider.test/other.png')

        results = self.pipeline.migrate_batch([good.pk, bad.pk, other.pk])

        self.assertEqual([r.status for r in results], ['ready', 'failed', 'ready'])
        statuses = dict(ImageAsset.objects.values_list('id', 'status'))
        self.assertEqual(statuses, {good.pk: 'ready', bad.pk: 'failed', other.pk: 'ready'})

    def test_ready_asset_is_migrated_again(self):
        asset = self.asset(GOOD_URL, status='ready', storage_url='https://old.test/a.png')

        self.pipeline.migrate_one(asset.pk)

        self.assertEqual(self.session.requested, [GOOD_URL])
        asset.refresh_from_db()
        self.assertEqual(asset.attempts, 1)
        self.assertNotEqual(asset.storage_url, 'https://old.test/a.png')

    def test_missing_asset(self):
        result = self.pipeline.migrate_one(12345)

        self.assertFalse(result.ok)
        self.assertEqual(result.status, 'missing')

    def test_pending_asset_ids_selects_retryable(self):
        pending = self.asset(GOOD_URL)
        failed = self.asset(MISSING_URL, status='failed')
        self.asset(GOOD_URL, status='ready')
        self.asset(GOOD_URL, status='processing')

        self.assertEqual(sorted(AssetMigrationPipeline.pending_asset_ids(limit=10)), sorted([pending.pk, failed.pk]))


class AssetStorageTest(TestCase):
    def setUp(self):
        self.client = MagicMock()
        self.blob = self.client.bucket.return_value.blob.return_value
        self.blob.public_url = 'https://storage.googleapis.com/bucket/owner_3/x.png'
        self.storage = AssetStorage(client=self.client, bucket_name='bucket')

    def test_upload_makes_blob_public(self):
        url = self.storage.upload_asset(b'data', 3, 'image/png')

        self.assertEqual(url, self.blob.public_url)
        self.blob.upload_from_string.assert_called_once_with(b'data', content_type='image/png')
        self.blob.make_public.assert_called_once()
        blob_name = self.client.bucket.return_value.blob.call_args[0][0]
        self.assertTrue(blob_name.startswith('owner_3/'))
        self.assertTrue(blob_name.endswith('.png'))

    def test_google_errors_become_storage_errors(self):
        self.blob.upload_from_string.side_effect = ServiceUnavailable('backend down')

        with self.assertRaises(StorageError) as ctx:
            self.storage.upload_asset(b'data', 3, 'image/png')

        self.assertTrue(ctx.exception.retriable)


class ImageAssetAPITest(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='owner', password='pw')
        self.api = APIClient()
        self.api.force_authenticate(user=self.user)

    def test_lists_only_own_assets(self):
        ImageAsset.objects.create(owner_id=self.user.id, source_url=GOOD_URL)
        ImageAsset.objects.create(owner_id=self.user.id + 1, source_url=GOOD_URL)

        response = self.api.get('/api/v1/assets/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['count'], 1)

    def test_batch_with_nothing_pending(self):
        response = self.api.post('/api/v1/assets/migrate-batch/', {}, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['count'], 0)
