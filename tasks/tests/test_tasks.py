from datetime import timedelta
from unittest.mock import patch

from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone

from apps.campaigns.models import Campaign
from apps.creatives.migration import MigrationResult
from apps.creatives.models import ImageAsset
from apps.credits.ledger import CreditLedger
from apps.credits.models import CreditAccount, CreditTransaction
from apps.generation.models import GenerationArtifact
from core.exceptions import LedgerUnavailableError
from tasks.assets import migrate_assets_batch, migrate_pending_assets
from tasks.credits import reconcile_stale_reservations
from tasks.publishing import publish_campaign, publish_lock_key


class ReconcileStaleReservationsTest(TestCase):
    def setUp(self):
        self.ledger = CreditLedger()
        CreditAccount.objects.create(owner_id=1, balance=5)

    def age(self, key, seconds):
        CreditTransaction.objects.filter(idempotency_key=key).update(
            created_at=timezone.now() - timedelta(seconds=seconds)
        )

    def test_delivered_generation_is_committed_and_orphan_refunded(self):
        self.ledger.check_and_reserve(1, 1, idempotency_key='delivered')
        self.ledger.check_and_reserve(1, 1, idempotency_key='orphan')
        self.ledger.check_and_reserve(1, 1, idempotency_key='fresh')
        GenerationArtifact.objects.create(owner_id=1, kind='ad_copy', provider='http', idempotency_key='delivered')
        self.age('delivered', 3600)
        self.age('orphan', 3600)

        result = reconcile_stale_reservations.delay(max_age_seconds=900).get()

        self.assertEqual(result, {'committed': 1, 'refunded': 1, 'failed': 0})
        statuses = dict(CreditTransaction.objects.values_list('idempotency_key', 'status'))
        self.assertEqual(statuses, {'delivered': 'committed', 'orphan': 'refunded', 'fresh': 'reserved'})
        self.assertEqual(self.ledger.get_balance(1), 3)

    def test_storage_failure_on_one_reservation_does_not_stop_the_sweep(self):
        self.ledger.check_and_reserve(1, 1, idempotency_key='delivered')
        self.ledger.check_and_reserve(1, 1, idempotency_key='orphan')
        GenerationArtifact.objects.create(owner_id=1, kind='ad_copy', provider='http', idempotency_key='delivered')
        self.age('delivered', 3600)
        self.age('orphan', 3600)

        with patch('apps.credits.ledger.CreditLedger.commit', side_effect=LedgerUnavailableError('db down')):
            result = reconcile_stale_reservations.delay(max_age_seconds=900).get()

        self.assertEqual(result, {'committed': 0, 'refunded': 1, 'failed': 1})
        statuses = dict(CreditTransaction.objects.values_list('idempotency_key', 'status'))
        self.assertEqual(statuses, {'delivered': 'reserved', 'orphan': 'refunded'})


class PublishCampaignTaskTest(TestCase):
    def setUp(self):
        cache.clear()
        self.campaign = Campaign.objects.create(owner_id=1, name='Spring Sale')

    def test_lock_prevents_concurrent_walks(self):
        cache.add(publish_lock_key(self.campaign.pk), 'locked', 60)

        with patch('apps.campaigns.publisher.CampaignPublisher.publish') as publish:
            result = publish_campaign.delay(self.campaign.pk).get()

        self.assertTrue(result['skipped'])
        publish.assert_not_called()

    def test_lock_is_released_after_run(self):
        with patch('apps.campaigns.publisher.CampaignPublisher.publish', return_value=self.campaign):
            result = publish_campaign.delay(self.campaign.pk, True).get()

        self.assertEqual(result['status'], 'pending')
        self.assertIsNone(cache.get(publish_lock_key(self.campaign.pk)))

    def test_without_connection_campaign_ends_in_error(self):
        result = publish_campaign.delay(self.campaign.pk).get()

        self.assertEqual(result['status'], 'error')


class AssetTasksTest(TestCase):
    def test_batch_fans_out_per_asset(self):
        ids = [
            ImageAsset.objects.create(owner_id=1, source_url=f'https://cdn.test/{n}.png').pk
            for n in range(3)
        ]

        with patch('apps.creatives.migration.AssetMigrationPipeline.migrate_one',
                   side_effect=lambda asset_id: MigrationResult(asset_id=asset_id, ok=True, status='ready')) as migrate:
            result = migrate_assets_batch.delay(ids).get()

        self.assertEqual(result, {'queued': 3})
        self.assertEqual(sorted(call.args[0] for call in migrate.call_args_list), sorted(ids))

    def test_pending_sweep_with_nothing_to_do(self):
        ImageAsset.objects.create(owner_id=1, source_url='https://cdn.test/done.png', status='ready')

        self.assertEqual(migrate_pending_assets.delay().get(), {'queued': 0})
