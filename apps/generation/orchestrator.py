# apps/generation/orchestrator.py
"""
Credit-gated generation: reserve -> call provider -> store + commit, or refund.

No cross-request locking is needed; the ledger's versioned reservation is the
only serialization point between concurrent requests of one account.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction

from apps.credits.ledger import CreditLedger
from apps.creatives.models import ImageAsset
from core.exceptions import LedgerUnavailableError, RemoteServiceError
from core.retry import RetryExecutor
from .models import GenerationArtifact
from .providers import get_default_provider

logger = logging.getLogger(__name__)

GENERATION_FAILED_MESSAGE = "Generation failed and no credits were used. Please try again."
KEY_REUSED_MESSAGE = "This request key was already used for a failed generation. Send a new key to try again."
IN_PROGRESS_MESSAGE = "A generation with this request key is still running."


@dataclass
class GenerationResult:
    ok: bool
    artifact: Optional[GenerationArtifact] = None
    error: Optional[str] = None
    # insufficient_credits | generation_failed | idempotency_conflict | generation_in_progress
    error_code: Optional[str] = None
    balance_remaining: Optional[int] = None
    reconciliation_required: bool = False


class GenerationOrchestrator:
    def __init__(self, provider=None, ledger=None, executor=None, ledger_executor=None):
        self.provider = provider or get_default_provider()
        self.ledger = ledger or CreditLedger()
        self.executor = executor or RetryExecutor()
        self.ledger_executor = ledger_executor or RetryExecutor(
            is_retriable=lambda exc: isinstance(exc, LedgerUnavailableError)
        )

    def generate(self, owner_id, request, idempotency_key=None, cost=None):
        cost = cost or settings.GENERATION_CREDIT_COST
        key = idempotency_key or uuid.uuid4().hex

        delivered = self._delivered(owner_id, key)
        if delivered is not None:
            return delivered

        reserved = self.ledger.check_and_reserve(owner_id, cost, idempotency_key=key)
        if not reserved.ok:
            if reserved.error_code == 'insufficient_credits':
                return GenerationResult(
                    ok=False,
                    error=reserved.error,
                    error_code='insufficient_credits',
                    balance_remaining=reserved.balance_remaining,
                )
            logger.info(f"Generation {key} refused for owner {owner_id}: {reserved.error}")
            return GenerationResult(
                ok=False,
                error=KEY_REUSED_MESSAGE,
                error_code='idempotency_conflict',
                balance_remaining=reserved.balance_remaining,
            )
        if reserved.replayed:
            # Another request holds this reservation; it may have finished meanwhile
            delivered = self._delivered(owner_id, key)
            if delivered is not None:
                return delivered
            return GenerationResult(
                ok=False,
                error=IN_PROGRESS_MESSAGE,
                error_code='generation_in_progress',
                balance_remaining=reserved.balance_remaining,
            )
        reservation = reserved.reservation

        try:
            output = self.executor.call(self.provider.generate, request)
        except RemoteServiceError as exc:
            logger.error(f"Generation {key} for owner {owner_id} failed after retries: {exc}")
            balance = self._release(reservation, str(exc))
            return GenerationResult(
                ok=False,
                error=GENERATION_FAILED_MESSAGE,
                error_code='generation_failed',
                balance_remaining=balance,
            )
        except Exception as exc:
            self._release(reservation, f"Unexpected error: {exc}")
            raise

        artifact = self._store(owner_id, request, output, key, cost)

        try:
            committed = self.ledger_executor.call(self.ledger.commit, reservation)
        except LedgerUnavailableError as exc:
            logger.error(
                f"Credit commit for generation {key} failed, artifact {artifact.pk} delivered; "
                f"left reserved for reconciliation: {exc}"
            )
            return GenerationResult(ok=True, artifact=artifact, reconciliation_required=True)

        if not committed.ok:
            logger.error(f"Credit commit for generation {key} rejected: {committed.error}")
            return GenerationResult(
                ok=True,
                artifact=artifact,
                balance_remaining=committed.new_balance,
                reconciliation_required=True,
            )

        return GenerationResult(ok=True, artifact=artifact, balance_remaining=committed.new_balance)

    def _delivered(self, owner_id, key):
        artifact = GenerationArtifact.objects.filter(idempotency_key=key, owner_id=owner_id).first()
        if artifact is None:
            return None
        logger.info(f"Generation {key} already delivered, returning stored artifact {artifact.pk}")
        return GenerationResult(ok=True, artifact=artifact, balance_remaining=self.ledger.get_balance(owner_id))

    def _release(self, reservation, reason):
        try:
            return self.ledger.refund(reservation, reason=reason).new_balance
        except LedgerUnavailableError as exc:
            logger.error(
                f"Refund of reservation {reservation.idempotency_key} failed, "
                f"left reserved for reconciliation: {exc}"
            )
            return None

    def _store(self, owner_id, request, output, key, cost):
        from tasks.assets import migrate_asset

        try:
            with transaction.atomic():
                artifact = GenerationArtifact.objects.create(
                    owner_id=owner_id,
                    project_ref=request.project_ref,
                    kind=request.kind,
                    provider=output.provider,
                    request_payload=request.payload,
                    content=output.content,
                    idempotency_key=key,
                    credits_spent=cost,
                )
                for url, media_type in output.media:
                    asset = ImageAsset.objects.create(
                        owner_id=owner_id,
                        artifact=artifact,
                        source_url=url,
                        media_type=media_type,
                    )
                    transaction.on_commit(lambda asset_id=asset.pk: migrate_asset.delay(asset_id))
        except IntegrityError:
            artifact = GenerationArtifact.objects.get(idempotency_key=key)
            logger.warning(f"Generation {key} was stored by a concurrent request, keeping artifact {artifact.pk}")
            return artifact

        logger.info(
            f"Stored artifact {artifact.pk} for owner {owner_id} with {len(output.media)} external asset(s)"
        )
        return artifact
