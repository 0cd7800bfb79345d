from celery import shared_task
from django.conf import settings
import logging

logger = logging.getLogger(__name__)


@shared_task
def reconcile_stale_reservations(max_age_seconds=None):
    """Settle reservations whose generation request never finished.

    Content that was delivered is paid for (commit); anything else gets its
    credit back (refund).
    """
    from apps.credits.ledger import CreditLedger
    from apps.generation.models import GenerationArtifact
    from core.exceptions import LedgerUnavailableError

    ledger = CreditLedger()
    max_age_seconds = max_age_seconds or settings.CREDIT_RESERVATION_TTL
    stale = ledger.stale_reservations(max_age_seconds)

    committed = refunded = failed = 0
    for txn in stale:
        try:
            if GenerationArtifact.objects.filter(idempotency_key=txn.idempotency_key).exists():
                ledger.commit(txn.idempotency_key)
                committed += 1
            else:
                ledger.refund(txn.idempotency_key, reason='Reservation expired without a delivered result')
                refunded += 1
        except LedgerUnavailableError as exc:
            # Left reserved; the next sweep picks it up again
            logger.error(f"Could not settle reservation {txn.idempotency_key}: {exc}")
            failed += 1

    if stale:
        logger.warning(f"Reconciled {len(stale)} stale reservation(s): {committed} committed, {refunded} refunded, {failed} failed")
    return {'committed': committed, 'refunded': refunded, 'failed': failed}
