# apps/credits/ledger.py
"""
Credit ledger: reserve / commit / refund against a per-owner balance.

A reservation debits the balance immediately through a versioned conditional
UPDATE, so two concurrent requests can never both spend the same credit. If the
guarded work fails the caller refunds explicitly; if it succeeds the caller
commits, which only finalizes the hold. Every operation is keyed by an
idempotency key and recorded as a CreditTransaction, so replays of reserve,
commit or refund never move the balance twice.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import wraps
from typing import Optional

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from core.exceptions import LedgerUnavailableError
from .models import CreditAccount, CreditTransaction

logger = logging.getLogger(__name__)

MAX_VERSION_CONFLICTS = 5


@dataclass(frozen=True)
class CreditReservation:
    account_id: int
    owner_id: int
    amount: int
    idempotency_key: str
    created_at: datetime


@dataclass
class ReservationResult:
    ok: bool
    balance_remaining: int
    error: Optional[str] = None
    reservation: Optional[CreditReservation] = None
    # insufficient_credits | key_in_use | key_released
    error_code: Optional[str] = None
    replayed: bool = False


@dataclass
class CommitResult:
    ok: bool
    new_balance: Optional[int] = None
    error: Optional[str] = None


def translate_storage_errors(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except DatabaseError as exc:
            logger.error(f"Credit ledger storage error in {func.__name__}: {exc}")
            raise LedgerUnavailableError(f"Credit storage unavailable: {exc}") from exc
    return wrapper


def _key_of(reservation_or_key):
    if isinstance(reservation_or_key, CreditReservation):
        return reservation_or_key.idempotency_key
    return reservation_or_key


def _reservation_from(txn):
    return CreditReservation(
        account_id=txn.account_id,
        owner_id=txn.account.owner_id,
        amount=txn.amount,
        idempotency_key=txn.idempotency_key,
        created_at=txn.created_at,
    )


class CreditLedger:

    @translate_storage_errors
    def get_balance(self, owner_id):
        account = CreditAccount.objects.filter(owner_id=owner_id).first()
        return account.balance if account else 0

    @translate_storage_errors
    def check_and_reserve(self, owner_id, amount=1, idempotency_key=None):
        """Hold ``amount`` credits for one generation attempt.

        Returns ``ok=False`` with a readable reason when the balance is too
        low; nothing is mutated in that case and the caller must not invoke
        the provider.
        """
        if amount <= 0:
            raise ValueError("amount must be positive")
        key = idempotency_key or uuid.uuid4().hex

        existing = CreditTransaction.objects.select_related('account').filter(idempotency_key=key).first()
        if existing is not None:
            return self._replayed_reservation(existing, owner_id)

        try:
            for _ in range(MAX_VERSION_CONFLICTS):
                account = CreditAccount.objects.filter(owner_id=owner_id).first()
                balance = account.balance if account else 0
                if balance < amount:
                    logger.info(f"Reservation refused for owner {owner_id}: {amount} required, {balance} available")
                    return ReservationResult(
                        ok=False,
                        balance_remaining=balance,
                        error=f"Insufficient credits: {amount} required, {balance} available",
                        error_code='insufficient_credits',
                    )

                with transaction.atomic():
                    updated = CreditAccount.objects.filter(
                        pk=account.pk,
                        version=account.version,
                        balance__gte=amount,
                    ).update(
                        balance=F('balance') - amount,
                        version=F('version') + 1,
                        updated_at=timezone.now(),
                    )
                    if not updated:
                        logger.debug(f"Version conflict reserving credits for owner {owner_id}, re-reading")
                        continue
                    txn = CreditTransaction.objects.create(
                        account=account,
                        kind='generation',
                        status='reserved',
                        amount=amount,
                        idempotency_key=key,
                        description=f"Generation reservation of {amount} credit(s)",
                    )

                logger.info(f"Reserved {amount} credit(s) for owner {owner_id} (key={key})")
                return ReservationResult(
                    ok=True,
                    balance_remaining=balance - amount,
                    reservation=CreditReservation(
                        account_id=account.pk,
                        owner_id=owner_id,
                        amount=amount,
                        idempotency_key=key,
                        created_at=txn.created_at,
                    ),
                )
        except IntegrityError:
            # A concurrent replay inserted the same key first; our debit rolled back with it
            existing = CreditTransaction.objects.select_related('account').get(idempotency_key=key)
            return self._replayed_reservation(existing, owner_id)

        raise LedgerUnavailableError(
            f"Could not reserve credits for owner {owner_id}: too many concurrent balance updates"
        )

    def _replayed_reservation(self, txn, owner_id):
        balance = txn.account.balance
        if txn.account.owner_id != owner_id:
            return ReservationResult(
                ok=False,
                balance_remaining=self.get_balance(owner_id),
                error=f"Idempotency key {txn.idempotency_key} is already in use",
                error_code='key_in_use',
            )
        if txn.kind != 'generation':
            return ReservationResult(
                ok=False,
                balance_remaining=balance,
                error=f"Idempotency key {txn.idempotency_key} belongs to a {txn.kind} transaction",
                error_code='key_in_use',
            )
        if txn.status == 'refunded':
            return ReservationResult(
                ok=False,
                balance_remaining=balance,
                error=f"Reservation {txn.idempotency_key} was already released",
                error_code='key_released',
            )
        return ReservationResult(
            ok=True,
            balance_remaining=balance,
            reservation=_reservation_from(txn),
            replayed=True,
        )

    @translate_storage_errors
    def commit(self, reservation_or_key):
        """Turn a reservation into a permanent debit. Safe to replay."""
        key = _key_of(reservation_or_key)
        with transaction.atomic():
            txn = (
                CreditTransaction.objects.select_for_update()
                .select_related('account')
                .filter(idempotency_key=key, kind='generation')
                .first()
            )
            if txn is None:
                return CommitResult(ok=False, error=f"Unknown reservation {key}")

            if txn.status == 'committed':
                return CommitResult(ok=True, new_balance=txn.account.balance)
            if txn.status == 'refunded':
                logger.warning(f"Commit requested for released reservation {key}")
                return CommitResult(
                    ok=False,
                    new_balance=txn.account.balance,
                    error=f"Reservation {key} was already released",
                )

            txn.status = 'committed'
            txn.save(update_fields=['status', 'updated_at'])

        logger.info(f"Committed {txn.amount} credit(s) for owner {txn.account.owner_id} (key={key})")
        return CommitResult(ok=True, new_balance=txn.account.balance)

    @translate_storage_errors
    def refund(self, reservation_or_key, reason=''):
        """Give a held amount back. Refunding twice is a no-op."""
        key = _key_of(reservation_or_key)
        with transaction.atomic():
            txn = (
                CreditTransaction.objects.select_for_update()
                .select_related('account')
                .filter(idempotency_key=key, kind='generation')
                .first()
            )
            if txn is None:
                return CommitResult(ok=False, error=f"Unknown reservation {key}")

            if txn.status == 'refunded':
                return CommitResult(ok=True, new_balance=txn.account.balance)
            if txn.status != 'reserved':
                logger.warning(f"Refund refused for {txn.status} reservation {key}")
                return CommitResult(
                    ok=False,
                    new_balance=txn.account.balance,
                    error=f"Cannot refund a {txn.status} reservation",
                )

            CreditAccount.objects.filter(pk=txn.account_id).update(
                balance=F('balance') + txn.amount,
                version=F('version') + 1,
                updated_at=timezone.now(),
            )
            txn.status = 'refunded'
            txn.error_message = reason or ''
            txn.save(update_fields=['status', 'error_message', 'updated_at'])
            txn.account.refresh_from_db(fields=['balance', 'version'])

        logger.info(f"Refunded {txn.amount} credit(s) to owner {txn.account.owner_id} (key={key}): {reason}")
        return CommitResult(ok=True, new_balance=txn.account.balance)

    @translate_storage_errors
    def add_credits(self, owner_id, amount, payment_ref, description=''):
        """Credit an account once per payment reference (webhook replays are ignored)."""
        if amount <= 0:
            raise ValueError("amount must be positive")
        key = f"payment:{payment_ref}"
        try:
            with transaction.atomic():
                account, _ = CreditAccount.objects.get_or_create(owner_id=owner_id)
                if CreditTransaction.objects.filter(idempotency_key=key).exists():
                    logger.info(f"Payment {payment_ref} already applied to owner {owner_id}")
                    return CommitResult(ok=True, new_balance=account.balance)

                CreditTransaction.objects.create(
                    account=account,
                    kind='purchase',
                    status='applied',
                    amount=amount,
                    idempotency_key=key,
                    description=description or f"Purchase of {amount} credit(s)",
                )
                CreditAccount.objects.filter(pk=account.pk).update(
                    balance=F('balance') + amount,
                    version=F('version') + 1,
                    updated_at=timezone.now(),
                )
                account.refresh_from_db(fields=['balance', 'version'])
        except IntegrityError:
            logger.info(f"Payment {payment_ref} applied concurrently for owner {owner_id}")
            return CommitResult(ok=True, new_balance=self.get_balance(owner_id))

        logger.info(f"Added {amount} credit(s) to owner {owner_id}, balance now {account.balance}")
        return CommitResult(ok=True, new_balance=account.balance)

    @translate_storage_errors
    def stale_reservations(self, max_age_seconds):
        cutoff = timezone.now() - timedelta(seconds=max_age_seconds)
        return list(
            CreditTransaction.objects.select_related('account')
            .filter(kind='generation', status='reserved', created_at__lt=cutoff)
            .order_by('created_at')
        )
