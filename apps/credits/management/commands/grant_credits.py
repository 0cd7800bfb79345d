from django.core.management.base import BaseCommand, CommandError
from apps.credits.ledger import CreditLedger


class Command(BaseCommand):
    help = 'Apply a payment to a credit account (same path the payment webhook uses)'

    def add_arguments(self, parser):
        parser.add_argument('--owner-id', type=int, required=True)
        parser.add_argument('--amount', type=int, required=True)
        parser.add_argument('--payment-ref', type=str, required=True)
        parser.add_argument('--description', type=str, default='')

    def handle(self, *args, **options):
        owner_id = options['owner_id']
        amount = options['amount']

        if amount <= 0:
            raise CommandError('--amount must be positive')

        result = CreditLedger().add_credits(
            owner_id=owner_id,
            amount=amount,
            payment_ref=options['payment_ref'],
            description=options['description'],
        )

        self.stdout.write(
            self.style.SUCCESS(
                f'Owner {owner_id} balance is now {result.new_balance} credit(s)'
            )
        )
