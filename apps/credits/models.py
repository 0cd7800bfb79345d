from django.db import models


class CreditAccount(models.Model):
    class Meta:
        app_label = 'credits'

    owner_id = models.IntegerField(unique=True)
    balance = models.PositiveIntegerField(default=0)
    # Bumped on every balance mutation; reservations update with WHERE version = <read>
    version = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"CreditAccount(owner={self.owner_id}, balance={self.balance})"


class CreditTransaction(models.Model):
    class Meta:
        app_label = 'credits'
        indexes = [
            models.Index(fields=['status', 'created_at']),
        ]
        ordering = ['-created_at']

    KIND_CHOICES = [
        ('purchase', 'Purchase'),
        ('generation', 'Generation'),
    ]

    STATUS_CHOICES = [
        ('reserved', 'Reserved'),
        ('committed', 'Committed'),
        ('refunded', 'Refunded'),
        ('applied', 'Applied'),
    ]

    account = models.ForeignKey(CreditAccount, on_delete=models.CASCADE, related_name='transactions')
    kind = models.CharField(max_length=20, choices=KIND_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES)
    amount = models.PositiveIntegerField()
    idempotency_key = models.CharField(max_length=255, unique=True)
    description = models.CharField(max_length=255, blank=True, default='')
    error_message = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
