from django.db import models
from django.core.exceptions import ValidationError


class PlatformConnection(models.Model):
    class Meta:
        app_label = 'campaigns'
        constraints = [
            models.UniqueConstraint(
                fields=['owner_id', 'platform'],
                name='unique_platform_connection_per_owner'
            )
        ]

    PLATFORM_CHOICES = [
        ('facebook', 'Facebook'),
    ]

    owner_id = models.IntegerField(db_index=True)
    platform = models.CharField(max_length=20, choices=PLATFORM_CHOICES, default='facebook')
    access_token = models.TextField()
    ad_account_id = models.CharField(max_length=64)
    page_id = models.CharField(max_length=64, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def account_path(self):
        account = self.ad_account_id
        return account if account.startswith('act_') else f"act_{account}"


class Campaign(models.Model):
    class Meta:
        app_label = 'campaigns'
        indexes = [
            models.Index(fields=['owner_id', 'status']),
            models.Index(fields=['owner_id', 'created_at']),
        ]
        ordering = ['-created_at']

    # Status choices
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('campaign_created', 'Campaign created'),
        ('adset_created', 'Ad set created'),
        ('completed', 'Completed'),
        ('error', 'Error'),
    ]

    DELIVERY_CHOICES = [
        ('paused', 'Paused'),
        ('active', 'Active'),
    ]

    TERMINAL_STATUSES = ('completed', 'error')

    owner_id = models.IntegerField(db_index=True)
    project_ref = models.CharField(max_length=100, blank=True, default='')
    name = models.CharField(max_length=255)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    remote_campaign_id = models.CharField(max_length=64, blank=True, null=True)
    remote_adset_id = models.CharField(max_length=64, blank=True, null=True)
    remote_creative_id = models.CharField(max_length=64, blank=True, null=True)
    remote_ad_id = models.CharField(max_length=64, blank=True, null=True)
    delivery_status = models.CharField(max_length=10, choices=DELIVERY_CHOICES, default='paused')
    error_message = models.TextField(blank=True, null=True)
    payload = models.JSONField(default=dict)
    retry_of = models.ForeignKey(
        'self', on_delete=models.SET_NULL, null=True, blank=True, related_name='retries'
    )
    insights = models.JSONField(default=dict, blank=True)
    insights_synced_at = models.DateTimeField(null=True, blank=True)
    # Last sequence number pushed to status observers
    status_sequence = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Campaign({self.pk}, {self.name}, {self.status})"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    def can_transition_to(self, new_status):
        """Validate status transitions"""
        valid_transitions = {
            'pending': ['campaign_created', 'error'],
            'campaign_created': ['adset_created', 'error'],
            'adset_created': ['completed', 'error'],
            'completed': [],  # Terminal state
            'error': []  # Terminal state
        }
        return new_status in valid_transitions.get(self.status, [])

    def save(self, *args, **kwargs):
        if self.pk:  # Updating existing
            old_status = Campaign.objects.filter(pk=self.pk).values_list('status', flat=True).first()
            if old_status is not None and old_status != self.status:
                if not Campaign(status=old_status).can_transition_to(self.status):
                    raise ValidationError(
                        f"Cannot transition from {old_status} to {self.status}"
                    )
        super().save(*args, **kwargs)
