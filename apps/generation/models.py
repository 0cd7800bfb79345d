from django.db import models


class GenerationArtifact(models.Model):
    class Meta:
        app_label = 'generation'
        indexes = [
            models.Index(fields=['owner_id', 'created_at']),
        ]
        ordering = ['-created_at']

    owner_id = models.IntegerField(db_index=True)
    project_ref = models.CharField(max_length=100, blank=True, default='')
    kind = models.CharField(max_length=50)  # ad_copy, image, video, landing_page...
    provider = models.CharField(max_length=50)
    request_payload = models.JSONField(default=dict)
    content = models.JSONField(default=dict)
    # Same key as the credit reservation that paid for it
    idempotency_key = models.CharField(max_length=255, unique=True)
    credits_spent = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
