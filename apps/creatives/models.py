from django.db import models


class ImageAsset(models.Model):
    class Meta:
        app_label = 'creatives'
        indexes = [
            models.Index(fields=['status', 'updated_at']),
        ]

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('processing', 'Processing'),
        ('ready', 'Ready'),
        ('failed', 'Failed'),
    ]

    MEDIA_TYPE_CHOICES = [
        ('image', 'Image'),
        ('video', 'Video'),
    ]

    RETRYABLE_STATUSES = ('pending', 'failed')

    owner_id = models.IntegerField(db_index=True)
    # Weak link: the asset outlives the artifact or campaign that referenced it
    artifact = models.ForeignKey(
        'generation.GenerationArtifact',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assets',
    )
    source_url = models.URLField(max_length=2048)
    storage_url = models.URLField(max_length=2048, blank=True, default='')
    media_type = models.CharField(max_length=10, choices=MEDIA_TYPE_CHOICES, default='image')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    error_message = models.TextField(blank=True, default='')
    attempts = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def is_video(self):
        return self.media_type == 'video'
