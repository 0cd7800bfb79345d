# apps/creatives/storage.py
import logging
import mimetypes
import uuid

from django.conf import settings
from django.utils import timezone
from google.api_core.exceptions import GoogleAPICallError
from google.cloud import storage

from core.exceptions import StorageError

logger = logging.getLogger(__name__)

CACHE_CONTROL = 'public, max-age=3600'


class AssetStorage:
    def __init__(self, client=None, bucket_name=None):
        self._client = client
        self.bucket_name = bucket_name or settings.GS_BUCKET_NAME

    @property
    def client(self):
        if self._client is None:
            self._client = storage.Client()
        return self._client

    def blob_name(self, owner_id, content_type):
        extension = mimetypes.guess_extension(content_type or '') or '.bin'
        timestamp = timezone.now().strftime('%Y%m%dT%H%M%S')
        return f"owner_{owner_id}/{timestamp}-{uuid.uuid4().hex}{extension}"

    def upload_asset(self, data, owner_id, content_type='image/png'):
        bucket = self.client.bucket(self.bucket_name)
        blob = bucket.blob(self.blob_name(owner_id, content_type))
        blob.cache_control = CACHE_CONTROL

        try:
            blob.upload_from_string(data, content_type=content_type)
            blob.make_public()
        except GoogleAPICallError as exc:
            raise StorageError(
                f"Upload to gs://{self.bucket_name}/{blob.name} failed: {exc}",
                status_code=getattr(exc, 'code', None),
            ) from exc

        logger.info(f"Uploaded {len(data)} bytes to gs://{self.bucket_name}/{blob.name}")
        return blob.public_url

    def get_public_url(self, blob_name):
        return f"https://storage.googleapis.com/{self.bucket_name}/{blob_name}"
