"""Blob storage for event background images."""
import io
import logging
from typing import Protocol
from urllib.parse import quote

from googleapiclient.http import MediaIoBaseUpload

from capture.storage.client import get_storage_service

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    def put(self, path: str, payload: bytes, content_type: str) -> str | None:
        """Store ``payload`` at ``path`` and return its public URL, if any."""
        ...


def public_url(bucket: str, name: str) -> str:
    """Public URL of an object in a bucket."""
    return f"https://storage.googleapis.com/{bucket}/{quote(name, safe='/')}"


class GoogleCloudBlobStore:
    """Objects in a Cloud Storage bucket, written through the JSON API.

    Transport failures (``HttpError``, ``OSError``) and missing credentials
    (``ValueError``) propagate to the caller.
    """

    def __init__(self, bucket: str, service=None):
        self.bucket = bucket
        self._service = service

    def put(self, path: str, payload: bytes, content_type: str) -> str | None:
        """
        Upload ``payload`` as a single request.

        Returns the object's public URL, or None when the response does not
        name the stored object.
        """
        service = self._service or get_storage_service()
        media = MediaIoBaseUpload(io.BytesIO(payload), mimetype=content_type, resumable=False)

        stored = (
            service.objects()
            .insert(
                bucket=self.bucket,
                name=path,
                body={"contentType": content_type},
                media_body=media,
            )
            .execute()
        )

        name = stored.get("name") if stored else None
        if not name:
            logger.error(f"Upload of {path} returned no object name")
            return None

        logger.info(f"Stored {len(payload)} bytes at gs://{self.bucket}/{name}")
        return public_url(self.bucket, name)
