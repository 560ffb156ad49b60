"""Authorized Cloud Storage JSON API service for event image uploads.

Access uses a refresh token obtained once with ``scripts/get_token.py``.
The credentials and the discovery-built service are cached per process.
"""
import logging

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from capture.core.config import settings

logger = logging.getLogger(__name__)

STORAGE_SCOPE = "https://www.googleapis.com/auth/devstorage.read_write"
TOKEN_URI = "https://oauth2.googleapis.com/token"

_credentials: Credentials | None = None
_service = None


def storage_configured() -> bool:
    """Whether both a refresh token and a bucket are set."""
    return bool(settings.google_refresh_token and settings.storage_bucket)


def _valid_credentials() -> Credentials:
    """Cached credentials, refreshed when the access token has lapsed."""
    global _credentials

    if _credentials is None:
        _credentials = Credentials(
            token=None,
            refresh_token=settings.google_refresh_token,
            token_uri=TOKEN_URI,
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            scopes=[STORAGE_SCOPE],
        )

    if not _credentials.valid:
        try:
            _credentials.refresh(Request())
        except GoogleAuthError as e:
            _credentials = None
            raise ValueError(f"Could not refresh storage credentials: {e}") from e
        logger.info("Refreshed Cloud Storage credentials")

    return _credentials


def get_storage_service():
    """
    Cloud Storage v1 service bound to the cached credentials.

    Raises:
        ValueError: if storage is not configured or the refresh token is
            rejected.
    """
    global _service

    if not storage_configured():
        raise ValueError(
            "Cloud Storage is not configured. Set STORAGE_BUCKET and run "
            "'python scripts/get_token.py' for GOOGLE_REFRESH_TOKEN."
        )

    credentials = _valid_credentials()
    if _service is None:
        _service = build("storage", "v1", credentials=credentials, cache_discovery=False)
    return _service
