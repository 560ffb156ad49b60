"""Caller identity for event operations.

Sign-in is handled by Firebase Authentication on the client. Requests carry
the resulting ID token as a bearer token; this module turns it into the
user id the gateway checks ownership against.
"""
import logging
from typing import Protocol

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2 import id_token

from capture.core.config import settings

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


class IdentityProvider(Protocol):
    def current_user_id(self) -> str | None:
        """The signed-in user's id, or None when unauthenticated."""
        ...


class StaticIdentity:
    """A fixed identity, for background jobs and tests."""

    def __init__(self, user_id: str | None = None):
        self.user_id = user_id or None

    def current_user_id(self) -> str | None:
        return self.user_id


class FirebaseIdentity:
    """Identity taken from a Firebase ID token, verified on first use."""

    def __init__(self, token: str, project_id: str | None = None):
        self.token = token
        self.project_id = project_id
        self._checked = False
        self._user_id: str | None = None

    def current_user_id(self) -> str | None:
        if not self._checked:
            self._user_id = self._verify()
            self._checked = True
        return self._user_id

    def _verify(self) -> str | None:
        try:
            claims = id_token.verify_firebase_token(
                self.token, Request(), audience=self.project_id
            )
        except (ValueError, GoogleAuthError) as e:
            logger.warning(f"Rejected ID token: {e}")
            return None

        if not claims:
            return None
        return claims.get("user_id") or claims.get("sub")


def get_identity(
    creds: HTTPAuthorizationCredentials | None = Depends(security),
) -> IdentityProvider:
    """Dependency resolving the caller from the Authorization header."""
    if not creds:
        return StaticIdentity(None)
    return FirebaseIdentity(creds.credentials, settings.firebase_project_id or None)
