"""
Identity provider boundary

The storefront never handles passwords. Clients send the provider's ID
token as a bearer token; a TokenVerifier turns it into IdentityClaims and
the role comes from the local UserProfile table.

The verifier class is configured through settings.IDENTITY_TOKEN_VERIFIER
so deployments (and tests) can swap the provider.
"""
import json
import logging
from dataclasses import dataclass
from functools import cached_property, lru_cache
from typing import Optional

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from firebase_admin.exceptions import FirebaseError
from django.conf import settings
from django.utils.module_loading import import_string

from .models import UserProfile

logger = logging.getLogger(__name__)


class TokenVerificationError(Exception):
    """Raised when a bearer token is missing, malformed, expired or revoked."""


@dataclass(frozen=True)
class IdentityClaims:
    uid: str
    email: str = ''
    name: Optional[str] = None
    picture: Optional[str] = None


class AuthenticatedUser:
    """
    Request user backed by identity-provider claims. Quacks enough like a
    Django user for DRF permission checks.
    """
    is_authenticated = True
    is_anonymous = False

    def __init__(self, claims: IdentityClaims):
        self.claims = claims

    def __str__(self):
        return self.claims.email or self.claims.uid

    @property
    def uid(self) -> str:
        return self.claims.uid

    @property
    def email(self) -> str:
        return self.claims.email

    @property
    def name(self) -> Optional[str]:
        return self.claims.name

    @cached_property
    def profile(self) -> Optional[UserProfile]:
        return UserProfile.objects.filter(uid=self.uid).first()

    @property
    def role(self) -> str:
        return self.profile.role if self.profile else UserProfile.ROLE_USER

    @property
    def is_admin(self) -> bool:
        return self.role == UserProfile.ROLE_ADMIN

    @property
    def has_admin_access(self) -> bool:
        return self.role in UserProfile.STAFF_ROLES


class TokenVerifier:
    """Interface for identity-provider adapters."""

    def verify(self, token: str) -> IdentityClaims:
        raise NotImplementedError

    def delete_user(self, uid: str) -> None:
        raise NotImplementedError


class FirebaseTokenVerifier(TokenVerifier):
    """
    Verifies Firebase ID tokens with firebase-admin.

    Credentials come from FIREBASE_SERVICE_ACCOUNT (the whole service
    account JSON), or FIREBASE_PROJECT_ID / FIREBASE_CLIENT_EMAIL /
    FIREBASE_PRIVATE_KEY, or application default credentials.
    """
    app_name = 'storefront'

    def _credentials(self):
        service_account = getattr(settings, 'FIREBASE_SERVICE_ACCOUNT', '')
        if service_account:
            return credentials.Certificate(json.loads(service_account))

        project_id = getattr(settings, 'FIREBASE_PROJECT_ID', '')
        client_email = getattr(settings, 'FIREBASE_CLIENT_EMAIL', '')
        private_key = getattr(settings, 'FIREBASE_PRIVATE_KEY', '')
        if project_id and client_email and private_key:
            return credentials.Certificate({
                'type': 'service_account',
                'project_id': project_id,
                'client_email': client_email,
                'private_key': private_key.replace('\\n', '\n'),
                'token_uri': 'https://oauth2.googleapis.com/token',
            })

        logger.warning("No Firebase service account configured, using application default credentials")
        return credentials.ApplicationDefault()

    @cached_property
    def app(self):
        try:
            return firebase_admin.get_app(self.app_name)
        except ValueError:
            logger.info("Initializing Firebase Admin app")
            return firebase_admin.initialize_app(self._credentials(), name=self.app_name)

    def verify(self, token: str) -> IdentityClaims:
        try:
            decoded = firebase_auth.verify_id_token(token, app=self.app)
        except (ValueError, FirebaseError) as e:
            raise TokenVerificationError(str(e)) from e

        return IdentityClaims(
            uid=decoded['uid'],
            email=decoded.get('email', ''),
            name=decoded.get('name'),
            picture=decoded.get('picture'),
        )

    def delete_user(self, uid: str) -> None:
        try:
            firebase_auth.delete_user(uid, app=self.app)
        except firebase_auth.UserNotFoundError:
            logger.info(f"Identity provider has no user {uid}, nothing to delete")


@lru_cache(maxsize=None)
def _load_verifier(path: str) -> TokenVerifier:
    return import_string(path)()


def get_token_verifier() -> TokenVerifier:
    """Return the configured verifier instance (one per dotted path)."""
    return _load_verifier(settings.IDENTITY_TOKEN_VERIFIER)
