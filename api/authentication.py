"""
Bearer token authentication against the identity provider
"""
import logging

from rest_framework import exceptions
from rest_framework.authentication import BaseAuthentication, get_authorization_header

from apps.accounts.identity import AuthenticatedUser, TokenVerificationError, get_token_verifier

logger = logging.getLogger(__name__)


class BearerTokenAuthentication(BaseAuthentication):
    """
    Authenticates `Authorization: Bearer <id token>` headers.

    Requests without the header stay anonymous so public endpoints keep
    working; a present but invalid token is rejected with 401.
    """
    keyword = 'Bearer'

    def authenticate(self, request):
        auth = get_authorization_header(request).split()
        if not auth or auth[0].lower() != self.keyword.lower().encode():
            return None

        if len(auth) != 2:
            raise exceptions.AuthenticationFailed('Invalid or expired token')

        try:
            token = auth[1].decode()
        except UnicodeError:
            raise exceptions.AuthenticationFailed('Invalid or expired token')

        try:
            claims = get_token_verifier().verify(token)
        except TokenVerificationError as e:
            logger.info(f"Rejected bearer token: {e}")
            raise exceptions.AuthenticationFailed('Invalid or expired token')

        return AuthenticatedUser(claims), token

    def authenticate_header(self, request):
        return self.keyword
