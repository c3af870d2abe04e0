"""
JWT utilities for the taskhub application.

Tokens carry the identity claims the messaging engine needs: the subject
(user id), the user's role and a display name. Issuance normally happens in the
external identity provider; `generate_test_token` exists for tests and local
development.
"""

import time

import jwt
from django.conf import settings


class JWTManager:
    """
    JWT Manager for token generation and validation.
    """

    def __init__(self):
        # Settings are read lazily so tests can override them
        self._secret = None
        self._algorithm = None
        self._public_key = None

    def _get_secret(self):
        if self._secret is None:
            self._secret = getattr(settings, 'JWT_SECRET', 'taskhub-development-jwt-secret')
        return self._secret

    def _get_algorithm(self):
        if self._algorithm is None:
            self._algorithm = getattr(settings, 'JWT_ALGORITHM', 'HS256')
        return self._algorithm

    def _get_public_key(self):
        if self._public_key is None:
            if self._get_algorithm() == 'HS256':
                self._public_key = self._get_secret()
            else:
                # Asymmetric algorithms verify with the configured public key
                self._public_key = getattr(settings, 'JWT_PUBLIC_KEY', None) or self._get_secret()
        return self._public_key

    def generate_token(self, user_id, role, name=None, expires_in_hours=24):
        """
        Generate a signed JWT for a user.

        Args:
            user_id (str): The user ID placed in the `sub` claim
            role (str): One of admin, client or freelancer
            name (str): Optional display name
            expires_in_hours (int): Token lifetime in hours

        Returns:
            str: JWT token string
        """
        now = int(time.time())
        payload = {
            'sub': user_id,
            'role': role,
            'iat': now,
            'exp': now + (expires_in_hours * 3600),
        }
        if name:
            payload['name'] = name

        return jwt.encode(payload, self._get_secret(), algorithm=self._get_algorithm())

    def validate_token(self, token):
        """
        Validate a JWT token and extract the payload.

        Raises:
            jwt.InvalidTokenError: If token is invalid or expired
        """
        try:
            return jwt.decode(
                token,
                self._get_public_key(),
                algorithms=[self._get_algorithm()],
            )
        except jwt.ExpiredSignatureError:
            raise jwt.InvalidTokenError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise jwt.InvalidTokenError(f"Invalid token: {str(e)}")

    def extract_user_id(self, token):
        """Return the `sub` claim, or None when the token does not validate."""
        try:
            payload = self.validate_token(token)
            return payload.get('sub')
        except jwt.InvalidTokenError:
            return None


_jwt_manager = None


def _get_jwt_manager():
    """Get the global JWT manager instance, creating it if needed."""
    global _jwt_manager
    if _jwt_manager is None:
        _jwt_manager = JWTManager()
    return _jwt_manager


def generate_test_token(user_id, role, name=None, expires_in_hours=24):
    """Generate a JWT for the given user ID and role."""
    return _get_jwt_manager().generate_token(user_id, role, name, expires_in_hours)


def validate_jwt_token(token):
    """Validate a JWT token and return the payload."""
    return _get_jwt_manager().validate_token(token)


def get_user_id_from_token(token):
    """Extract user ID from JWT token."""
    return _get_jwt_manager().extract_user_id(token)
