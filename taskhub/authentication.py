import jwt
from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed

from .identity import actor_from_claims
from .jwt_utils import validate_jwt_token


class JWTAuthentication(BaseAuthentication):
    keyword = "Bearer"

    def authenticate(self, request):
        """
        Authenticate a request using the JWT provided in the Authorization header.

        Requests without an Authorization header are left unauthenticated so that
        permission classes decide. A malformed header, a token that fails
        verification, or claims without a usable role raise AuthenticationFailed.

        Returns:
            tuple: `(actor, claims)` where `actor` is a `taskhub.identity.Actor`.
        """
        auth_header = request.headers.get("Authorization", "")
        if not auth_header:
            return None

        parts = auth_header.split()
        if len(parts) != 2 or parts[0] != self.keyword:
            raise AuthenticationFailed("Wrong token format. Expected 'Bearer token'")

        try:
            claims = validate_jwt_token(parts[1])
        except jwt.InvalidTokenError as e:
            raise AuthenticationFailed(str(e))

        actor = actor_from_claims(claims)
        if actor is None:
            raise AuthenticationFailed("Token does not identify a known user role")

        return (actor, claims)

    def authenticate_header(self, request):
        return self.keyword
