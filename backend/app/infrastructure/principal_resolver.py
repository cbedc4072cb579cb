"""JWT Principal Resolver: turns an Authorization header into a Principal.

Invariants:
    - resolve() never raises; any missing, malformed, expired or forged
      credential yields None
    - The subject claim ("sub") must be a positive integer user id
    - Tokens are issued by the external auth service; this module only verifies
    - Both "Bearer <token>" and "JWT <token>" are accepted (scheme is
      case-insensitive); the mobile and web clients send the latter

Design Decisions:
    - PyJWT with a shared secret (HS256 by default); algorithm pinned per
      settings so "alg: none" tokens are rejected by jwt.decode
"""

import logging

import jwt

from app.core.domain_types import Principal
from app.core.errors import InvalidRequestError
from app.core.validate_input import parse_identifier

logger = logging.getLogger(__name__)

TOKEN_SCHEMES = ("bearer", "jwt")


class JWTPrincipalResolver:
    """Bearer-token resolver backed by PyJWT."""

    def __init__(
        self, secret: str, algorithm: str = "HS256", audience: str | None = None,
    ):
        self._secret = secret
        self._algorithm = algorithm
        self._audience = audience

    def resolve(self, authorization: str | None) -> Principal | None:
        token = _bearer_token(authorization)
        if token is None:
            return None
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience,
                options={"require": ["sub"]},
            )
        except jwt.PyJWTError as e:
            logger.info(f"Rejected bearer token: {e}")
            return None
        try:
            user_id = parse_identifier(claims.get("sub"), "sub")
        except InvalidRequestError:
            logger.info("Rejected bearer token: non-numeric subject")
            return None
        return Principal(user_id=user_id)


def _bearer_token(authorization: str | None) -> str | None:
    """Token part of an Authorization header, or None for an unknown scheme."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() not in TOKEN_SCHEMES or not token:
        return None
    return token
