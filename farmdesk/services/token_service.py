"""Signed, time-limited session tokens."""

from datetime import timedelta
from typing import Any, Dict, Mapping

import jwt

from farmdesk.core.clock import Clock, utcnow


class InvalidTokenError(Exception):
    """Token is malformed, tampered with or expired."""


class SessionTokenService:
    """Issues and validates JWT session tokens."""

    def __init__(
        self,
        jwt_secret: str,
        jwt_algorithm: str = "HS256",
        expiration_days: int = 7,
        clock: Clock = utcnow,
    ):
        if not jwt_secret:
            raise RuntimeError("JWT secret is not configured")
        self.jwt_secret = jwt_secret
        self.jwt_algorithm = jwt_algorithm
        self.expiration_days = expiration_days
        self._clock = clock

    def issue(self, claims: Mapping[str, Any]) -> str:
        """
        Create a JWT carrying ``claims`` plus ``iat`` and ``exp``.

        Args:
            claims: Must include ``sub`` (account id); usually ``email`` too

        Returns:
            JWT token string
        """
        now = self._clock()
        payload = dict(claims)
        payload["iat"] = now
        payload["exp"] = now + timedelta(days=self.expiration_days)
        return jwt.encode(payload, self.jwt_secret, algorithm=self.jwt_algorithm)

    def verify(self, token: str) -> Dict[str, Any]:
        """
        Decode and validate a JWT.

        Raises:
            InvalidTokenError: bad signature, malformed or expired token
        """
        try:
            return jwt.decode(token, self.jwt_secret, algorithms=[self.jwt_algorithm])
        except jwt.ExpiredSignatureError as exc:
            raise InvalidTokenError("Token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidTokenError("Invalid token") from exc
