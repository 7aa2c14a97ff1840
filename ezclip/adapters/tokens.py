"""
JWT token adapter - Implements TokenIssuer protocol.

Issues HS256-signed tokens carrying the standard claims:
- sub (user id, or admin email for admin tokens)
- iat (issued at time)
- exp (expiration time)
- role (only on admin tokens)
"""

from datetime import timedelta
from typing import Any

import jwt

from ezclip.domain.exceptions import InvalidToken
from ezclip.domain.ports import Clock

ALGORITHM = "HS256"


class JwtTokenIssuer:
    """Implements TokenIssuer protocol via PyJWT."""

    def __init__(self, secret: str, clock: Clock, lifetime: timedelta = timedelta(days=7)) -> None:
        """
        Initialize issuer.

        Args:
            secret: HMAC signing secret
            clock: Time source for iat/exp
            lifetime: Default token lifetime
        """
        self._secret = secret
        self._clock = clock
        self._lifetime = lifetime

    def issue(self, subject: str, role: str | None = None, expires_in: timedelta | None = None) -> str:
        now = self._clock.now()
        claims: dict[str, Any] = {
            "sub": subject,
            "iat": now,
            "exp": now + (expires_in or self._lifetime),
        }
        if role is not None:
            claims["role"] = role
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def decode(self, token: str) -> dict[str, Any]:
        """
        Validate signature and expiry, return the claims.

        Expiry is checked against the injected clock rather than
        PyJWT's own wall-clock check.

        Raises:
            InvalidToken: Bad signature, malformed token or expired
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"verify_exp": False, "verify_iat": False, "require": ["sub", "exp"]},
            )
        except jwt.PyJWTError as e:
            raise InvalidToken("Invalid token") from e

        if claims["exp"] <= self._clock.now().timestamp():
            raise InvalidToken("Token expired")
        return claims
