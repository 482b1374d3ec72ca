"""
Access token issuance and verification.

Claims are turned into a signed JWT by a pure function (encode_claims); the
TokenSigner holds the secret, algorithm, lifetime and clock configured once at
startup and never mutated afterwards.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt

from .errors import UnauthorizedError

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenClaims:
    """Claims carried by an access token."""

    identity: str
    issued_at: datetime
    expires_at: datetime

    def to_payload(self) -> dict:
        return {
            "sub": self.identity,
            "iat": int(self.issued_at.timestamp()),
            "exp": int(self.expires_at.timestamp()),
        }

    @classmethod
    def from_payload(cls, payload: dict) -> "TokenClaims":
        return cls(
            identity=str(payload["sub"]),
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )


@dataclass(frozen=True)
class IssuedToken:
    """A signed access token together with the claims it encodes."""

    access_token: str
    claims: TokenClaims


# PUBLIC_INTERFACE
def encode_claims(claims: TokenClaims, secret: str, algorithm: str = "HS256") -> str:
    """Sign claims into a compact JWT. Deterministic for fixed inputs."""
    return jwt.encode(claims.to_payload(), secret, algorithm=algorithm)


class TokenSigner:
    """
    Issues and verifies access tokens with a process-held secret.

    Args:
        secret: HMAC signing secret.
        algorithm: PyJWT algorithm name.
        expires_in: token lifetime.
        clock: returns the current aware UTC datetime; injectable for tests.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        expires_in: timedelta = timedelta(minutes=60),
        clock: Clock = utc_now,
    ) -> None:
        if not secret:
            raise ValueError("token signing secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm
        self._expires_in = expires_in
        self._clock = clock

    def issue(self, identity: str) -> IssuedToken:
        # JWT timestamps have one-second resolution.
        now = self._clock().replace(microsecond=0)
        claims = TokenClaims(identity=identity, issued_at=now, expires_at=now + self._expires_in)
        return IssuedToken(access_token=encode_claims(claims, self._secret, self._algorithm), claims=claims)

    def verify(self, token: str) -> TokenClaims:
        """
        Validate signature and expiry and return the token's claims.

        Raises:
            UnauthorizedError: for any invalid, tampered or expired token.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "iat", "exp"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise UnauthorizedError("Token has expired") from e
        except jwt.InvalidTokenError as e:
            raise UnauthorizedError("Invalid token") from e
        return TokenClaims.from_payload(payload)
