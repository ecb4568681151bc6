"""JWT access token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication — no
session table. The token carries the user's id (sub) and email, signed
with HS256 under a server-held secret, and expires after a short TTL
(15 minutes by default). There is no refresh or revocation: a leaked
token is valid until it expires.

PyJWT's exception hierarchy is flattened into three domain errors:
InvalidSignature, Expired, Malformed. Callers outside auth only ever see
Unauthorized.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from microcrm.errors import Expired, InvalidSignature, Malformed


@dataclass(frozen=True)
class IdentityClaim:
    """The verified identity behind a request. Lives for one request."""

    user_id: str
    email: str


class TokenService:
    """Issues and validates signed, time-limited access tokens."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        expires_minutes: int = 15,
    ):
        if not secret:
            raise ValueError("JWT secret must not be empty")
        self.secret = secret
        self.algorithm = algorithm
        self.expires_minutes = expires_minutes

    def issue(self, claim: IdentityClaim, expires_minutes: int | None = None) -> str:
        """Create a signed access token for the claim."""
        now = datetime.now(timezone.utc)
        ttl = self.expires_minutes if expires_minutes is None else expires_minutes
        payload = {
            "sub": claim.user_id,
            "email": claim.email,
            "iat": now,
            "exp": now + timedelta(minutes=ttl),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def validate(self, token: str) -> IdentityClaim:
        """Verify a token and return the claim it carries.

        Raises Expired, InvalidSignature or Malformed.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise Expired("Token has expired")
        # InvalidSignatureError subclasses DecodeError, so it goes first.
        except jwt.InvalidSignatureError:
            raise InvalidSignature("Token signature mismatch")
        except jwt.InvalidTokenError as e:
            raise Malformed(f"Invalid token: {e}")

        user_id = payload.get("sub")
        email = payload.get("email")
        if not isinstance(user_id, str) or not isinstance(email, str):
            raise Malformed("Token is missing identity claims")
        return IdentityClaim(user_id=user_id, email=email)
