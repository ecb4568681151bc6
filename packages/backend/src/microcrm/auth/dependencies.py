"""FastAPI auth dependencies — the access guard.

Learn: These are used as Depends() in route handlers (and at
include_router level) to extract and validate the caller's identity.

The guard fails closed. The Authorization header must be exactly
"Bearer <token>": case-sensitive scheme, one space, a non-empty token
without whitespace. A missing header, a wrong scheme, a double space,
an expired, forged or garbled token: each becomes the same 401. Which one
it was is logged server-side (never the token itself).
"""

from typing import Optional

import structlog
from fastapi import Depends, Header, Request

from microcrm.auth.jwt import IdentityClaim, TokenService
from microcrm.auth.password import PasswordHasher
from microcrm.config import Settings
from microcrm.errors import TokenError, Unauthorized

logger = structlog.get_logger()

BEARER_PREFIX = "Bearer "


# ─── App-wide collaborators (built once in create_app) ────────────


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


# ─── Guard ────────────────────────────────────────────────────────


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Return the token from an Authorization header value.

    Raises Unauthorized for anything but "Bearer <token>".
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise Unauthorized()
    token = authorization[len(BEARER_PREFIX):]
    if not token or any(ch.isspace() for ch in token):
        raise Unauthorized()
    return token


async def get_current_identity(
    request: Request,
    authorization: Optional[str] = Header(None),
    tokens: TokenService = Depends(get_token_service),
) -> IdentityClaim:
    """Resolve the request's bearer token into an IdentityClaim (401 otherwise).

    The claim is also kept on request.state.identity and its user_id is
    bound into the structlog context for the rest of the request.
    """
    try:
        token = extract_bearer_token(authorization)
    except Unauthorized:
        logger.info(
            "auth.token_rejected",
            reason="missing_header" if not authorization else "bad_scheme",
        )
        raise

    try:
        claim = tokens.validate(token)
    except TokenError as e:
        logger.info("auth.token_rejected", reason=e.reason)
        raise Unauthorized() from e

    request.state.identity = claim
    structlog.contextvars.bind_contextvars(user_id=claim.user_id)
    return claim
