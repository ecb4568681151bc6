"""Credential authenticator — registration and login.

Learn: Service layer separates business logic from HTTP routing.
The authenticator gets its collaborators (user store, password hasher,
token service) through the constructor; nothing here knows about
FastAPI or HTTP status codes.

Enumeration resistance: login answers InvalidCredentials for an unknown
email, a passwordless (OAuth) account, and a wrong password alike, and
registration answers DuplicateEmail whether the proactive lookup or the
database unique constraint caught the duplicate.
"""

import asyncio

import structlog
from sqlalchemy.exc import IntegrityError

from microcrm.auth.jwt import IdentityClaim, TokenService
from microcrm.auth.password import PasswordHasher
from microcrm.db.repositories import UserRepository
from microcrm.errors import DuplicateEmail, InvalidCredentials
from microcrm.schemas.auth import PublicUser

logger = structlog.get_logger()


class CredentialAuthenticator:
    """Registers users and exchanges credentials for access tokens."""

    def __init__(
        self,
        users: UserRepository,
        hasher: PasswordHasher,
        tokens: TokenService,
    ):
        self.users = users
        self.hasher = hasher
        self.tokens = tokens

    async def register(self, email: str, password: str) -> PublicUser:
        if await self.users.get_by_email(email):
            logger.info("auth.register_rejected", reason="duplicate_email")
            raise DuplicateEmail()

        password_hash = await asyncio.to_thread(self.hasher.hash, password)

        try:
            user = await self.users.create(email=email, password_hash=password_hash)
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email.
            logger.info("auth.register_rejected", reason="unique_violation")
            raise DuplicateEmail()

        logger.info("auth.registered", user_id=str(user.id))
        return PublicUser.model_validate(user)

    async def login(self, email: str, password: str) -> tuple[str, PublicUser]:
        user = await self.users.get_by_email(email)

        if not user or not user.password_hash:
            # Burn the same bcrypt time as a real check.
            await asyncio.to_thread(self.hasher.verify_dummy, password)
            logger.info(
                "auth.login_failed",
                reason="unknown_email" if not user else "no_local_password",
            )
            raise InvalidCredentials()

        if not await asyncio.to_thread(self.hasher.verify, password, user.password_hash):
            logger.info("auth.login_failed", reason="wrong_password", user_id=str(user.id))
            raise InvalidCredentials()

        claim = IdentityClaim(user_id=str(user.id), email=user.email)
        token = self.tokens.issue(claim)

        logger.info("auth.logged_in", user_id=claim.user_id)
        return token, PublicUser.model_validate(user)

