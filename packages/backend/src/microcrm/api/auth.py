"""Auth API — registration, login, identity.

Learn: Routes for user authentication:
- POST /auth/register → create a new user account
- POST /auth/login → email/password → JWT access token
- GET /auth/profile → identity as carried by the token
- GET /auth/me → current user re-read from the database

Routes only translate HTTP ↔ service calls. Errors (DuplicateEmail,
InvalidCredentials, Unauthorized) are raised by the service/guard and
rendered by the exception handler in main.py.
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from microcrm.auth.dependencies import (
    get_current_identity,
    get_password_hasher,
    get_token_service,
)
from microcrm.auth.jwt import IdentityClaim, TokenService
from microcrm.auth.password import PasswordHasher
from microcrm.db.engine import get_db
from microcrm.db.repositories import UserRepository
from microcrm.errors import Unauthorized
from microcrm.schemas.auth import (
    LoginRequest,
    LoginResponse,
    ProfileRead,
    RegisterRequest,
    RegisterResponse,
    UserRead,
)
from microcrm.services.auth_service import CredentialAuthenticator

router = APIRouter(prefix="/auth")


def _svc(
    db: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
    tokens: TokenService = Depends(get_token_service),
) -> CredentialAuthenticator:
    return CredentialAuthenticator(UserRepository(db), hasher, tokens)


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(body: RegisterRequest, svc: CredentialAuthenticator = Depends(_svc)):
    """Create a new user account on the free plan."""
    user = await svc.register(body.email, body.password)
    return RegisterResponse(user=user)


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, svc: CredentialAuthenticator = Depends(_svc)):
    """Login with email and password → JWT access token."""
    token, user = await svc.login(body.email, body.password)
    return LoginResponse(access_token=token, user=user)


@router.get("/profile", response_model=ProfileRead)
async def get_profile(identity: IdentityClaim = Depends(get_current_identity)):
    """Identity from the verified token. No database round trip."""
    return ProfileRead(id=identity.user_id, email=identity.email)


@router.get("/me", response_model=UserRead)
async def get_me(
    identity: IdentityClaim = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Current user's record, re-read from the database.

    Learn: The token is signed once at login and never refreshed, so
    anything beyond id/email must come from the store, not the claim.
    A token for a user that no longer exists is rejected.
    """
    try:
        user_id = uuid.UUID(identity.user_id)
    except ValueError:
        raise Unauthorized()

    user = await UserRepository(db).get_by_id(user_id)
    if not user:
        raise Unauthorized()
    return user
