"""Pydantic schemas for registration, login and identity.

Learn: PublicUser is the only user shape that leaves the auth service;
it has no password_hash field, so a hash can't leak through a response
model by accident.
"""

import uuid
from datetime import datetime
from typing import Annotated

from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, BaseModel, Field

from microcrm.db.models import AuthProvider, SubscriptionPlan


def _check_email(value: str) -> str:
    """Reject malformed addresses but keep the caller's exact spelling.

    Learn: pydantic's EmailStr returns the normalized form (lowercased
    domain), which would make Bob@Example.COM and Bob@example.com the same
    account. Emails are stored and matched exactly as given.
    """
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValueError(f"value is not a valid email address: {e}") from e
    return value


Email = Annotated[str, AfterValidator(_check_email)]


class RegisterRequest(BaseModel):
    email: Email
    password: str = Field(min_length=8)


class LoginRequest(BaseModel):
    email: Email
    password: str = Field(min_length=1)


class PublicUser(BaseModel):
    id: uuid.UUID
    email: str
    plan: SubscriptionPlan

    model_config = {"from_attributes": True}


class RegisterResponse(BaseModel):
    user: PublicUser


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: PublicUser


class ProfileRead(BaseModel):
    """Identity as carried by the token (no store lookup)."""
    id: str
    email: str


class UserRead(BaseModel):
    """Fresh user data from the store."""
    id: uuid.UUID
    email: str
    plan: SubscriptionPlan
    provider: AuthProvider
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
