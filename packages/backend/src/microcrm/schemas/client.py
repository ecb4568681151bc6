"""Pydantic schemas for client records.

Learn: Separate "Create" schemas (input) from "Read" schemas (output).
Unknown fields are dropped on input, so a payload that smuggles in
user_id/owner_id never reaches the service.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from microcrm.schemas.auth import Email


class ClientCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[Email] = None
    phone: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = Field(None, max_length=1000)


class ClientUpdate(BaseModel):
    """Partial update — only fields present in the request are applied."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[Email] = None
    phone: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("name")
    @classmethod
    def name_not_null(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("name cannot be null")
        return v


class ClientRead(BaseModel):
    id: uuid.UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None
    user_id: uuid.UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ClientPage(BaseModel):
    data: list[ClientRead]
    total: int
    page: int
    page_size: int
    total_pages: int
