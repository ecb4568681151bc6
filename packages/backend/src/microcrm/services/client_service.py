"""Client service — ownership-scoped client record access.

Learn: Every operation takes the caller's owner_id (from the verified
identity claim, never from the request body). Reads, updates and deletes
go through one lookup filtered by BOTH the client id and the owner id:
a client that exists but belongs to someone else is indistinguishable
from one that doesn't exist. Both are NotFound, never "forbidden".
"""

import math
import uuid
from collections.abc import Mapping
from typing import Any

import structlog
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError

from microcrm.db.models import Client
from microcrm.db.repositories import ClientRepository
from microcrm.errors import NotFound, Unauthorized

logger = structlog.get_logger()

# Columns a caller may set. Ownership and ids are never taken from input.
WRITABLE_FIELDS = ("name", "email", "phone", "notes")


def _as_uuid(value: uuid.UUID | str) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _writable(payload: BaseModel | Mapping[str, Any], partial: bool) -> dict[str, Any]:
    if isinstance(payload, BaseModel):
        data = payload.model_dump(exclude_unset=partial)
    else:
        data = dict(payload)
    return {k: v for k, v in data.items() if k in WRITABLE_FIELDS}


class ClientService:
    """Business logic for client records."""

    def __init__(
        self,
        repo: ClientRepository,
        default_page_size: int = 10,
        max_page_size: int = 100,
    ):
        self.repo = repo
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    def _owner(self, owner_id: uuid.UUID | str) -> uuid.UUID:
        owner = _as_uuid(owner_id)
        if owner is None:
            raise Unauthorized()
        return owner

    async def create(
        self, payload: BaseModel | Mapping[str, Any], owner_id: uuid.UUID | str
    ) -> Client:
        owner = self._owner(owner_id)
        try:
            client = await self.repo.add(owner, _writable(payload, partial=False))
        except IntegrityError:
            # Token outlived its user: the owner row is gone
            logger.info("clients.create_orphaned", user_id=str(owner))
            raise Unauthorized()
        logger.info("clients.created", client_id=str(client.id), user_id=str(owner))
        return client

    async def get(self, client_id: uuid.UUID | str, owner_id: uuid.UUID | str) -> Client:
        owner = self._owner(owner_id)
        cid = _as_uuid(client_id)
        client = await self.repo.find_owned(cid, owner) if cid else None
        if client is None:
            raise NotFound("Client not found")
        return client

    async def update(
        self,
        client_id: uuid.UUID | str,
        patch: BaseModel | Mapping[str, Any],
        owner_id: uuid.UUID | str,
    ) -> Client:
        client = await self.get(client_id, owner_id)
        changes = _writable(patch, partial=True)
        client = await self.repo.save(client, changes)
        logger.info("clients.updated", client_id=str(client.id), fields=sorted(changes))
        return client

    async def delete(self, client_id: uuid.UUID | str, owner_id: uuid.UUID | str) -> None:
        client = await self.get(client_id, owner_id)
        await self.repo.remove(client)
        logger.info("clients.deleted", client_id=str(client.id))

    async def list(
        self,
        owner_id: uuid.UUID | str,
        page: int = 1,
        page_size: int | None = None,
        search: str | None = None,
    ) -> dict[str, Any]:
        """One page of the owner's clients, optionally filtered by name.

        page and page_size below 1 are clamped to 1; page_size is capped
        at max_page_size. A page past the end is empty but still reports
        the full filtered total.
        """
        owner = self._owner(owner_id)
        page = max(1, page)
        if page_size is None:
            page_size = self.default_page_size
        page_size = min(max(1, page_size), self.max_page_size)
        data, total = await self.repo.page_owned(
            owner,
            offset=(page - 1) * page_size,
            limit=page_size,
            search=search or None,
        )
        return {
            "data": data,
            "total": total,
            "page": page,
            "page_size": page_size,
            "total_pages": math.ceil(total / page_size),
        }
