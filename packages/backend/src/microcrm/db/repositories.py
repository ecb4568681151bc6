"""Repositories — the user store and the client store.

Learn: Repositories are the only code that talks SQL. Each one wraps the
request's AsyncSession and exposes a handful of lookup/insert/update/delete
calls built from parameterized select() statements. Services
(auth_service, client_service) hold the rules; repositories hold the queries.
"""

import uuid
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from microcrm.db.models import AuthProvider, Client, User


def escape_like(term: str, escape: str = "\\") -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return (
        term.replace(escape, escape * 2)
        .replace("%", f"{escape}%")
        .replace("_", f"{escape}_")
    )


class UserRepository:
    """User lookups and inserts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def get_by_id(self, user_id: uuid.UUID) -> User | None:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalars().first()

    async def create(
        self,
        email: str,
        password_hash: str | None,
        provider: AuthProvider = AuthProvider.LOCAL,
    ) -> User:
        """Insert a user and commit.

        Raises sqlalchemy.exc.IntegrityError when the email is taken; the
        session is rolled back before the error propagates.
        """
        user = User(email=email, password_hash=password_hash, provider=provider)
        self.db.add(user)
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.db.refresh(user)
        return user


class ClientRepository:
    """Client queries. Every read and write is filtered by owner."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    async def add(self, owner_id: uuid.UUID, fields: dict[str, Any]) -> Client:
        client = Client(**fields, user_id=owner_id)
        self.db.add(client)
        await self._commit()
        await self.db.refresh(client)
        return client

    async def find_owned(
        self, client_id: uuid.UUID, owner_id: uuid.UUID
    ) -> Client | None:
        """Single lookup by id AND owner."""
        result = await self.db.execute(
            select(Client).where(Client.id == client_id, Client.user_id == owner_id)
        )
        return result.scalars().first()

    async def save(self, client: Client, changes: dict[str, Any]) -> Client:
        for field, value in changes.items():
            setattr(client, field, value)
        await self._commit()
        await self.db.refresh(client)
        return client

    async def remove(self, client: Client) -> None:
        await self.db.delete(client)
        await self._commit()

    async def page_owned(
        self,
        owner_id: uuid.UUID,
        offset: int,
        limit: int,
        search: str | None = None,
    ) -> tuple[list[Client], int]:
        """One page of the owner's clients plus the filtered total."""
        conditions = [Client.user_id == owner_id]
        if search:
            conditions.append(
                Client.name.ilike(f"%{escape_like(search)}%", escape="\\")
            )

        total = await self.db.scalar(
            select(func.count()).select_from(Client).where(*conditions)
        )
        total = total or 0
        # Past the end: skip the row query so huge offsets never reach the driver
        if offset >= total:
            return [], total
        result = await self.db.execute(
            select(Client)
            .where(*conditions)
            .order_by(Client.created_at.desc(), Client.id)
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total
