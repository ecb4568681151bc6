"""Client API routes.

Learn: Every route takes the caller's IdentityClaim from the auth guard
and passes claim.user_id into the service as owner_id. Client ids are
taken as plain strings so that a malformed id is the same 404 as an id
that belongs to someone else.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from microcrm.auth.dependencies import get_current_identity, get_settings
from microcrm.auth.jwt import IdentityClaim
from microcrm.config import Settings
from microcrm.db.engine import get_db
from microcrm.db.repositories import ClientRepository
from microcrm.schemas.client import ClientCreate, ClientPage, ClientRead, ClientUpdate
from microcrm.services.client_service import ClientService

router = APIRouter(prefix="/clients")


def _svc(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ClientService:
    return ClientService(
        ClientRepository(db),
        default_page_size=settings.default_page_size,
        max_page_size=settings.max_page_size,
    )


@router.post("", response_model=ClientRead, status_code=201)
async def create_client(
    body: ClientCreate,
    identity: IdentityClaim = Depends(get_current_identity),
    svc: ClientService = Depends(_svc),
):
    """Create a client owned by the caller. Any owner field in the body is ignored."""
    return await svc.create(body, owner_id=identity.user_id)


@router.get("", response_model=ClientPage)
async def list_clients(
    page: int = Query(1, description="Page number, values below 1 are treated as 1"),
    page_size: Optional[int] = Query(None, description="Items per page"),
    search: Optional[str] = Query(None, description="Case-insensitive name substring"),
    identity: IdentityClaim = Depends(get_current_identity),
    svc: ClientService = Depends(_svc),
):
    return await svc.list(
        identity.user_id, page=page, page_size=page_size, search=search
    )


@router.get("/{client_id}", response_model=ClientRead)
async def get_client(
    client_id: str,
    identity: IdentityClaim = Depends(get_current_identity),
    svc: ClientService = Depends(_svc),
):
    return await svc.get(client_id, owner_id=identity.user_id)


@router.patch("/{client_id}", response_model=ClientRead)
async def update_client(
    client_id: str,
    body: ClientUpdate,
    identity: IdentityClaim = Depends(get_current_identity),
    svc: ClientService = Depends(_svc),
):
    """Partial update — only fields present in the body change."""
    return await svc.update(client_id, body, owner_id=identity.user_id)


@router.delete("/{client_id}", status_code=204)
async def delete_client(
    client_id: str,
    identity: IdentityClaim = Depends(get_current_identity),
    svc: ClientService = Depends(_svc),
):
    await svc.delete(client_id, owner_id=identity.user_id)
    return Response(status_code=204)
