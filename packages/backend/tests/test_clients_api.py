"""Client API tests — CRUD, tenant isolation, pagination, search.

Learn: Each test registers real users and talks to the API with their
tokens. "owner" and "other" are two tenants; anything "other" tries on
the owner's clients must look exactly like the client doesn't exist.

Pattern: test_<verb>_<noun>_<scenario>
"""

import uuid

import pytest
from sqlalchemy import delete, func, select

from conftest import register_and_login, unique_email
from microcrm.db.models import Client, User


async def create_client(client, headers, **fields):
    body = {"name": "John Doe", **fields}
    r = await client.post("/api/v1/clients", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


# ═══════════════════════════════════════════════════════════
# Create
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_client(client, auth_headers):
    data = await create_client(
        client,
        auth_headers,
        name="John Doe",
        email="john@example.com",
        phone="+1234567890",
        notes="VIP client",
    )
    assert data["name"] == "John Doe"
    assert data["email"] == "john@example.com"
    assert data["phone"] == "+1234567890"
    assert data["notes"] == "VIP client"
    assert uuid.UUID(data["id"])
    assert "created_at" in data
    assert "updated_at" in data


@pytest.mark.asyncio
async def test_create_client_only_name_required(client, auth_headers):
    data = await create_client(client, auth_headers, name="Minimal")
    assert data["email"] is None
    assert data["phone"] is None
    assert data["notes"] is None


@pytest.mark.asyncio
async def test_create_client_keeps_email_as_given(client, auth_headers):
    data = await create_client(client, auth_headers, email="Ann.Lee@Example.ORG")
    assert data["email"] == "Ann.Lee@Example.ORG"


@pytest.mark.asyncio
async def test_create_client_validates_body(client, auth_headers):
    r = await client.post("/api/v1/clients", json={"email": "x@example.com"}, headers=auth_headers)
    assert r.status_code == 422
    r = await client.post("/api/v1/clients", json={"name": ""}, headers=auth_headers)
    assert r.status_code == 422
    r = await client.post(
        "/api/v1/clients", json={"name": "Bad Email", "email": "nope"}, headers=auth_headers
    )
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_create_client_ignores_payload_owner(client):
    owner_headers, owner = await register_and_login(client, unique_email("owner"))
    _, victim = await register_and_login(client, unique_email("victim"))

    data = await create_client(
        client,
        owner_headers,
        name="Spoofed",
        user_id=victim["user"]["id"],
        owner_id=victim["user"]["id"],
    )
    assert data["user_id"] == owner["user"]["id"]


# ═══════════════════════════════════════════════════════════
# Read / Update / Delete
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_get_client(client, auth_headers):
    created = await create_client(client, auth_headers, name="Alice Johnson")
    r = await client.get(f"/api/v1/clients/{created['id']}", headers=auth_headers)
    assert r.status_code == 200
    assert r.json() == created


@pytest.mark.asyncio
async def test_get_client_not_found(client, auth_headers):
    r = await client.get(f"/api/v1/clients/{uuid.uuid4()}", headers=auth_headers)
    assert r.status_code == 404
    assert r.json() == {"detail": "Client not found"}


@pytest.mark.asyncio
async def test_get_client_malformed_id_is_not_found(client, auth_headers):
    r = await client.get("/api/v1/clients/not-a-uuid", headers=auth_headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_update_client_partial(client, auth_headers):
    created = await create_client(
        client, auth_headers, name="Jane Roe", email="jane@example.com", notes="Old notes"
    )
    r = await client.patch(
        f"/api/v1/clients/{created['id']}",
        json={"notes": "Updated notes"},
        headers=auth_headers,
    )
    assert r.status_code == 200
    updated = r.json()
    assert updated["notes"] == "Updated notes"
    # Absent fields untouched
    assert updated["name"] == "Jane Roe"
    assert updated["email"] == "jane@example.com"
    assert updated["user_id"] == created["user_id"]


@pytest.mark.asyncio
async def test_update_client_explicit_null_clears_optional_field(client, auth_headers):
    created = await create_client(client, auth_headers, name="Clear Me", phone="+15550001")
    r = await client.patch(
        f"/api/v1/clients/{created['id']}", json={"phone": None}, headers=auth_headers
    )
    assert r.status_code == 200
    assert r.json()["phone"] is None


@pytest.mark.asyncio
async def test_update_client_name_cannot_be_null(client, auth_headers):
    created = await create_client(client, auth_headers, name="Keep Name")
    r = await client.patch(
        f"/api/v1/clients/{created['id']}", json={"name": None}, headers=auth_headers
    )
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_update_client_cannot_change_owner(client):
    owner_headers, owner = await register_and_login(client, unique_email("owner"))
    _, other = await register_and_login(client, unique_email("other"))
    created = await create_client(client, owner_headers, name="Sticky Owner")

    r = await client.patch(
        f"/api/v1/clients/{created['id']}",
        json={"user_id": other["user"]["id"], "notes": "moved?"},
        headers=owner_headers,
    )
    assert r.status_code == 200
    assert r.json()["user_id"] == owner["user"]["id"]


@pytest.mark.asyncio
async def test_delete_client(client, auth_headers):
    created = await create_client(client, auth_headers, name="Short Lived")
    r = await client.delete(f"/api/v1/clients/{created['id']}", headers=auth_headers)
    assert r.status_code == 204

    r = await client.get(f"/api/v1/clients/{created['id']}", headers=auth_headers)
    assert r.status_code == 404

    r = await client.delete(f"/api/v1/clients/{created['id']}", headers=auth_headers)
    assert r.status_code == 404


# ═══════════════════════════════════════════════════════════
# Tenant isolation
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_other_user_sees_not_found(client, auth_headers, other_auth_headers):
    """A's client is 404 for B on get/update/delete, same as a missing id."""
    created = await create_client(client, auth_headers, name="Private Client")
    url = f"/api/v1/clients/{created['id']}"
    missing = await client.get(f"/api/v1/clients/{uuid.uuid4()}", headers=other_auth_headers)

    r_get = await client.get(url, headers=other_auth_headers)
    r_patch = await client.patch(url, json={"name": "Hijacked"}, headers=other_auth_headers)
    r_delete = await client.delete(url, headers=other_auth_headers)

    for r in (r_get, r_patch, r_delete):
        assert r.status_code == 404
        assert r.json() == missing.json()

    # Owner keeps full access, nothing changed
    r = await client.get(url, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["name"] == "Private Client"
    r = await client.patch(url, json={"name": "Renamed"}, headers=auth_headers)
    assert r.status_code == 200
    r = await client.delete(url, headers=auth_headers)
    assert r.status_code == 204


@pytest.mark.asyncio
async def test_list_only_shows_own_clients(client, auth_headers, other_auth_headers):
    await create_client(client, auth_headers, name="Mine One")
    await create_client(client, auth_headers, name="Mine Two")
    await create_client(client, other_auth_headers, name="Theirs")

    r = await client.get("/api/v1/clients", headers=auth_headers)
    body = r.json()
    assert body["total"] == 2
    assert {c["name"] for c in body["data"]} == {"Mine One", "Mine Two"}

    r = await client.get("/api/v1/clients?search=Theirs", headers=auth_headers)
    assert r.json()["total"] == 0


@pytest.mark.asyncio
async def test_deleting_user_cascades_to_clients(client, db_session):
    email = unique_email("cascade")
    headers, body = await register_and_login(client, email)
    for i in range(3):
        await create_client(client, headers, name=f"Cascade {i}")

    owner_id = uuid.UUID(body["user"]["id"])
    await db_session.execute(delete(User).where(User.id == owner_id))
    await db_session.commit()

    remaining = await db_session.scalar(
        select(func.count()).select_from(Client).where(Client.user_id == owner_id)
    )
    assert remaining == 0


@pytest.mark.asyncio
async def test_create_client_after_owner_deleted(client, db_session):
    """A still-valid token for a deleted user cannot create records."""
    headers, body = await register_and_login(client, unique_email("gone"))
    owner_id = uuid.UUID(body["user"]["id"])
    await db_session.execute(delete(User).where(User.id == owner_id))
    await db_session.commit()

    r = await client.post("/api/v1/clients", json={"name": "Orphan"}, headers=headers)
    assert r.status_code == 401
    assert r.json() == {"detail": "Unauthorized"}

    # The session was rolled back and keeps serving requests
    r = await client.get("/api/v1/clients", headers=headers)
    assert r.status_code == 200
    assert r.json()["total"] == 0


# ═══════════════════════════════════════════════════════════
# Pagination
# ═══════════════════════════════════════════════════════════


@pytest.fixture
async def twenty_five(client, auth_headers):
    for i in range(25):
        await create_client(client, auth_headers, name=f"Client {i:02d}")
    return auth_headers


@pytest.mark.asyncio
async def test_list_default_page(client, twenty_five):
    r = await client.get("/api/v1/clients", headers=twenty_five)
    assert r.status_code == 200
    body = r.json()
    assert body["page"] == 1
    assert body["page_size"] == 10
    assert body["total"] == 25
    assert body["total_pages"] == 3
    assert len(body["data"]) == 10


@pytest.mark.asyncio
async def test_list_second_page_disjoint_from_first(client, twenty_five):
    r1 = await client.get("/api/v1/clients?page=1&page_size=10", headers=twenty_five)
    r2 = await client.get("/api/v1/clients?page=2&page_size=10", headers=twenty_five)
    page1 = {c["id"] for c in r1.json()["data"]}
    page2 = {c["id"] for c in r2.json()["data"]}
    assert len(page1) == 10
    assert len(page2) == 10
    assert page1.isdisjoint(page2)

    r3 = await client.get("/api/v1/clients?page=3&page_size=10", headers=twenty_five)
    assert len(r3.json()["data"]) == 5


@pytest.mark.asyncio
async def test_list_newest_first(client, twenty_five):
    r = await client.get("/api/v1/clients?page_size=3", headers=twenty_five)
    assert [c["name"] for c in r.json()["data"]] == ["Client 24", "Client 23", "Client 22"]


@pytest.mark.asyncio
async def test_list_page_past_end(client, twenty_five):
    r = await client.get("/api/v1/clients?page=999&page_size=10", headers=twenty_five)
    body = r.json()
    assert body["data"] == []
    assert body["total"] == 25
    assert body["page"] == 999


@pytest.mark.asyncio
async def test_list_huge_page_number(client, twenty_five):
    """A page far beyond any int64 offset is still an empty page, not a 500."""
    huge = 10**20
    r = await client.get(f"/api/v1/clients?page={huge}&page_size=10", headers=twenty_five)
    assert r.status_code == 200
    body = r.json()
    assert body["data"] == []
    assert body["total"] == 25
    assert body["page"] == huge
    assert body["total_pages"] == 3


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "query, page, page_size",
    [
        ("page=0&page_size=10", 1, 10),
        ("page=-5&page_size=10", 1, 10),
        ("page=1&page_size=0", 1, 1),
        ("page=1&page_size=-3", 1, 1),
    ],
)
async def test_list_clamps_non_positive_values(client, twenty_five, query, page, page_size):
    r = await client.get(f"/api/v1/clients?{query}", headers=twenty_five)
    assert r.status_code == 200
    body = r.json()
    assert body["page"] == page
    assert body["page_size"] == page_size
    assert len(body["data"]) == page_size


@pytest.mark.asyncio
async def test_list_caps_page_size(client, twenty_five):
    r = await client.get("/api/v1/clients?page_size=5000", headers=twenty_five)
    assert r.json()["page_size"] == 100
    assert len(r.json()["data"]) == 25


@pytest.mark.asyncio
async def test_list_rejects_non_integer_page(client, auth_headers):
    r = await client.get("/api/v1/clients?page=abc", headers=auth_headers)
    assert r.status_code == 422


# ═══════════════════════════════════════════════════════════
# Search
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
@pytest.mark.parametrize("term", ["alice", "Alice Johnson", "JOHNSON", "ce jo"])
async def test_search_case_insensitive_substring(client, auth_headers, term):
    await create_client(client, auth_headers, name="Alice Johnson")
    await create_client(client, auth_headers, name="Bob Smith")

    r = await client.get("/api/v1/clients", params={"search": term}, headers=auth_headers)
    body = r.json()
    assert body["total"] == 1
    assert body["data"][0]["name"] == "Alice Johnson"


@pytest.mark.asyncio
async def test_search_no_match(client, auth_headers):
    await create_client(client, auth_headers, name="Alice Johnson")
    r = await client.get("/api/v1/clients?search=zzz", headers=auth_headers)
    assert r.json() == {"data": [], "total": 0, "page": 1, "page_size": 10, "total_pages": 0}


@pytest.mark.asyncio
async def test_empty_search_returns_everything(client, auth_headers):
    await create_client(client, auth_headers, name="Alice Johnson")
    await create_client(client, auth_headers, name="Bob Smith")
    r = await client.get("/api/v1/clients?search=", headers=auth_headers)
    assert r.json()["total"] == 2


@pytest.mark.asyncio
async def test_search_wildcards_match_literally(client, auth_headers):
    await create_client(client, auth_headers, name="100% Organic")
    await create_client(client, auth_headers, name="Snake_Case Ltd")
    await create_client(client, auth_headers, name="Plain Name")

    r = await client.get("/api/v1/clients", params={"search": "%"}, headers=auth_headers)
    assert [c["name"] for c in r.json()["data"]] == ["100% Organic"]

    r = await client.get("/api/v1/clients", params={"search": "_"}, headers=auth_headers)
    assert [c["name"] for c in r.json()["data"]] == ["Snake_Case Ltd"]


@pytest.mark.asyncio
async def test_search_total_reflects_filter_across_pages(client, auth_headers):
    for i in range(12):
        await create_client(client, auth_headers, name=f"Acme Branch {i}")
    for i in range(5):
        await create_client(client, auth_headers, name=f"Other {i}")

    r = await client.get(
        "/api/v1/clients", params={"search": "acme", "page": 2, "page_size": 10},
        headers=auth_headers,
    )
    body = r.json()
    assert body["total"] == 12
    assert len(body["data"]) == 2
