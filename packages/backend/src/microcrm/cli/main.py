"""MicroCRM CLI — run the API server and manage local data.

Usage:
    microcrm serve                                   # Run the API with uvicorn
    microcrm create-user alice@example.com -p ...    # Register a user
    microcrm seed                                    # Wipe + insert demo users/clients
"""

from __future__ import annotations

import asyncio
import random
import sys
from dataclasses import dataclass
from urllib.parse import urlsplit

import click
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from microcrm.config import Settings, settings
from microcrm.logging_setup import configure_logging

SEED_PASSWORD = "Password123!"

_FIRST_NAMES = [
    "Alice", "Bruno", "Chen", "Dana", "Elif", "Farid", "Grace", "Hugo",
    "Ines", "Jonas", "Keiko", "Liam", "Maya", "Nikolai", "Olga", "Priya",
]
_LAST_NAMES = [
    "Johnson", "Okafor", "Nguyen", "Schmidt", "Rossi", "Kowalski", "Silva",
    "Haddad", "Tanaka", "Moreau", "Lindqvist", "Patel", "Garcia", "Novak",
]
_NOTES = [
    "Prefers email over phone.",
    "Renewal due next quarter.",
    "Met at the spring trade fair.",
    "Asked for a follow-up demo.",
    "VIP client",
]
_DANGEROUS_DB_NAMES = ("production", "prod", "live")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _database_name(database_url: str) -> str:
    return urlsplit(database_url).path.lstrip("/")


def _open_db(cfg: Settings):
    from microcrm.db.engine import build_engine, build_session_factory

    engine = build_engine(cfg.database_url, echo=cfg.debug)
    return engine, build_session_factory(engine)


def check_seed_safety(cfg: Settings) -> None:
    """Refuse to seed production environments or production-looking databases.

    Raises click.ClickException with the reason.
    """
    if cfg.environment == "production":
        raise click.ClickException(
            "Refusing to seed: MICROCRM_ENVIRONMENT is 'production'. "
            "Seeding deletes all users and clients."
        )
    db_name = _database_name(cfg.database_url).lower()
    if any(name in db_name for name in _DANGEROUS_DB_NAMES):
        raise click.ClickException(
            f"Refusing to seed: database {db_name!r} looks like a production database."
        )


@dataclass
class SeedSummary:
    emails: list[str]
    clients: int


async def seed_database(
    db: AsyncSession,
    password_hash: str,
    rng: random.Random | None = None,
) -> SeedSummary:
    """Wipe users/clients and insert 3-5 demo users with 8-25 clients each.

    All demo users share one password hash.
    """
    from microcrm.db.models import Client, SubscriptionPlan, User

    rng = rng or random.Random()

    # Clients go with their users through ON DELETE CASCADE; delete both
    # explicitly for databases without enforced foreign keys.
    await db.execute(delete(Client))
    await db.execute(delete(User))

    users: list[User] = []
    for n in range(1, rng.randint(3, 5) + 1):
        first, last = rng.choice(_FIRST_NAMES), rng.choice(_LAST_NAMES)
        email = f"{first}.{last}.{n}@example.com".lower()
        user = User(
            email=email,
            password_hash=password_hash,
            plan=rng.choice(list(SubscriptionPlan)),
        )
        db.add(user)
        users.append(user)
    await db.flush()

    total = 0
    for user in users:
        for _ in range(rng.randint(8, 25)):
            first, last = rng.choice(_FIRST_NAMES), rng.choice(_LAST_NAMES)
            db.add(
                Client(
                    user_id=user.id,
                    name=f"{first} {last}",
                    email=(
                        f"{first}.{last}@example.org".lower()
                        if rng.random() < 0.8
                        else None
                    ),
                    phone=(
                        f"+1-555-{rng.randint(1000, 9999)}"
                        if rng.random() < 0.7
                        else None
                    ),
                    notes=rng.choice(_NOTES) if rng.random() < 0.5 else None,
                )
            )
            total += 1

    await db.commit()
    return SeedSummary(emails=[u.email for u in users], clients=total)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@click.group()
def cli():
    """MicroCRM backend management."""
    configure_logging(settings.log_level, json=settings.log_json)


@cli.command()
@click.option("--host", default=None, help="Bind host (default: MICROCRM_HOST)")
@click.option("--port", default=None, type=int, help="Bind port (default: MICROCRM_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: str | None, port: int | None, reload: bool):
    """Run the API server."""
    import uvicorn

    uvicorn.run(
        "microcrm.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@cli.command("create-user")
@click.argument("email")
@click.option("--password", "-p", prompt=True, hide_input=True, confirmation_prompt=True)
def create_user(email: str, password: str):
    """Register a user with a local password."""
    from microcrm.auth.jwt import TokenService
    from microcrm.auth.password import PasswordHasher
    from microcrm.db.repositories import UserRepository
    from microcrm.errors import CrmError
    from microcrm.services.auth_service import CredentialAuthenticator

    if len(password) < 8:
        click.secho("Error: password must be at least 8 characters", fg="red", err=True)
        sys.exit(1)

    async def _create():
        engine, session_factory = _open_db(settings)
        try:
            async with session_factory() as db:
                svc = CredentialAuthenticator(
                    UserRepository(db),
                    PasswordHasher(rounds=settings.bcrypt_rounds),
                    TokenService(settings.jwt_secret, settings.jwt_algorithm),
                )
                return await svc.register(email, password)
        finally:
            await engine.dispose()

    try:
        user = asyncio.run(_create())
    except CrmError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)

    click.secho(f"Created user {user.email} ({user.id}, plan={user.plan.value})", fg="green")


@cli.command()
@click.option("--seed", "seed_value", type=int, default=None, help="Random seed for reproducible data")
def seed(seed_value: int | None):
    """Wipe the database and insert demo users and clients."""
    from microcrm.auth.password import PasswordHasher

    check_seed_safety(settings)
    click.echo(f"Seeding database {_database_name(settings.database_url)!r}...")

    password_hash = PasswordHasher(rounds=settings.bcrypt_rounds).hash(SEED_PASSWORD)

    async def _seed():
        engine, session_factory = _open_db(settings)
        try:
            async with session_factory() as db:
                return await seed_database(db, password_hash, random.Random(seed_value))
        finally:
            await engine.dispose()

    summary = asyncio.run(_seed())

    click.secho(
        f"Created {len(summary.emails)} users and {summary.clients} clients",
        fg="green",
    )
    click.echo(f"Password for all users: {SEED_PASSWORD}")
    for email in summary.emails:
        click.echo(f"  - {email}")


def main():
    cli()


if __name__ == "__main__":
    main()
