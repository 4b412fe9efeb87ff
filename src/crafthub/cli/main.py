"""CraftHub CLI — database setup and admin seeding.

Usage:
    crafthub init-db                                  # Create all tables
    crafthub create-admin --email a@b.com --password …  # Seed an admin user
    crafthub purge-otps                               # Delete expired/used codes
"""

from __future__ import annotations

import asyncio
import sys
from typing import Optional

import click

from crafthub import __version__

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler."""
    return asyncio.run(coro)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="crafthub")
def main():
    """CraftHub identity service administration."""


# ---------------------------------------------------------------------------
# crafthub init-db
# ---------------------------------------------------------------------------


@main.command("init-db")
def init_db():
    """Create all tables (use alembic for upgrades of existing databases)."""
    _run(_init_db_impl())
    click.secho("Tables created", fg="green")


async def _init_db_impl():
    from crafthub.db.engine import engine
    from crafthub.db.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()


# ---------------------------------------------------------------------------
# crafthub create-admin
# ---------------------------------------------------------------------------


@main.command("create-admin")
@click.option("--email", help="Admin email (default: CRAFTHUB_ADMIN_EMAIL)")
@click.option("--name", help="Display name (default: CRAFTHUB_ADMIN_NAME)")
@click.option(
    "--password",
    help="Password (default: CRAFTHUB_ADMIN_PASSWORD, prompted if unset)",
)
def create_admin(email: Optional[str], name: Optional[str], password: Optional[str]):
    """Create the admin account if it doesn't exist yet."""
    from crafthub.config import settings

    email = email or settings.admin_email
    name = name or settings.admin_name
    password = password or settings.admin_password
    if not password:
        password = click.prompt("Admin password", hide_input=True, confirmation_prompt=True)
    if len(password) < 8:
        click.secho("Error: password must be at least 8 characters", fg="red", err=True)
        sys.exit(1)

    created = _run(_create_admin_impl(email, name, password))
    if created:
        click.secho(f"Admin {email} created", fg="green")
    else:
        click.secho(f"User {email} already exists, nothing to do", fg="yellow")


async def _create_admin_impl(email: str, name: str, password: str) -> bool:
    from crafthub.db.engine import async_session_factory, engine

    try:
        async with async_session_factory() as session:
            return await seed_admin(session, email, name, password)
    finally:
        await engine.dispose()


async def seed_admin(session, email: str, name: str, password: str) -> bool:
    """Insert an ADMIN user unless one with this email exists. Returns True if created."""
    from crafthub.auth.password import hash_password
    from crafthub.db.models import AuthProvider, UserRole
    from crafthub.identity.store import SqlRecordStore

    store = SqlRecordStore(session)
    if await store.find_user_by_field("email", email) is not None:
        return False
    await store.create_user(
        {
            "email": email,
            "name": name,
            "password_hash": hash_password(password),
            "role": UserRole.ADMIN,
            "auth_provider": AuthProvider.EMAIL,
            "is_email_verified": True,
            "is_phone_verified": False,
            "profile_complete": True,
        }
    )
    return True


# ---------------------------------------------------------------------------
# crafthub purge-otps
# ---------------------------------------------------------------------------


@main.command("purge-otps")
def purge_otps():
    """Delete expired and already-used one-time codes."""
    removed = _run(_purge_impl())
    click.echo(f"Removed {removed} code(s)")


async def _purge_impl() -> int:
    from crafthub.db.engine import async_session_factory, engine
    from crafthub.services.otp_service import LogOtpSender, OtpService

    try:
        async with async_session_factory() as session:
            return await OtpService(session, LogOtpSender()).purge_expired()
    finally:
        await engine.dispose()


if __name__ == "__main__":
    main()
