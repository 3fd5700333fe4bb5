"""SimpleSecurity CLI — manage the user table without the web app.

Usage:
    simplesec init                          # Create user table + admin account
    simplesec register alice --roles Member # Add a user (prompts for password)
    simplesec unregister alice              # Remove a user
    simplesec verify alice                  # Check a password
    simplesec users                         # List users and roles
    simplesec serve --port 8000             # Run the web app with uvicorn
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import sys
from typing import Optional

import click

from simplesecurity import __version__
from simplesecurity.auth.password import MAX_PASSWORD_BYTES, password_fits
from simplesecurity.config import settings
from simplesecurity.provider import SecurityProvider

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _provider(ctx: click.Context, **updates) -> SecurityProvider:
    cfg = settings.model_copy(update={"database_url": ctx.obj["database_url"], **updates})
    return SecurityProvider.from_settings(cfg)


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k, "—"))[:w].ljust(w) for _, k, w in columns)
        click.echo(line)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="simplesec")
@click.option(
    "--database-url",
    envvar="SIMPLESEC_DATABASE_URL",
    default=settings.database_url,
    show_default=True,
    help="SQLAlchemy async connection string of the user store.",
)
@click.pass_context
def main(ctx: click.Context, database_url: str):
    """SimpleSecurity — forms authentication user management."""
    ctx.ensure_object(dict)
    ctx.obj["database_url"] = database_url


# ---------------------------------------------------------------------------
# simplesec init
# ---------------------------------------------------------------------------


@main.command()
@click.option(
    "--admin-password",
    default=None,
    help="Password for the seeded admin account (only used on first run).",
)
@click.pass_context
def init(ctx: click.Context, admin_password: Optional[str]):
    """Create the user table and the admin account if missing."""
    updates = {"admin_password": admin_password} if admin_password else {}
    created = _run(_init_impl(_provider(ctx, **updates)))
    if created:
        click.secho("Created user table and admin account.", fg="green")
    else:
        click.echo("User table already exists.")


async def _init_impl(provider: SecurityProvider) -> bool:
    try:
        return await provider.store.ensure_schema(provider.admin_password)
    finally:
        await provider.close()


# ---------------------------------------------------------------------------
# simplesec register / unregister
# ---------------------------------------------------------------------------


@main.command()
@click.argument("name")
@click.option("--roles", "-r", default="", help='Comma-separated roles, e.g. "Member,Editor"')
@click.password_option()
@click.pass_context
def register(ctx: click.Context, name: str, roles: str, password: str):
    """Register a new user NAME."""
    if not password_fits(password):
        click.secho(f"Password must not exceed {MAX_PASSWORD_BYTES} bytes.", fg="red", err=True)
        sys.exit(1)
    if not _run(_register_impl(_provider(ctx), name, password, roles)):
        click.secho(f"User with such name already registered: {name}", fg="red", err=True)
        sys.exit(1)
    click.secho(f"Registered {name}", fg="green")


async def _register_impl(provider: SecurityProvider, name: str, password: str, roles: str) -> bool:
    try:
        await provider.initialize()
        return await provider.register(name, password, roles)
    finally:
        await provider.close()


@main.command()
@click.argument("name")
@click.pass_context
def unregister(ctx: click.Context, name: str):
    """Delete user NAME (no-op if it does not exist)."""
    _run(_unregister_impl(_provider(ctx), name))
    click.echo(f"Unregistered {name}")


async def _unregister_impl(provider: SecurityProvider, name: str) -> None:
    try:
        await provider.initialize()
        await provider.unregister(name)
    finally:
        await provider.close()


# ---------------------------------------------------------------------------
# simplesec verify
# ---------------------------------------------------------------------------


@main.command()
@click.argument("name")
@click.option("--password", prompt=True, hide_input=True)
@click.pass_context
def verify(ctx: click.Context, name: str, password: str):
    """Check whether PASSWORD is valid for user NAME."""
    if not _run(_verify_impl(_provider(ctx), name, password)):
        click.secho("Invalid username or password.", fg="red", err=True)
        sys.exit(1)
    click.secho("OK", fg="green")


async def _verify_impl(provider: SecurityProvider, name: str, password: str) -> bool:
    try:
        await provider.initialize()
        return await provider.store.verify(name, password)
    finally:
        await provider.close()


# ---------------------------------------------------------------------------
# simplesec users
# ---------------------------------------------------------------------------


@main.command()
@click.pass_context
def users(ctx: click.Context):
    """List registered users and their roles."""
    rows = _run(_users_impl(_provider(ctx)))
    if not rows:
        click.echo("No users found.")
        return
    click.secho(f"Users ({len(rows)}):", bold=True)
    click.echo()
    _print_table(rows, [("ID", "id", 6), ("NAME", "name", 24), ("ROLES", "roles", 40)])


async def _users_impl(provider: SecurityProvider) -> list[dict]:
    try:
        await provider.initialize()
        return [
            {"id": u.id, "name": u.name, "roles": ", ".join(u.roles)}
            for u in await provider.list_users()
        ]
    finally:
        await provider.close()


# ---------------------------------------------------------------------------
# simplesec serve
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", default=settings.host, show_default=True)
@click.option("--port", default=settings.port, show_default=True, type=int)
@click.option("--reload", is_flag=True, help="Reload on code changes (development).")
def serve(host: str, port: int, reload: bool):
    """Run the web application with uvicorn (configured from SIMPLESEC_* env vars)."""
    import uvicorn

    uvicorn.run("simplesecurity.main:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
