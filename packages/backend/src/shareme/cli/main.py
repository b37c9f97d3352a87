"""ShareMe CLI — run the server, manage the schema, talk to the API.

Usage:
    shareme serve                                # Run the API with uvicorn
    shareme init-db                              # Create all tables (dev only)
    shareme gen-secret                           # Print a fresh signing key
    shareme login you@example.com                # Get a bearer token
    shareme me                                   # Who does this token belong to?
    shareme forgot you@example.com               # Ask for a password reset
    shareme reset <token>                        # Set a new password
    shareme projects                             # List your projects
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import secrets
import sys
from typing import Optional

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8080"


def _api_url() -> str:
    return os.environ.get("SHAREME_API_URL", DEFAULT_API_URL).rstrip("/")


def _client(token: Optional[str] = None) -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the ShareMe backend."""
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return httpx.AsyncClient(base_url=_api_url(), headers=headers, timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. CliRunner inside an async test) by
    offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _token_from_ctx(token: Optional[str]) -> str:
    """Resolve the bearer token from --token or SHAREME_TOKEN."""
    tok = token or os.environ.get("SHAREME_TOKEN")
    if not tok:
        click.secho(
            "Error: --token required (or set SHAREME_TOKEN env var)",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return tok


def _check(r: httpx.Response) -> None:
    """Exit with the server's error message on a non-2xx response."""
    if r.is_success:
        return
    try:
        body = r.json()
        message = f"{body.get('message')} ({body.get('error')})"
    except ValueError:
        message = r.text or r.reason_phrase
    click.secho(f"Error {r.status_code}: {message}", fg="red", err=True)
    sys.exit(1)


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k, "-"))[:w].ljust(w) for _, k, w in columns)
        click.echo(line)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version="0.1.0", prog_name="shareme")
def main():
    """ShareMe — projects, tasks and private notes for small teams."""


# ---------------------------------------------------------------------------
# Server + schema
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", default=None, help="Bind address (default: SHAREME_HOST)")
@click.option("--port", type=int, default=None, help="Port (default: SHAREME_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server."""
    import uvicorn

    from shareme.config import settings

    uvicorn.run(
        "shareme.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command("init-db")
def init_db():
    """Create all tables directly from the models.

    Use `alembic upgrade head` for real deployments.
    """
    from shareme.db.engine import create_all, engine

    async def _init():
        await create_all()
        await engine.dispose()

    _run(_init())
    click.secho("Tables created", fg="green")


@main.command("gen-secret")
@click.option("--bytes", "nbytes", type=int, default=48, show_default=True)
def gen_secret(nbytes: int):
    """Print a random value suitable for SHAREME_JWT_SECRET."""
    if nbytes < 32:
        raise click.BadParameter("use at least 32 bytes", param_hint="--bytes")
    click.echo(secrets.token_urlsafe(nbytes))


# ---------------------------------------------------------------------------
# Account
# ---------------------------------------------------------------------------


@main.command()
@click.argument("email")
@click.password_option(confirmation_prompt=False)
@click.option("--json", "as_json", is_flag=True, help="Print the raw response")
def login(email: str, password: str, as_json: bool):
    """Log in and print a bearer token.

    Export it for later commands: export SHAREME_TOKEN=<token>
    """
    _run(_login_impl(email, password, as_json))


async def _login_impl(email: str, password: str, as_json: bool):
    async with _client() as c:
        r = await c.post("/api/auth/login", json={"email": email, "password": password})
        _check(r)
        data = r.json()

    if as_json:
        click.echo(_pretty_json(data))
        return
    user = data["user"]
    click.secho(f"Logged in as {user['firstName']} {user['lastName']}", fg="green", err=True)
    click.echo(f"Expires: {data['expiresAt']}", err=True)
    click.echo(data["token"])


@main.command()
@click.option("--token", help="Bearer token (or set SHAREME_TOKEN)")
def me(token: Optional[str]):
    """Show the account the token belongs to."""
    _run(_me_impl(token))


async def _me_impl(token: Optional[str]):
    async with _client(_token_from_ctx(token)) as c:
        r = await c.get("/api/auth/me")
        _check(r)
        user = r.json()
    click.echo(f"{user['firstName']} {user['lastName']} <{user['email']}>")
    click.echo(f"  id:   {user['id']}")
    click.echo(f"  role: {user['role']}")


@main.command()
@click.argument("email")
def forgot(email: str):
    """Ask for a password reset token to be sent."""
    _run(_forgot_impl(email))


async def _forgot_impl(email: str):
    async with _client() as c:
        r = await c.post("/api/auth/forgot", json={"email": email})
        _check(r)
    click.echo("If that account exists, a reset link is on its way.")


@main.command()
@click.argument("reset_token")
@click.password_option("--new-password", prompt="New password")
def reset(reset_token: str, new_password: str):
    """Set a new password with a reset token."""
    _run(_reset_impl(reset_token, new_password))


async def _reset_impl(reset_token: str, new_password: str):
    async with _client() as c:
        r = await c.post(
            "/api/auth/reset",
            json={"token": reset_token, "newPassword": new_password},
        )
        _check(r)
    click.secho("Password updated. Log in with the new password.", fg="green")


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


@main.command()
@click.option("--token", help="Bearer token (or set SHAREME_TOKEN)")
@click.option("--json", "as_json", is_flag=True, help="Print the raw response")
def projects(token: Optional[str], as_json: bool):
    """List the projects you own or belong to."""
    _run(_projects_impl(token, as_json))


async def _projects_impl(token: Optional[str], as_json: bool):
    async with _client(_token_from_ctx(token)) as c:
        r = await c.get("/api/projects")
        _check(r)
        rows = r.json()

    if as_json:
        click.echo(_pretty_json(rows))
        return
    if not rows:
        click.echo("No projects.")
        return
    for row in rows:
        row["owner_email"] = row["owner"]["email"]
        row["tasks"] = f"{row['completedTasks']}/{row['totalTasks']}"
    _print_table(rows, [
        ("ID", "id", 36),
        ("NAME", "name", 24),
        ("STATUS", "status", 9),
        ("PRIORITY", "priority", 8),
        ("OWNER", "owner_email", 24),
        ("DONE", "tasks", 7),
    ])


if __name__ == "__main__":
    main()
