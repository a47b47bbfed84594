#!/usr/bin/env python3
"""Roadside management CLI."""

import asyncio
import os
import random
import subprocess
import sys

import click

from src.request.interface import RequestStatus, ServiceRequest, ServiceType


def _run(args: list[str], *, replace: bool = False) -> None:
    click.echo(
        f"  {click.style('>', dim=True)} {click.style(' '.join(args), dim=True)}\n"
    )
    if replace:
        os.execvp(args[0], args)
    result = subprocess.run(args)
    if result.returncode != 0:
        click.echo(
            f"  {click.style('✗', fg='red')} exited with code {result.returncode}"
        )
        sys.exit(result.returncode)


def _ok(text: str) -> None:
    click.echo(f"  {click.style('✓', fg='green')} {text}")


def _header(text: str) -> None:
    click.echo(f"\n  {click.style(text, fg='cyan', bold=True)}\n")


def _echo_request(request: ServiceRequest | None) -> None:
    if request is None:
        click.echo(f"  {click.style('·', dim=True)} request cleared")
        return

    details = []
    if request.assigned_employee is not None:
        details.append(request.assigned_employee.name)
    if request.current_quote is not None:
        revised = " (revised)" if request.current_quote.is_revised else ""
        details.append(f"quote {request.current_quote.amount}{revised}")
    if request.cancel_reason:
        details.append(request.cancel_reason)
    suffix = f" {click.style(', '.join(details), dim=True)}" if details else ""
    click.echo(f"  {click.style('·', dim=True)} {request.status.value}{suffix}")


@click.group()
def cli() -> None:
    """Roadside management CLI."""


@cli.command()
@click.argument("uvicorn_args", nargs=-1)
def app(uvicorn_args: tuple[str, ...]) -> None:
    """Start uvicorn with --reload."""
    _header("Starting Roadside")
    _run(
        ["uv", "run", "uvicorn", "src.app:app", "--reload", *uvicorn_args],
        replace=True,
    )


@cli.group()
def db() -> None:
    """Database management commands."""


@db.command()
def up() -> None:
    """Start PostgreSQL (docker compose up)."""
    _header("Starting PostgreSQL")
    _run(["docker", "compose", "up", "-d"])
    _ok("PostgreSQL is running")


@db.command()
def down() -> None:
    """Stop PostgreSQL (docker compose down)."""
    _header("Stopping PostgreSQL")
    _run(["docker", "compose", "down"])
    _ok("PostgreSQL stopped")


@db.command()
def migrate() -> None:
    """Run alembic upgrade head."""
    _header("Running migrations")
    _run(["uv", "run", "alembic", "upgrade", "head"])
    _ok("Migrations applied")


@db.command()
@click.argument("message", default="auto")
def revision(message: str) -> None:
    """Generate alembic migration."""
    _header(f"Generating migration: {message}")
    _run(["uv", "run", "alembic", "revision", "--autogenerate", "-m", message])
    _ok("Migration generated")


@cli.command()
@click.option(
    "--service",
    type=click.Choice([t.value for t in ServiceType]),
    default=ServiceType.FLAT_TYRE.value,
    show_default=True,
)
@click.option("--lat", type=float, default=42.69, show_default=True)
@click.option("--lng", type=float, default=23.32, show_default=True)
@click.option(
    "--declines",
    type=click.IntRange(min=0),
    default=0,
    show_default=True,
    help="Number of quotes to decline before accepting one.",
)
@click.option("--seed", type=int, default=None, help="Seed for reproducible runs.")
def simulate(
    service: str, lat: float, lng: float, declines: int, seed: int | None
) -> None:
    """Run an in-memory negotiation against the built-in roster."""
    _header(f"Simulating {service} request")
    asyncio.run(_simulate(ServiceType(service), lat, lng, declines, seed))


async def _simulate(
    service: ServiceType, lat: float, lng: float, declines: int, seed: int | None
) -> None:
    from src.blacklist.ledger import InMemoryBlacklistLedger
    from src.employee.pool import StaticEmployeePool
    from src.history.recorder import CompletionRecorder, InMemoryHistorySink
    from src.request.matcher import EmployeeMatcher
    from src.request.store import RequestLifecycleStore
    from src.request.timing import NegotiationTimings

    rng = random.Random(seed)
    ledger = InMemoryBlacklistLedger()
    sink = InMemoryHistorySink()
    store = RequestLifecycleStore(
        "cli",
        EmployeeMatcher(StaticEmployeePool(rng=rng), ledger, rng=rng),
        ledger,
        CompletionRecorder(sink, username="cli"),
        timings=NegotiationTimings.instant(),
        rng=rng,
    )
    store.subscribe(_echo_request)

    await store.create_request(service, {"lat": lat, "lng": lng}, "simulated via CLI")
    await store.wait_idle()

    remaining = declines
    while (request := store.get_current_request()) is not None:
        if request.status is not RequestStatus.QUOTE_RECEIVED:
            if not store.timers.pending(request.id):
                break
            await store.wait_idle()
            continue
        if remaining:
            remaining -= 1
            await store.decline_quote()
        else:
            await store.accept_quote()
        await store.wait_idle()

    for record in sink.entries:
        total = record.total_price if record.total_price is not None else "-"
        _ok(
            f"{record.status.value}: {record.employee_name or 'no technician'}, "
            f"total {total}"
        )


@cli.command()
def cleanup() -> None:
    """Remove blacklist entries older than 24 hours."""
    from src.scheduler import run_blacklist_cleanup

    _header("Cleaning up blacklist")
    removed = asyncio.run(run_blacklist_cleanup())
    _ok(f"Removed {removed} expired entries")


@cli.command()
@click.argument("user_id")
def blacklist(user_id: str) -> None:
    """List blacklist entries created by a user."""
    from src.base.db import async_session
    from src.blacklist.ledger import SqlBlacklistLedger

    _header(f"Blacklist entries for {user_id}")
    entries = asyncio.run(SqlBlacklistLedger(async_session).entries_for_user(user_id))
    if not entries:
        _ok("No entries")
    for entry in entries:
        click.echo(
            f"  {entry.created_at:%Y-%m-%d %H:%M}  {entry.employee_name}"
            f"  {click.style(str(entry.request_id), dim=True)}"
        )


@cli.command()
@click.argument("pytest_args", nargs=-1)
def test(pytest_args: tuple[str, ...]) -> None:
    """Run pytest."""
    _header("Running tests")
    _run(["uv", "run", "pytest", "tests/", "-v", *pytest_args], replace=True)


@cli.command()
def lint() -> None:
    """Run mypy."""
    _header("Running mypy")
    _run(["uv", "run", "mypy", "."])
    _ok("Type check passed")


if __name__ == "__main__":
    cli()
