"""CLI commands for Sunset."""

import asyncio
import base64
import re
import secrets
import sys
from datetime import datetime
from pathlib import Path

import click


@click.group()
@click.version_option(package_name="sunset")
def cli():
    """Sunset - content expiration for a lightweight async CMS."""
    pass


@cli.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=8080, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.option("--workers", default=1, type=int, help="Number of worker processes")
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Logging level",
)
def serve(host, port, reload, workers, log_level):
    """Run the Sunset server."""
    from hypercorn.config import Config
    from hypercorn.run import run

    config = Config()
    config.application_path = "sunset.asgi:app"
    config.bind = [f"{host}:{port}"]
    # Every worker runs its own scheduler; they share the persisted next run
    config.workers = 1 if reload else workers
    config.loglevel = log_level.upper()
    config.include_server_header = False
    config.use_reloader = reload
    run(config)


@cli.command()
@click.option(
    "--write",
    type=click.Path(),
    default=None,
    help="Write SECRET_KEY to a .env file",
)
@click.option(
    "--format",
    "fmt",
    default="urlsafe",
    type=click.Choice(["urlsafe", "hex", "base64"]),
    help="Output format for the secret key",
)
@click.option("--length", default=32, type=int, help="Number of random bytes")
def secret(write, fmt, length):
    """Generate a secure secret key."""
    if fmt == "urlsafe":
        key = secrets.token_urlsafe(length)
    elif fmt == "hex":
        key = secrets.token_hex(length)
    else:  # base64
        key = base64.b64encode(secrets.token_bytes(length)).decode("ascii")

    if not write:
        click.echo(key)
        return

    env_path = Path(write)
    env_content = env_path.read_text() if env_path.exists() else ""

    secret_key_pattern = re.compile(r"^SECRET_KEY=.*$", re.MULTILINE)
    new_line = f"SECRET_KEY={key}"

    if secret_key_pattern.search(env_content):
        env_content = secret_key_pattern.sub(new_line, env_content)
    else:
        if env_content and not env_content.endswith("\n"):
            env_content += "\n"
        env_content += new_line + "\n"

    env_path.write_text(env_content)
    click.echo(f"SECRET_KEY written to {env_path}")


def _open_database(settings):
    """Engine and session factory for commands running outside the app."""
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    engine = create_async_engine(settings.db.url, echo=settings.db.echo)
    return engine, async_sessionmaker(engine, expire_on_commit=False)


def _parse_now(value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"Invalid date/time: {value}", param_hint="--now")


@cli.command()
@click.option("--now", "now_value", default=None, help="Civil time to sweep as of (YYYY-MM-DD HH:MM)")
def sweep(now_value):
    """Unpublish every expired item once, without waiting for the schedule."""
    from sunset import expiry
    from sunset.config import get_settings

    settings = get_settings()
    now = _parse_now(now_value)

    async def _run():
        engine, session_factory = _open_database(settings)
        try:
            async with session_factory() as db_session:
                return await expiry.run_sweep(db_session, config=settings.expiration, now=now)
        finally:
            await engine.dispose()

    expired = asyncio.run(_run())
    for page_id in expired:
        click.echo(f"  unpublished {page_id}")
    click.echo(f"{len(expired)} item(s) unpublished.")


@cli.command()
def schedule():
    """Show when the next expiration check will run."""
    from sunset import expiry
    from sunset.config import get_settings
    from sunset.db.services.setting_service import SettingEventStore
    from sunset.lib.scheduler import Scheduler

    settings = get_settings()

    async def _run():
        engine, session_factory = _open_database(settings)
        try:
            scheduler = Scheduler(SettingEventStore(session_factory))
            return await scheduler.next_scheduled(expiry.EXPIRATION_CHECK_EVENT)
        finally:
            await engine.dispose()

    next_run = asyncio.run(_run())
    if next_run is None:
        click.echo("Expiration check is not scheduled.")
    else:
        click.echo(f"Next expiration check: {next_run.isoformat()}")


@cli.command()
def deactivate():
    """Cancel the recurring expiration check.

    The check is scheduled again the next time the server starts with
    ``expiration.scheduler_enabled`` on.
    """
    from sunset import expiry
    from sunset.config import get_settings
    from sunset.db.services.setting_service import SettingEventStore
    from sunset.lib.scheduler import Scheduler

    settings = get_settings()

    async def _run():
        engine, session_factory = _open_database(settings)
        try:
            scheduler = Scheduler(SettingEventStore(session_factory))
            await expiry.deactivate(None, scheduler)
        finally:
            await engine.dispose()

    asyncio.run(_run())
    click.echo("Expiration check unscheduled.")


def _run_alembic(project_root: Path, args: list[str]) -> None:
    """Build an Alembic Config programmatically and run the given command."""
    from alembic.config import CommandLine, Config

    package_dir = Path(__file__).parent

    alembic_ini = project_root / "alembic.ini"
    if not alembic_ini.exists():
        alembic_ini = package_dir / "alembic.ini"
        if not alembic_ini.exists():
            click.echo("Error: Could not find alembic.ini", err=True)
            sys.exit(1)

    cfg = Config(str(alembic_ini))
    cfg.set_main_option("script_location", str(package_dir / "alembic"))

    cmd = CommandLine()
    options = cmd.parser.parse_args(args)
    if not hasattr(options, "cmd"):
        cmd.parser.error("too few arguments")
    else:
        cfg.cmd_opts = options
        fn, positional, kwarg = options.cmd
        fn(
            cfg,
            *[getattr(options, k, None) for k in positional],
            **{k: getattr(options, k, None) for k in kwarg},
        )


@cli.command(
    context_settings=dict(
        ignore_unknown_options=True,
        allow_extra_args=True,
    )
)
@click.pass_context
def db(ctx):
    """Run database migrations via Alembic.

    \b
    Examples:
        sunset db upgrade head     # Apply all migrations
        sunset db downgrade -1     # Rollback one migration
        sunset db current          # Show current revision
        sunset db history          # Show migration history
    """
    if not ctx.args:
        click.echo(ctx.get_help())
        return

    # Run from the project root, where app.yaml and .env live
    _run_alembic(Path.cwd(), ctx.args)


if __name__ == "__main__":
    cli()
