"""
devportal-aicore CLI: check-config | token | deployments
"""
import asyncio
import time

import click
from pydantic import ValidationError as PydanticValidationError

from devportal.config.settings import Settings, load_settings
from devportal.core.exceptions import DevPortalError
from devportal.core.structured_logger import configure_logging


def _load(config_path: str | None) -> Settings:
    try:
        settings = load_settings(config_path)
    except (FileNotFoundError, PydanticValidationError, DevPortalError) as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        raise SystemExit(1) from e
    configure_logging(settings.logging.level, settings.logging.format)
    return settings


@click.group()
@click.version_option(package_name="devportal-aicore")
def cli() -> None:
    """AI Core gateway: operator tooling."""
    pass


@cli.command("check-config")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None, help="YAML settings file")
def check_config(config_path: str | None) -> None:
    """Validate settings and list configured instances."""
    settings = _load(config_path)
    click.echo(f"{settings.project_name} {settings.version}")
    if not settings.aicore.credentials:
        click.echo("No AI Core instances configured.")
        return
    click.echo(f"{len(settings.aicore.credentials)} AI Core instance(s):")
    for creds in settings.aicore.credentials:
        click.echo(f"  {creds.team}: {creds.api_url} (resource group {creds.resource_group})")


@cli.command()
@click.argument("team")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None, help="YAML settings file")
def token(team: str, config_path: str | None) -> None:
    """Acquire an access token for TEAM and report its lifetime."""
    from devportal.aicore.credentials import CredentialStore

    settings = _load(config_path)

    async def _run() -> float:
        store = CredentialStore(
            settings.aicore.credentials,
            timeout_seconds=settings.aicore.http_timeout_seconds,
            expiry_leeway_seconds=settings.aicore.token_expiry_leeway_seconds,
        )
        await store.get_token(team)
        cached = store.cached_token(team)
        return cached.expires_at - time.time() if cached else 0.0

    try:
        remaining = asyncio.run(_run())
    except DevPortalError as e:
        click.echo(f"Token acquisition failed: {e.message}", err=True)
        raise SystemExit(1) from e
    click.echo(f"Token acquired for {team}, valid for {int(remaining)}s")


@cli.command()
@click.argument("teams", nargs=-1, required=True)
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None, help="YAML settings file")
def deployments(teams: tuple[str, ...], config_path: str | None) -> None:
    """List deployments of the given TEAMS as JSON."""
    from devportal.aicore.client import AICoreClient
    from devportal.aicore.credentials import CredentialStore
    from devportal.aicore.deployments import DeploymentAggregator

    settings = _load(config_path)
    config = settings.aicore

    async def _run() -> str:
        store = CredentialStore(
            config.credentials,
            timeout_seconds=config.http_timeout_seconds,
            expiry_leeway_seconds=config.token_expiry_leeway_seconds,
        )
        async with AICoreClient(store, timeout_seconds=config.http_timeout_seconds) as client:
            aggregator = DeploymentAggregator(client, max_concurrency=config.max_concurrent_instances)
            result = await aggregator.list(store.filter_configured(teams))
        return result.model_dump_json(indent=2)

    click.echo(asyncio.run(_run()))


if __name__ == "__main__":
    cli()
