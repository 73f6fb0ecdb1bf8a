"""Typer CLI for droplet worker pools."""

from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path

import structlog
import typer
from rich.console import Console
from rich.table import Table
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from droplet_pool.catalog import (
    fill_image_options,
    fill_region_options,
    fill_size_options,
)
from droplet_pool.config.loader import load_pool_config
from droplet_pool.config.models import PoolConfig, ProviderConfig
from droplet_pool.observability.log_config import configure_logging
from droplet_pool.provider.client import ComputeClient, DigitalOceanClient
from droplet_pool.provider.errors import ProviderError
from droplet_pool.provisioning.handoff import WorkerDescriptor
from droplet_pool.provisioning.template import ProvisioningError, ProvisionTemplate

logger = structlog.get_logger()
console = Console()
app = typer.Typer(name="droplet-pool", help="DigitalOcean worker pool CLI")

TOKEN_ENVVAR = "DIGITALOCEAN_TOKEN"


@app.callback()
def main(
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit JSON logs"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level"),
) -> None:
    """Provision and inspect DigitalOcean pool workers."""
    configure_logging(json_logs=json_logs, level=log_level)


def _load(config_path: str) -> PoolConfig:
    path = Path(config_path)
    if not path.is_file():
        console.print(f"[red]Config file not found: {path}[/red]")
        raise typer.Exit(1)
    try:
        return load_pool_config(path)
    except (TypeError, ValueError) as exc:
        console.print(f"[red]Validation error:[/red] {exc}")
        raise typer.Exit(1) from exc


@app.command()
def validate(
    config_path: str = typer.Argument(..., help="Path to pool YAML"),
) -> None:
    """Validate a worker pool configuration file."""
    pool = _load(config_path)

    console.print(f"[green]Valid[/green] — pool={pool.name}")
    console.print(f"  api:       {pool.provider.api_url}")
    console.print(f"  ssh key:   {pool.ssh_key_id}")
    cap = pool.instance_cap if pool.instance_cap is not None else "unlimited"
    console.print(f"  cap:       {cap}")
    if not pool.templates:
        console.print("  templates: (none)")
        return
    console.print(f"  templates: {len(pool.templates)}")
    for t in pool.templates:
        labels = " ".join(sorted(t.label_set)) or "(no labels)"
        console.print(
            f"    - {t.image_id} / {t.size_id} / {t.region_id} "
            f"idle={t.idle_termination_minutes}m labels={labels}"
        )


# ---------------------------------------------------------------------------
# Catalog sub-commands
# ---------------------------------------------------------------------------


def _print_options(
    title: str,
    fill: Callable[[str, ProviderConfig | None], list[tuple[str, str]]],
    token: str,
    api_url: str | None,
) -> None:
    provider = ProviderConfig(api_url=api_url) if api_url else None
    try:
        options = fill(token, provider)
    except ProviderError as exc:
        console.print(f"[red]Listing {title.lower()} failed ({exc.kind}):[/red] {exc}")
        raise typer.Exit(1) from exc

    table = Table(title=title)
    table.add_column("Value", style="cyan")
    table.add_column("Label")
    for value, label in options:
        table.add_row(value, label)
    console.print(table)


@app.command()
def sizes(
    token: str = typer.Option(..., "--token", envvar=TOKEN_ENVVAR, help="API token"),
    api_url: str | None = typer.Option(None, "--api-url", help="API base URL"),
) -> None:
    """List droplet sizes."""
    _print_options("Sizes", fill_size_options, token, api_url)


@app.command()
def images(
    token: str = typer.Option(..., "--token", envvar=TOKEN_ENVVAR, help="API token"),
    api_url: str | None = typer.Option(None, "--api-url", help="API base URL"),
) -> None:
    """List droplet images."""
    _print_options("Images", fill_image_options, token, api_url)


@app.command()
def regions(
    token: str = typer.Option(..., "--token", envvar=TOKEN_ENVVAR, help="API token"),
    api_url: str | None = typer.Option(None, "--api-url", help="API base URL"),
) -> None:
    """List droplet regions."""
    _print_options("Regions", fill_region_options, token, api_url)


# ---------------------------------------------------------------------------
# Provisioning
# ---------------------------------------------------------------------------


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, ProvisioningError) and exc.retryable


def provision_with_retry(
    template: ProvisionTemplate,
    client: ComputeClient,
    pool: PoolConfig,
) -> WorkerDescriptor:
    """Provision a worker, retrying transient failures per ``pool.retry``.

    Every attempt uses a fresh droplet name, so only failures that cannot
    have created a droplet are retried: rate limiting and connect-phase
    errors. A create that timed out or got a 5xx is reported, not repeated.
    """
    retry_cfg = pool.retry

    @retry(
        stop=stop_after_attempt(retry_cfg.max_attempts),
        wait=wait_exponential(
            multiplier=retry_cfg.initial_wait_seconds,
            exp_base=retry_cfg.multiplier,
            max=retry_cfg.max_wait_seconds,
        ),
        retry=retry_if_exception(_is_retryable),
        reraise=True,
    )
    def _attempt() -> WorkerDescriptor:
        return template.provision(
            client,
            template.create_droplet_name(),
            pool.private_key.get_secret_value(),
            pool.ssh_key_id,
            sink=sys.stdout,
        )

    return _attempt()


@app.command()
def provision(
    config_path: str = typer.Argument(..., help="Path to pool YAML"),
    label: str | None = typer.Option(None, "--label", help="Label to provision for"),
) -> None:
    """Create one droplet from the matching template."""
    pool = _load(config_path)
    template = pool.get_template(label)
    if template is None:
        target = f"label '{label}'" if label else "this pool"
        console.print(f"[red]No template found for {target}[/red]")
        raise typer.Exit(1)
    logger.info("cli.provision", pool=pool.name, label=label)

    token = pool.auth_token.get_secret_value()
    with DigitalOceanClient(token, pool.provider) as client:
        try:
            worker = provision_with_retry(template, client, pool)
        except ProvisioningError as exc:
            console.print(f"[red]Provisioning failed ({exc.kind}):[/red] {exc}")
            raise typer.Exit(1) from exc

    table = Table(title=f"Worker — {worker.name}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("pool", worker.pool_name)
    table.add_row("droplet id", str(worker.droplet_id))
    table.add_row("remote user", worker.remote_user)
    table.add_row("remote path", worker.remote_path)
    table.add_row("executors", str(worker.num_executors))
    table.add_row("idle termination", f"{worker.idle_termination_minutes}m")
    table.add_row("labels", worker.label_string or "(none)")
    console.print(table)
