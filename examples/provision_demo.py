#!/usr/bin/env python3
"""Runnable demo: list the catalog, then provision one worker droplet.

Prerequisites:
    export DIGITALOCEAN_TOKEN=...  DO_SSH_KEY_ID=...
    export DO_PRIVATE_KEY="$(cat ~/.ssh/pool_rsa)"
    uv run python examples/provision_demo.py
"""

from __future__ import annotations

import sys
from pathlib import Path

from rich.console import Console

from droplet_pool.catalog import list_regions, list_sizes
from droplet_pool.config.loader import load_pool_config
from droplet_pool.provider.client import DigitalOceanClient
from droplet_pool.provisioning.template import ProvisioningError

console = Console()


def main() -> None:
    # 1. Load pool config (templates are validated here)
    pool = load_pool_config(Path(__file__).parent / "pool.yaml")
    template = pool.get_template("linux")
    if template is None:
        console.print("[red]No 'linux' template configured[/red]")
        sys.exit(1)
    console.print("[bold]Pool config loaded[/bold]", pool.name)

    token = pool.auth_token.get_secret_value()
    with DigitalOceanClient(token, pool.provider) as client:
        # 2. Check the template against the catalog
        regions = {r.slug for r in list_regions(client) if r.available}
        sizes = {s.slug for s in list_sizes(client) if s.available}
        if template.region_id not in regions or template.size_id not in sizes:
            console.print(
                f"[red]{template.size_id} in {template.region_id} is unavailable[/red]"
            )
            sys.exit(1)

        # 3. Provision
        try:
            worker = template.provision(
                client,
                template.create_droplet_name(),
                pool.private_key.get_secret_value(),
                pool.ssh_key_id,
                sink=sys.stdout,
            )
        except ProvisioningError as exc:
            console.print(f"[red]Failed ({exc.kind}, retryable={exc.retryable})[/red]")
            sys.exit(1)

    console.print(f"[green]Worker ready:[/green] {worker.name} id={worker.droplet_id}")
    console.print(f"  labels: {worker.label_string}")
    console.print(f"  idle termination: {worker.idle_termination_minutes}m")


if __name__ == "__main__":
    main()
