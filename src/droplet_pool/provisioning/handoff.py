"""Hand-off of a created droplet to the worker pool.

Turns the provider's droplet record into the descriptor the pool, the remote
launcher and the idle-retention collaborator work from, so none of them needs
to consult the template again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from droplet_pool.provider.models import Droplet

if TYPE_CHECKING:
    from droplet_pool.provisioning.template import ProvisionTemplate


class NodeMode(StrEnum):
    """How the pool schedules work onto a worker."""

    NORMAL = "normal"  # any job
    EXCLUSIVE = "exclusive"  # only jobs whose label matches


@dataclass(frozen=True, slots=True)
class WorkerDescriptor:
    """A provisioned worker, ready to be registered with the pool."""

    pool_name: str
    name: str
    description: str
    droplet_id: int
    private_key: str = field(repr=False)
    remote_path: str
    remote_user: str
    num_executors: int
    idle_termination_minutes: int
    mode: NodeMode
    label_string: str
    # Filled in by the launcher and retention collaborators.
    launcher: Any = None
    retention_strategy: Any = None
    node_properties: tuple[Any, ...] = ()
    description_override: str = ""
    init_script: str = ""


def describe_droplet(name: str) -> str:
    return f"Computer running on DigitalOcean with name: {name}"


def to_worker_descriptor(
    droplet: Droplet,
    private_key: str,
    template: ProvisionTemplate,
) -> WorkerDescriptor:
    """Build the descriptor for *droplet*, created from *template*."""
    return WorkerDescriptor(
        pool_name=template.pool_name,
        name=droplet.name,
        description=describe_droplet(droplet.name),
        droplet_id=droplet.id,
        private_key=private_key,
        remote_path=template.remote_path,
        remote_user=template.remote_user,
        num_executors=template.num_executors,
        idle_termination_minutes=template.idle_termination_minutes,
        mode=NodeMode.NORMAL,
        label_string=template.labels,
    )
