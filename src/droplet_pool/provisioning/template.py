"""Provision templates: the configuration of one class of pool workers.

A :class:`ProvisionTemplate` holds the values used to create a new droplet
(image, size, region), the labels the pool schedules on, and the parameters
the remote launcher and idle-retention collaborators need afterwards.

:meth:`ProvisionTemplate.provision` is the entry point used when the pool
needs a new worker.
"""

from __future__ import annotations

import re
import traceback
from typing import TYPE_CHECKING, Any, TextIO

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

from droplet_pool.naming import create_droplet_name
from droplet_pool.provider.errors import ErrorKind, ProviderError, is_retryable
from droplet_pool.provider.models import DropletCreateRequest
from droplet_pool.provisioning.handoff import WorkerDescriptor, to_worker_descriptor

if TYPE_CHECKING:
    from droplet_pool.provider.client import ComputeClient

logger = structlog.get_logger()

_DIGITS = re.compile(r"^\d+$")


class ProvisioningError(Exception):
    """Raised when a droplet could not be created for a worker."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        droplet_name: str,
        status_code: int | None = None,
        retryable: bool | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.droplet_name = droplet_name
        self.status_code = status_code
        if retryable is None:
            retryable = is_retryable(kind, status_code)
        self.retryable = retryable


def parse_labels(labels: str) -> frozenset[str]:
    """Split a whitespace-delimited label string into a set of label atoms."""
    return frozenset(labels.split())


class ProvisionTemplate(BaseModel):
    """Immutable configuration for creating DigitalOcean droplets as workers."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    pool_name: str = Field(min_length=1)
    # Image id or slug, e.g. "ubuntu-24-04-x64"
    image_id: str = Field(min_length=1)
    # e.g. "s-1vcpu-1gb"
    size_id: str = Field(min_length=1)
    # e.g. "nyc1"
    region_id: str = Field(min_length=1)
    # 0 disables idle termination.
    idle_termination_minutes: int = Field(ge=0)
    label_string: str | None = None
    remote_user: str = "root"
    remote_path: str = "/var/lib/worker"

    @field_validator("idle_termination_minutes", mode="before")
    @classmethod
    def parse_idle_minutes(cls, v: Any) -> Any:
        """Accept an int or a plain decimal string such as ``"30"``."""
        if isinstance(v, bool):
            msg = "idle_termination_minutes must be an integer, not a boolean"
            raise ValueError(msg)
        if isinstance(v, str):
            stripped = v.strip()
            if not _DIGITS.match(stripped):
                msg = (
                    "idle_termination_minutes must be a non-negative integer, "
                    f"got {v!r}"
                )
                raise ValueError(msg)
            return int(stripped)
        return v

    @property
    def labels(self) -> str:
        return self.label_string or ""

    @property
    def label_set(self) -> frozenset[str]:
        return parse_labels(self.labels)

    @property
    def num_executors(self) -> int:
        return 1

    def create_droplet_name(self) -> str:
        return create_droplet_name()

    def build_request(
        self, droplet_name: str, ssh_key_id: int | str
    ) -> DropletCreateRequest:
        """Build the create-droplet request for a single worker."""
        image: int | str = self.image_id
        if _DIGITS.match(self.image_id):
            image = int(self.image_id)
        return DropletCreateRequest(
            name=droplet_name,
            size=self.size_id,
            region=self.region_id,
            image=image,
            ssh_keys=[ssh_key_id],
        )

    def provision(
        self,
        client: ComputeClient,
        droplet_name: str,
        private_key: str,
        ssh_key_id: int | str,
        sink: TextIO | None = None,
    ) -> WorkerDescriptor:
        """Create a new droplet to be used as a pool worker.

        Exactly one create call is made; failures are never retried here.

        Args:
            client: A :class:`~droplet_pool.provider.client.ComputeClient`.
            droplet_name: Unique name for the droplet, see
                :meth:`create_droplet_name`.
            private_key: RSA private key matching *ssh_key_id*.
            ssh_key_id: Id or fingerprint of a key registered with the account.
            sink: Optional text stream receiving progress lines.

        Raises:
            ProvisioningError: the droplet could not be created.
        """
        logger.info(
            "template.provision_started",
            pool=self.pool_name,
            droplet_name=droplet_name,
        )
        try:
            _emit(
                sink,
                "Starting to provision digital ocean droplet using image: "
                f"{self.image_id}, region: {self.region_id}, "
                f"sizeId: {self.size_id}",
            )
            request = self.build_request(droplet_name, ssh_key_id)
            _emit(sink, f"Creating worker with new droplet {droplet_name}")
            droplet = client.create_droplet(request)
        except Exception as exc:
            if sink is not None:
                traceback.print_exc(file=sink)
            error = _provisioning_error(exc, droplet_name)
            logger.error(
                "template.provision_failed",
                pool=self.pool_name,
                droplet_name=droplet_name,
                kind=error.kind.value,
                retryable=error.retryable,
                error=str(exc),
            )
            raise error from exc

        logger.info(
            "template.provisioned",
            pool=self.pool_name,
            droplet_id=droplet.id,
            droplet_name=droplet.name,
        )
        return to_worker_descriptor(droplet, private_key, self)


def _emit(sink: TextIO | None, line: str) -> None:
    if sink is not None:
        print(line, file=sink)


def _provisioning_error(exc: Exception, droplet_name: str) -> ProvisioningError:
    if isinstance(exc, ProviderError):
        return ProvisioningError(
            exc.kind,
            f"Failed to create droplet {droplet_name}: {exc}",
            droplet_name=droplet_name,
            status_code=exc.status_code,
            retryable=exc.retryable,
        )
    return ProvisioningError(
        ErrorKind.UNKNOWN,
        f"Failed to create droplet {droplet_name}: {type(exc).__name__}: {exc}",
        droplet_name=droplet_name,
    )
