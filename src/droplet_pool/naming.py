"""Droplet naming conventions."""

from __future__ import annotations

import uuid

DROPLET_PREFIX = "worker-"


def create_droplet_name(prefix: str = DROPLET_PREFIX) -> str:
    """Build a unique droplet name.

    A random UUID4 is the only uniqueness guarantee; no registry of names in
    use is consulted.
    """
    return f"{prefix}{uuid.uuid4()}"
