"""REST API wrapper for the DigitalOcean v2 compute API."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import httpx
import structlog

from droplet_pool.config.models import ProviderConfig
from droplet_pool.provider.errors import ProviderError
from droplet_pool.provider.models import (
    Droplet,
    DropletCreateRequest,
    ImagesPage,
    RegionsPage,
    SizesPage,
)

logger = structlog.get_logger()


@runtime_checkable
class ComputeClient(Protocol):
    """What provisioning and catalog listing need from a provider client."""

    def create_droplet(self, request: DropletCreateRequest) -> Droplet:
        """Create one droplet and return the provider's record of it."""
        ...

    def get_available_images(self, page: int) -> ImagesPage:
        ...

    def get_available_sizes(self, page: int) -> SizesPage:
        ...

    def get_available_regions(self, page: int) -> RegionsPage:
        ...


class DigitalOceanClient:
    """Thin synchronous wrapper around the DigitalOcean REST API."""

    def __init__(self, auth_token: str, config: ProviderConfig | None = None) -> None:
        self._config = config or ProviderConfig()
        self._client = httpx.Client(
            base_url=self._config.api_url,
            timeout=self._config.timeout_seconds,
            headers={
                "Authorization": f"Bearer {auth_token}",
                "Content-Type": "application/json",
            },
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> DigitalOceanClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # -- Droplets --------------------------------------------------------------

    def create_droplet(self, request: DropletCreateRequest) -> Droplet:
        body = self._request("POST", "/droplets", json=request.to_payload())
        droplet = Droplet.model_validate(body["droplet"])
        logger.info("droplet.created", droplet_id=droplet.id, name=droplet.name)
        return droplet

    def delete_droplet(self, droplet_id: int) -> None:
        self._request("DELETE", f"/droplets/{droplet_id}")
        logger.info("droplet.deleted", droplet_id=droplet_id)

    # -- Catalog ---------------------------------------------------------------

    def get_available_images(self, page: int) -> ImagesPage:
        return ImagesPage.model_validate(self._get_page("/images", page))

    def get_available_sizes(self, page: int) -> SizesPage:
        return SizesPage.model_validate(self._get_page("/sizes", page))

    def get_available_regions(self, page: int) -> RegionsPage:
        return RegionsPage.model_validate(self._get_page("/regions", page))

    # -- Internals -------------------------------------------------------------

    def _get_page(self, path: str, page: int) -> dict[str, Any]:
        return self._request(
            "GET",
            path,
            params={"page": page, "per_page": self._config.per_page},
        )

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        # POST /droplets creates a resource; repeating it after a partial
        # failure can create a second droplet.
        idempotent = method != "POST"
        try:
            resp = self._client.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            raise ProviderError.from_transport(exc, idempotent=idempotent) from exc
        if resp.is_error:
            error = ProviderError.from_response(resp, idempotent=idempotent)
            logger.warning(
                "provider.request_failed",
                method=method,
                path=path,
                status=resp.status_code,
                kind=error.kind.value,
                retryable=error.retryable,
            )
            raise error
        if resp.status_code == 204 or not resp.content:
            return {}
        try:
            return resp.json()  # type: ignore[no-any-return]
        except ValueError as exc:
            raise ProviderError.from_invalid_body(resp) from exc
