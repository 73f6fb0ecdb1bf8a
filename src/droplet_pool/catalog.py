"""Provider catalog listing for template option lists.

Images, sizes and regions are fetched page by page and flattened in provider
order. Results are never cached or deduplicated; they only feed the choice
lists an administrator picks from when editing a template.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Protocol, TypeVar

import structlog

from droplet_pool.config.models import ProviderConfig
from droplet_pool.provider.client import ComputeClient, DigitalOceanClient
from droplet_pool.provider.models import Image, Meta, Region, Size

logger = structlog.get_logger()

DEFAULT_MAX_PAGES = ProviderConfig().max_pages

T_co = TypeVar("T_co", covariant=True)
E = TypeVar("E")


class Page(Protocol[T_co]):
    @property
    def entries(self) -> Sequence[T_co]: ...

    @property
    def meta(self) -> Meta: ...


class CatalogOption(Protocol):
    @property
    def option_value(self) -> str: ...

    @property
    def option_label(self) -> str: ...


def fetch_all(
    fetch_page: Callable[[int], Page[E]],
    *,
    max_pages: int = DEFAULT_MAX_PAGES,
    kind: str = "entries",
) -> list[E]:
    """Fetch pages 1..n and concatenate their entries in page order.

    Stops once the entries collected reach the total reported in the page
    metadata, when a page comes back empty, or after *max_pages* pages. A
    reported total of 0 therefore ends the listing after the first page.
    Any page failure propagates; nothing partial is returned.
    """
    entries: list[E] = []
    for page_number in range(1, max_pages + 1):
        page = fetch_page(page_number)
        batch = page.entries
        entries.extend(batch)
        total = page.meta.total
        logger.debug(
            "catalog.page_fetched",
            kind=kind,
            page=page_number,
            count=len(batch),
            total=total,
        )
        if not batch or len(entries) >= total:
            break
    else:
        logger.warning(
            "catalog.page_limit_reached",
            kind=kind,
            max_pages=max_pages,
            fetched=len(entries),
        )
    return entries


def list_sizes(
    client: ComputeClient, *, max_pages: int = DEFAULT_MAX_PAGES
) -> list[Size]:
    return fetch_all(client.get_available_sizes, max_pages=max_pages, kind="sizes")


def list_images(
    client: ComputeClient, *, max_pages: int = DEFAULT_MAX_PAGES
) -> list[Image]:
    return fetch_all(client.get_available_images, max_pages=max_pages, kind="images")


def list_regions(
    client: ComputeClient, *, max_pages: int = DEFAULT_MAX_PAGES
) -> list[Region]:
    return fetch_all(client.get_available_regions, max_pages=max_pages, kind="regions")


def to_options(entries: Sequence[CatalogOption]) -> list[tuple[str, str]]:
    """Map catalog entries to ``(value, label)`` pairs for a select widget."""
    return [(e.option_value, e.option_label) for e in entries]


# -- Form option providers -----------------------------------------------------


def fill_size_options(
    auth_token: str, provider: ProviderConfig | None = None
) -> list[tuple[str, str]]:
    provider = provider or ProviderConfig()
    with DigitalOceanClient(auth_token, provider) as client:
        return to_options(list_sizes(client, max_pages=provider.max_pages))


def fill_image_options(
    auth_token: str, provider: ProviderConfig | None = None
) -> list[tuple[str, str]]:
    provider = provider or ProviderConfig()
    with DigitalOceanClient(auth_token, provider) as client:
        return to_options(list_images(client, max_pages=provider.max_pages))


def fill_region_options(
    auth_token: str, provider: ProviderConfig | None = None
) -> list[tuple[str, str]]:
    provider = provider or ProviderConfig()
    with DigitalOceanClient(auth_token, provider) as client:
        return to_options(list_regions(client, max_pages=provider.max_pages))
