"""Pydantic models for DigitalOcean API v2 payloads."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _ApiModel(BaseModel):
    """Tolerates the many fields the API returns that we never read."""

    model_config = ConfigDict(extra="ignore")


class Meta(_ApiModel):
    """Pagination metadata attached to every collection response."""

    total: int = 0


class Image(_ApiModel):
    id: int
    name: str = ""
    distribution: str = ""
    slug: str | None = None
    public: bool = True
    regions: list[str] = Field(default_factory=list)

    @property
    def option_value(self) -> str:
        return str(self.id)

    @property
    def option_label(self) -> str:
        return f"{self.distribution} {self.name}"


class Size(_ApiModel):
    slug: str
    memory: int = 0
    vcpus: int = 0
    disk: int = 0
    price_monthly: float = 0.0
    available: bool = True
    regions: list[str] = Field(default_factory=list)

    @property
    def option_value(self) -> str:
        return self.slug

    @property
    def option_label(self) -> str:
        return self.slug


class Region(_ApiModel):
    slug: str
    name: str = ""
    available: bool = True
    sizes: list[str] = Field(default_factory=list)

    @property
    def option_value(self) -> str:
        return self.slug

    @property
    def option_label(self) -> str:
        return self.name


class ImagesPage(_ApiModel):
    images: list[Image] = Field(default_factory=list)
    meta: Meta = Field(default_factory=Meta)

    @property
    def entries(self) -> list[Image]:
        return self.images


class SizesPage(_ApiModel):
    sizes: list[Size] = Field(default_factory=list)
    meta: Meta = Field(default_factory=Meta)

    @property
    def entries(self) -> list[Size]:
        return self.sizes


class RegionsPage(_ApiModel):
    regions: list[Region] = Field(default_factory=list)
    meta: Meta = Field(default_factory=Meta)

    @property
    def entries(self) -> list[Region]:
        return self.regions


class Droplet(_ApiModel):
    """A droplet record as returned by ``POST /droplets``."""

    id: int
    name: str
    status: str = "new"


class DropletCreateRequest(BaseModel):
    """Body of ``POST /droplets`` for a single droplet."""

    model_config = ConfigDict(frozen=True)

    name: str
    size: str
    region: str
    # The API accepts either a numeric image id or an image slug.
    image: int | str
    ssh_keys: list[int | str] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump()
