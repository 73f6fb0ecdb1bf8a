"""Pydantic configuration models for droplet worker pools."""

from __future__ import annotations

from typing import Any, Self

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator

from droplet_pool.provisioning.template import ProvisionTemplate


class ProviderConfig(BaseModel):
    """DigitalOcean REST API settings."""

    api_url: str = "https://api.digitalocean.com/v2"
    timeout_seconds: float = Field(default=30.0, gt=0)
    # The API caps per_page at 200.
    per_page: int = Field(default=100, ge=1, le=200)
    # Safety net for catalog listing when the reported total never converges.
    max_pages: int = Field(default=50, ge=1)


class RetryConfig(BaseModel):
    """Retry / backoff applied by callers to retryable provisioning failures."""

    max_attempts: int = Field(default=3, ge=1)
    initial_wait_seconds: float = Field(default=1.0, gt=0)
    max_wait_seconds: float = Field(default=30.0, gt=0)
    multiplier: float = Field(default=2.0, ge=1.0)


class PoolConfig(BaseModel):
    """A worker pool backed by one DigitalOcean account."""

    name: str = Field(min_length=1, pattern=r"^[a-zA-Z0-9][a-zA-Z0-9._-]*$")
    auth_token: SecretStr
    # Id or fingerprint of the public key registered with the account.
    ssh_key_id: int | str
    private_key: SecretStr
    # None means no cap; enforced by the orchestrator, not here.
    instance_cap: int | None = Field(default=None, ge=1)
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    templates: list[ProvisionTemplate] = Field(default_factory=list)

    @field_validator("ssh_key_id")
    @classmethod
    def numeric_key_id(cls, v: int | str) -> int | str:
        """Key ids read from the environment arrive as strings."""
        if isinstance(v, str) and v.isdigit():
            return int(v)
        return v

    @model_validator(mode="before")
    @classmethod
    def inject_pool_name(cls, data: Any) -> Any:
        """Give each raw template mapping the pool's name as its owner."""
        if not isinstance(data, dict):
            return data
        name = data.get("name")
        templates = data.get("templates")
        if name is None or not isinstance(templates, list):
            return data
        data = {**data}
        data["templates"] = [
            {"pool_name": name, **t} if isinstance(t, dict) else t
            for t in templates
        ]
        return data

    @model_validator(mode="after")
    def check_template_owner(self) -> Self:
        """Templates must belong to this pool."""
        for template in self.templates:
            if template.pool_name != self.name:
                msg = (
                    f"Template for image '{template.image_id}' belongs to pool "
                    f"'{template.pool_name}', not '{self.name}'"
                )
                raise ValueError(msg)
        return self

    def get_template(self, label: str | None = None) -> ProvisionTemplate | None:
        """Return the first template that can serve *label*.

        With no label, the first template is returned.
        """
        for template in self.templates:
            if label is None or label in template.label_set:
                return template
        return None
