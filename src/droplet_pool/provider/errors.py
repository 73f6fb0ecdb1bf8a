"""Typed provider errors.

Every failure talking to the compute API is reduced to an :class:`ErrorKind`
so that callers can pick a retry policy without parsing messages.
"""

from __future__ import annotations

from enum import StrEnum

import httpx


class ErrorKind(StrEnum):
    """Categories of provider failures."""

    AUTH = "auth"
    QUOTA = "quota"
    VALIDATION = "validation"
    NETWORK = "network"
    UNKNOWN = "unknown"


class ProviderError(Exception):
    """Raised when a compute API call fails.

    ``retryable`` defaults to what the kind and status imply. Callers that
    know the request may already have taken effect pass ``retryable=False``.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        status_code: int | None = None,
        retryable: bool | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
        if retryable is None:
            retryable = is_retryable(kind, status_code)
        self.retryable = retryable

    @classmethod
    def from_response(
        cls, response: httpx.Response, *, idempotent: bool = True
    ) -> ProviderError:
        """Classify a non-2xx API response.

        A 5xx answer to a non-idempotent request is not retryable: the
        provider may have acted on it before failing.
        """
        status = response.status_code
        message = _error_message(response)
        if status in (401, 403):
            kind = ErrorKind.AUTH
        elif status == 429:
            kind = ErrorKind.QUOTA
        elif status == 422 and "limit" in message.lower():
            # e.g. "creating this/these droplet(s) will exceed your droplet limit"
            kind = ErrorKind.QUOTA
        elif 400 <= status < 500:
            kind = ErrorKind.VALIDATION
        elif status >= 500:
            kind = ErrorKind.NETWORK
        else:
            kind = ErrorKind.UNKNOWN
        retryable = is_retryable(kind, status)
        if status >= 500 and not idempotent:
            retryable = False
        return cls(
            kind, f"{status} {message}", status_code=status, retryable=retryable
        )

    @classmethod
    def from_transport(
        cls, exc: httpx.TransportError, *, idempotent: bool = True
    ) -> ProviderError:
        """Classify a transport failure.

        Only connect-phase failures are safe to repeat for a non-idempotent
        request; anything later may have reached the provider.
        """
        retryable = idempotent or isinstance(exc, _NOT_SENT)
        return cls(
            ErrorKind.NETWORK, f"{type(exc).__name__}: {exc}", retryable=retryable
        )

    @classmethod
    def from_invalid_body(cls, response: httpx.Response) -> ProviderError:
        """A 2xx response whose body is not the JSON the API promises."""
        snippet = response.text[:200]
        return cls(
            ErrorKind.UNKNOWN,
            f"{response.status_code} invalid JSON body: {snippet}",
            status_code=response.status_code,
        )


# The request never left the client.
_NOT_SENT = (httpx.ConnectError, httpx.ConnectTimeout)


def is_retryable(kind: ErrorKind, status_code: int | None) -> bool:
    if kind == ErrorKind.NETWORK:
        return True
    # Rate limiting is temporary, an exhausted droplet limit is not.
    return kind == ErrorKind.QUOTA and status_code == 429


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.text
