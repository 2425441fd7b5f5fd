"""Error taxonomy shared by the webhook handler, adapters and queue consumer."""

from __future__ import annotations


class RelayError(Exception):
    """Base class for all relay errors."""


class ValidationError(RelayError):
    """Inbound webhook payload is malformed or not a supported event.

    Surfaced to the webhook caller as HTTP 400.
    """


class SignatureError(ValidationError):
    """``X-Line-Signature`` is missing or does not match the request body."""


class ExternalServiceError(RelayError):
    """The completion provider or the reply provider failed."""

    def __init__(self, service: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(f"{service}: {message}")
        self.service = service
        self.status_code = status_code


class StoreError(RelayError):
    """A conversation history read or write against Redis failed."""
