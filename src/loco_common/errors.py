from __future__ import annotations

from typing import Any

REDACT_TOKEN = "***redacted***"


def typed_error(code: str, message: str, *, details: Any = None, **extra: Any) -> dict:
    """
    Standard error envelope:
      {"error": {"code": code, "message": message, "details": ...}, ...extra}
    """
    err: dict[str, Any] = {"error": {"code": code, "message": message}}
    if details:
        err["error"]["details"] = details
    if extra:
        err.update(extra)
    return err


class LocoError(Exception):
    """Base class for every failure a tool call can surface to the client."""

    code = "internal"

    def __init__(self, message: str, *, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_typed_error(self) -> dict:
        return typed_error(self.code, self.message, details=self.details)


class ConfigurationError(LocoError):
    """A required setting (the API key) is missing or malformed."""

    code = "missing_credential"


class ValidationError(LocoError):
    """Tool arguments do not match the declared input schema."""

    code = "bad_request"


class ApiError(LocoError):
    """The Loco API answered with a non-2xx status."""

    code = "upstream_error"

    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"Loco API {status}: {body}", details={"status": status, "body": body})
        self.status = status
        self.body = body


class TransportError(LocoError):
    """The request never produced an HTTP response (DNS, connect, TLS, read)."""

    code = "transport_error"
