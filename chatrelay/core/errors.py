"""Project error hierarchy.

Every failure of the relay pipeline is one of these. The chat router renders
them with ``to_body()`` and ``status_code``; nothing here is retried.
"""

from __future__ import annotations

from typing import Any


class RelayError(Exception):
    """Base error."""

    kind = "relay_error"
    status_code = 500

    def __init__(self, message: str, *, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message, "kind": self.kind}
        if self.details not in (None, "", {}):
            body["details"] = self.details
        return body


class ValidationError(RelayError):
    """Bad or missing input (400), or a wrong HTTP method (405)."""

    kind = "validation_error"
    status_code = 400

    def __init__(self, message: str, *, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConfigurationError(RelayError):
    """Required secret or identifier is missing. Operator-fixable."""

    kind = "configuration_error"


class AuthError(RelayError):
    """Identity token exchange failed."""

    kind = "auth_error"

    def __init__(self, message: str, *, upstream_status: int | None = None, details: Any = None) -> None:
        super().__init__(message, details=details)
        self.upstream_status = upstream_status

    def to_body(self) -> dict[str, Any]:
        body = super().to_body()
        if self.upstream_status is not None:
            body["status"] = self.upstream_status
        return body


class UpstreamHTTPError(RelayError):
    """Inference endpoint answered with a non-2xx status; the status is propagated."""

    kind = "upstream_http_error"

    def __init__(self, message: str, *, upstream_status: int, details: Any = None) -> None:
        super().__init__(message, details=details)
        self.upstream_status = upstream_status
        self.status_code = upstream_status if 400 <= upstream_status <= 599 else 502

    def to_body(self) -> dict[str, Any]:
        body = super().to_body()
        body["status"] = self.upstream_status
        return body


class UpstreamUnreachableError(RelayError):
    """Request was sent but no response arrived (network, firewall, timeout)."""

    kind = "upstream_unreachable"
    suggestion = "Please check your internet connection and try again"

    def to_body(self) -> dict[str, Any]:
        body = super().to_body()
        body["suggestion"] = self.suggestion
        return body


class RequestSetupError(RelayError):
    """The outbound request could not be built or issued at all."""

    kind = "request_setup_error"


class UnknownProfileError(ConfigurationError):
    """Configured provider profile name is not registered."""
