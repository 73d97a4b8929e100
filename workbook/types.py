"""
Core types shared by the transport, the calling-convention adapter and callers.

- ServiceConfig: immutable connection settings (host, token, timeout)
- Outcome: the uniform success/failure result of every client operation
- WireRequest: one concrete HTTP exchange, built per call
"""

import os
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from workbook.errors import ConfigurationError

T = TypeVar("T")

DEFAULT_TIMEOUT_MS = 30000

# Logical verbs understood by the adapter table in workbook.service
Verb = Literal["fetch", "fetch_query", "mutate", "replace", "partial_update"]

ErrorType = Literal[
    "network_error",
    "timeout",
    "access_denied",
    "api_error",
    "parse_error",
    "not_found",
]


class ServiceConfig(BaseModel):
    """Connection settings for one client. Never mutated after construction."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    host: str = Field(..., min_length=1, description="API host, e.g. acme.workbook.net")
    api_key: str = Field(..., description="Bearer token sent with every request")
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0, description="Per-call timeout (ms)")

    @property
    def base_url(self) -> str:
        if self.host.startswith(("http://", "https://")):
            return self.host.rstrip("/")
        return f"https://{self.host}"

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000.0

    @classmethod
    def from_env(cls, environment: Optional[str] = None) -> "ServiceConfig":
        """
        Build a config from WORKBOOK_* environment variables.

        The active environment (dev/prod) picks the suffix of each variable,
        e.g. WORKBOOK_API_KEY_DEV. Defaults to ENVIRONMENT, then "prod".

        Raises:
            ConfigurationError: if the API key or base URL is missing
        """
        env = (environment or os.getenv("ENVIRONMENT", "prod")).lower()
        suffix = "DEV" if env == "dev" else "PROD"

        api_key = os.getenv(f"WORKBOOK_API_KEY_{suffix}", "")
        host = os.getenv(f"WORKBOOK_BASE_URL_{suffix}", "")

        missing = [
            name
            for name, value in (
                (f"WORKBOOK_API_KEY_{suffix}", api_key),
                (f"WORKBOOK_BASE_URL_{suffix}", host),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables for {env} environment: "
                f"{', '.join(missing)}",
                missing=tuple(missing),
            )

        return cls(
            host=host,
            api_key=api_key,
            timeout_ms=int(os.getenv("WORKBOOK_TIMEOUT_MS", str(DEFAULT_TIMEOUT_MS))),
        )


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """
    Result of a client operation.

    Exactly one side is meaningful: check `success` before reading `data`.
    `cached` is always False when produced by the transport; an external
    cache stamps hits with mark_cached().
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    cached: bool = False
    error_type: Optional[ErrorType] = None
    status_code: Optional[int] = None

    @classmethod
    def ok(cls, data: Optional[T] = None, cached: bool = False) -> "Outcome[T]":
        return cls(success=True, data=data, cached=cached)

    @classmethod
    def fail(
        cls,
        error: str,
        error_type: ErrorType,
        status_code: Optional[int] = None,
    ) -> "Outcome[T]":
        return cls(success=False, error=error, error_type=error_type, status_code=status_code)

    def mark_cached(self) -> "Outcome[T]":
        return replace(self, cached=True)


@dataclass(frozen=True)
class WireRequest:
    path: str
    method: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def describe(self) -> Dict[str, Any]:
        """Loggable view of the request. Never includes the Authorization header."""
        return {
            "method": self.method,
            "path": self.path,
            "override": self.headers.get("X-HTTP-METHOD-OVERRIDE"),
            "body_bytes": len(self.body),
        }
