import json
from abc import ABC, abstractmethod
from typing import Any

from workbook.types import Outcome, WireRequest

ACCESS_DENIED_MARKER = "do not have access"
ERROR_SNIPPET_LEN = 200


class Transport(ABC):
    """
    Abstract exchange boundary.
    The adapter depends ONLY on this interface.
    """

    @abstractmethod
    async def send(self, request: WireRequest, timeout_s: float) -> Outcome[Any]:
        """Perform one exchange. Must return an Outcome, never raise."""
        raise NotImplementedError


def decode_body(raw: bytes) -> str:
    """Decode a fully buffered body. Invalid sequences become U+FFFD."""
    return raw.decode("utf-8", errors="replace")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Unexpected token {name}")


def parse_json(body: str) -> Any:
    """Strict JSON: NaN and Infinity are rejected."""
    return json.loads(body, parse_constant=_reject_constant)


def classify_response(status_code: int, body: str) -> Outcome[Any]:
    """
    Map a status code and decoded body to an Outcome.

    Priority:
      1. 200 -> success, JSON body or absent when empty
      2. 204 -> success, data absent (body ignored)
      3. 500 mentioning "do not have access" -> access denied
      4. anything else -> "API Error <status>: <first 200 chars>"
    """
    if status_code == 200:
        if not body:
            return Outcome.ok(None)
        try:
            return Outcome.ok(parse_json(body))
        except (ValueError, RecursionError) as e:
            return Outcome.fail(
                f"Failed to parse response: {e}",
                "parse_error",
                status_code=status_code,
            )

    if status_code == 204:
        return Outcome.ok(None)

    if status_code == 500 and ACCESS_DENIED_MARKER in body:
        return Outcome.fail(
            "Access denied to this endpoint", "access_denied", status_code=status_code
        )

    snippet = body[:ERROR_SNIPPET_LEN] if body else f"HTTP {status_code}"
    return Outcome.fail(
        f"API Error {status_code}: {snippet}", "api_error", status_code=status_code
    )
