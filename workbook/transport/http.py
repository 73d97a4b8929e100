"""
Production transport built on httpx.

One httpx.AsyncClient per call, so nothing is shared between concurrent
callers. The whole exchange is bounded by the configured timeout: httpx
enforces it per phase (connect/read/write) and asyncio.wait_for bounds the
total, so a slow trickle of chunks cannot keep the caller waiting.
"""

import asyncio
import logging
from typing import Any, Optional

import httpx

from workbook.tracing import TraceMetadata, Tracer, emit_event
from workbook.transport.base import Transport, classify_response, decode_body
from workbook.types import Outcome, WireRequest

logger = logging.getLogger(__name__)


class HttpxTransport(Transport):
    """
    Sends WireRequests to the configured host.

    Guarantees:
    - Never raises for network, timeout or protocol failures
    - Buffers the full body before decoding it as UTF-8
    - Emits workbook_request_sent / workbook_response_received /
      workbook_request_failed when a tracer is configured
    """

    def __init__(
        self,
        base_url: str,
        tracer: Optional[Tracer] = None,
        trace_metadata: Optional[TraceMetadata] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url:       Scheme + host, e.g. "https://acme.workbook.net"
            tracer:         Optional telemetry sink
            trace_metadata: Identity attached to emitted events
            transport:      Unit-test hook passed through to httpx.AsyncClient
        """
        self.base_url = base_url.rstrip("/")
        self._tracer = tracer
        self._trace_metadata = trace_metadata
        self._transport = transport

    async def send(self, request: WireRequest, timeout_s: float) -> Outcome[Any]:
        logger.debug("API CALL: %s %s", request.method, request.path)
        self._emit("workbook_request_sent", request.describe())

        try:
            status_code, raw = await asyncio.wait_for(
                self._exchange(request, timeout_s), timeout=timeout_s
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return self._failed(request, Outcome.fail("Request timeout", "timeout"))
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as e:
            return self._failed(
                request, Outcome.fail(f"Network error: {e}", "network_error")
            )

        outcome = classify_response(status_code, decode_body(raw))
        if not outcome.success:
            return self._failed(request, outcome)

        self._emit("workbook_response_received", {
            "path": request.path,
            "status_code": status_code,
            "body_bytes": len(raw),
        })
        return outcome

    async def _exchange(self, request: WireRequest, timeout_s: float):
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_s),
            transport=self._transport,
        ) as client:
            response = await client.request(
                request.method,
                f"{self.base_url}{request.path}",
                content=request.body or None,
                headers=request.headers,
            )
            # .content is only available once the stream has been read fully
            return response.status_code, response.content

    def _failed(self, request: WireRequest, outcome: Outcome[Any]) -> Outcome[Any]:
        logger.warning(
            "Workbook call failed: %s %s -> %s (%s)",
            request.method, request.path, outcome.error_type, outcome.error,
        )
        self._emit("workbook_request_failed", {
            "path": request.path,
            "reason": outcome.error_type,
            "status_code": outcome.status_code,
        })
        return outcome

    def _emit(self, event_name: str, metadata: dict) -> None:
        emit_event(self._tracer, event_name, metadata, self._trace_metadata)
