"""
Transport boundary for the service request engine.

Backends:
- HttpxTransport: real HTTPS exchanges (default)
- StubTransport: canned outcomes for tests/CI

Example usage:
    from workbook.transport import HttpxTransport

    transport = HttpxTransport("https://acme.workbook.net")
    outcome = await transport.send(request, timeout_s=30.0)
"""

from .base import Transport, classify_response, decode_body
from .http import HttpxTransport
from .stub import StubTransport

__all__ = [
    "Transport",
    "HttpxTransport",
    "StubTransport",
    "classify_response",
    "decode_body",
]
