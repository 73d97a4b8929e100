from typing import Any, Callable, Dict, List, Optional, Union

from workbook.transport.base import Transport, classify_response
from workbook.types import Outcome, WireRequest

Responder = Callable[[WireRequest], Outcome[Any]]


class StubTransport(Transport):
    """
    Deterministic fake transport for testing and CI.

    Responses are looked up by request path (e.g.
    "/api/json/reply/ResourceRequest[]"); unknown paths get `default`.
    Every request is recorded in `requests` for assertions.
    """

    def __init__(
        self,
        responses: Optional[Dict[str, Union[Outcome[Any], Responder]]] = None,
        default: Optional[Outcome[Any]] = None,
    ):
        self.responses = dict(responses or {})
        self.default = default if default is not None else Outcome.ok(None)
        self.requests: List[WireRequest] = []

    @classmethod
    def from_raw(cls, status_code: int, body: str = "") -> "StubTransport":
        """Stub every call with the classification of a raw status/body pair."""
        return cls(default=classify_response(status_code, body))

    async def send(self, request: WireRequest, timeout_s: float) -> Outcome[Any]:
        self.requests.append(request)
        path = request.path.split("?", 1)[0]
        response = self.responses.get(path, self.default)
        if callable(response):
            return response(request)
        return response

    @property
    def last_request(self) -> Optional[WireRequest]:
        return self.requests[-1] if self.requests else None
