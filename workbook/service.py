"""
Calling-convention adapter for the Workbook JSON API.

The remote API speaks a non-standard REST dialect:

  Logical verb     Wire method  Extra                          Body
  ───────────────  ───────────  ─────────────────────────────  ─────────────────
  fetch            POST         X-HTTP-METHOD-OVERRIDE: GET    params as JSON
  fetch_query      GET          -                              params in query
  mutate           POST         -                              body as JSON
  replace          PUT          -                              body as JSON
  partial_update   PATCH        -                              {"Patch": patch}

Batch-only endpoints take a literal "[]" suffix and an array body, even for a
single record. BaseService hides all of this behind verb methods that return
an Outcome and never raise for request failures.

Which of fetch / fetch_query an endpoint needs is a property of the endpoint;
each domain service documents it next to the call.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence
from urllib.parse import urlencode

from workbook.cache_keys import generate_cache_key, to_json
from workbook.transport import HttpxTransport, Transport
from workbook.types import Outcome, ServiceConfig, Verb, WireRequest

logger = logging.getLogger(__name__)

API_PREFIX = "/api/json/reply/"
METHOD_OVERRIDE_HEADER = "X-HTTP-METHOD-OVERRIDE"

ResourceShape = Literal["single", "batch"]

SHAPE_SUFFIX: Dict[str, str] = {
    "single": "",
    "batch": "[]",
}


@dataclass(frozen=True)
class VerbRule:
    """Wire-level translation of one logical verb."""

    wire_method: str
    method_override: Optional[str] = None
    body_mode: Literal["json", "query"] = "json"
    envelope: Optional[str] = None


VERB_TABLE: Dict[str, VerbRule] = {
    "fetch": VerbRule("POST", method_override="GET"),
    "fetch_query": VerbRule("GET", body_mode="query"),
    "mutate": VerbRule("POST"),
    "replace": VerbRule("PUT"),
    "partial_update": VerbRule("PATCH", envelope="Patch"),
}

NOT_FOUND_ERROR = "Resource not found or empty response"


def query_value(value: Any) -> str:
    """Stringify a query parameter the way the remote query parser expects."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(query_value(item) for item in value)
    return str(value)


def encode_query(params: Optional[Mapping[str, Any]]) -> str:
    """Flatten params into key=value pairs, keeping the mapping's order."""
    if not params:
        return ""
    return urlencode([(key, query_value(value)) for key, value in params.items()])


def endpoint_path(endpoint: str, shape: ResourceShape = "single") -> str:
    return f"{API_PREFIX}{endpoint}{SHAPE_SUFFIX[shape]}"


def build_wire_request(
    config: ServiceConfig,
    verb: Verb,
    endpoint: str,
    payload: Any = None,
    shape: ResourceShape = "single",
) -> WireRequest:
    """
    Translate a logical call into the concrete exchange.

    Raises:
        KeyError: for a verb missing from VERB_TABLE
        TypeError: if payload is not JSON-serializable
    """
    rule = VERB_TABLE[verb]
    path = endpoint_path(endpoint, shape)
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {config.api_key}",
    }

    if rule.body_mode == "query":
        query = encode_query(payload)
        if query:
            path = f"{path}?{query}"
        return WireRequest(path=path, method=rule.wire_method, headers=headers)

    if rule.envelope:
        payload = {rule.envelope: payload}
    body = b"" if payload is None else to_json(payload).encode("utf-8")

    headers["Content-Length"] = str(len(body))
    if rule.method_override:
        headers[METHOD_OVERRIDE_HEADER] = rule.method_override

    return WireRequest(path=path, method=rule.wire_method, headers=headers, body=body)


class BaseService:
    """
    Generic Workbook API client.

    Holds nothing but its config and transport, so a single instance can be
    shared by any number of concurrent callers.

    Usage:
        service = BaseService(ServiceConfig(host="acme.workbook.net", api_key="..."))
        outcome = await service.fetch_one_by_batch("ResourceRequest", 42)
        if outcome.success:
            print(outcome.data["Name"])
    """

    def __init__(self, config: ServiceConfig, transport: Optional[Transport] = None):
        self.config = config
        self.transport = transport or HttpxTransport(config.base_url)

    async def execute(
        self,
        endpoint: str,
        verb: Verb = "fetch",
        body: Any = None,
        shape: ResourceShape = "single",
    ) -> Outcome[Any]:
        """Build the wire request for `verb` and send it. Exactly one Outcome per call."""
        request = build_wire_request(self.config, verb, endpoint, body, shape)
        return await self.transport.send(request, self.config.timeout_s)

    async def fetch(self, endpoint: str, params: Any = None) -> Outcome[Any]:
        """Logical GET with a JSON body (POST + method override)."""
        return await self.execute(endpoint, "fetch", params)

    async def fetch_query(
        self, endpoint: str, params: Optional[Mapping[str, Any]] = None
    ) -> Outcome[Any]:
        """Genuine GET with params in the query string."""
        return await self.execute(endpoint, "fetch_query", params)

    async def mutate(
        self, endpoint: str, body: Any = None, shape: ResourceShape = "single"
    ) -> Outcome[Any]:
        """Genuine POST. Batch-only endpoints take shape="batch" and an array body."""
        return await self.execute(endpoint, "mutate", body, shape=shape)

    async def replace(self, endpoint: str, body: Any = None) -> Outcome[Any]:
        """Genuine PUT, used by the create/insert endpoints."""
        return await self.execute(endpoint, "replace", body)

    async def partial_update(self, endpoint: str, patch: Any) -> Outcome[Any]:
        """Genuine PATCH; the payload is wrapped as {"Patch": patch}."""
        return await self.execute(endpoint, "partial_update", patch)

    async def fetch_batch(
        self, endpoint: str, params: Sequence[Any]
    ) -> Outcome[List[Any]]:
        """Logical GET against the "<endpoint>[]" form with an array body."""
        return await self.execute(endpoint, "fetch", list(params), shape="batch")

    async def fetch_one_by_batch(self, endpoint: str, resource_id: Any) -> Outcome[Any]:
        """
        Fetch one record through the batch convention ([{"Id": id}]).

        A successful call that returns no records is reported as a failure:
        "found nothing" is what callers care about, so an empty array cannot
        be told apart from a missing resource here. Failed calls are reported
        the same way.
        """
        response = await self.fetch_batch(endpoint, [{"Id": resource_id}])

        if response.success and isinstance(response.data, list) and response.data:
            return Outcome.ok(response.data[0], cached=response.cached)

        if not response.success:
            logger.debug(
                "Batch lookup %s[%s] failed: %s", endpoint, resource_id, response.error
            )
        return Outcome.fail(NOT_FOUND_ERROR, "not_found", status_code=response.status_code)

    @staticmethod
    def generate_cache_key(prefix: str, params: Optional[Mapping[str, Any]] = None) -> str:
        return generate_cache_key(prefix, params)
