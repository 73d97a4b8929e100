"""
Service request engine for the Workbook CRM JSON API.

This package turns the API's REST dialect (GET-as-POST with an override
header, PATCH envelopes, "[]" batch endpoints) into four logical verbs that
always return an Outcome instead of raising.

Example usage:
    from workbook import BaseService, ServiceConfig

    service = BaseService(ServiceConfig(host="acme.workbook.net", api_key="..."))
    outcome = await service.fetch_one_by_batch("ResourceRequest", 42)
    if outcome.success:
        print(outcome.data)
    else:
        print(outcome.error)
"""

from .cache import CacheManager, CacheSettings
from .cache_keys import generate_cache_key
from .client import WorkbookClient
from .errors import ConfigurationError, WorkbookError
from .service import VERB_TABLE, BaseService, VerbRule, build_wire_request
from .transport import HttpxTransport, StubTransport, Transport
from .types import Outcome, ServiceConfig, WireRequest

__all__ = [
    "BaseService",
    "CacheManager",
    "CacheSettings",
    "ConfigurationError",
    "HttpxTransport",
    "Outcome",
    "ServiceConfig",
    "StubTransport",
    "Transport",
    "VERB_TABLE",
    "VerbRule",
    "WireRequest",
    "WorkbookClient",
    "WorkbookError",
    "build_wire_request",
    "generate_cache_key",
]
