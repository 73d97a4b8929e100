"""
Cache-key derivation.

Keys identify an (endpoint, params) pair for an external cache. Top-level
keys are sorted so insertion order does not matter. Nested objects are NOT
normalized: {"a": {"x": 1, "y": 2}} and {"a": {"y": 2, "x": 1}} produce
different keys, so callers that nest parameter objects should build them in
a fixed order.
"""

import base64
import json
from typing import Any, Mapping, Optional

KEY_SEPARATOR = ":"


def to_json(value: Any) -> str:
    """Compact JSON, matching what the remote API and existing keys expect."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def generate_cache_key(prefix: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """
    Build a deterministic cache key.

    Args:
        prefix: Namespace for the key, e.g. "resources:search"
        params: Parameter object; None yields the prefix alone

    Returns:
        "<prefix>" or "<prefix>:<base64 of sorted-key JSON>"
    """
    if params is None:
        return prefix

    ordered = {key: params[key] for key in sorted(params)}
    encoded = base64.b64encode(to_json(ordered).encode("utf-8")).decode("ascii")
    return f"{prefix}{KEY_SEPARATOR}{encoded}"
