import logging
from typing import Any, Awaitable, Callable, Optional

from workbook.cache import CacheManager
from workbook.service import BaseService
from workbook.transport import Transport
from workbook.types import Outcome, ServiceConfig

logger = logging.getLogger(__name__)


class DomainService(BaseService):
    """
    BaseService plus the external cache.

    Caching is composed here, on top of the engine: lookups go through
    `cache` first and only misses reach the transport.
    """

    def __init__(
        self,
        config: ServiceConfig,
        transport: Optional[Transport] = None,
        cache: Optional[CacheManager] = None,
    ):
        super().__init__(config, transport)
        self.cache = cache if cache is not None else CacheManager()

    def _cached(self, key: str, endpoint: str) -> Optional[Outcome[Any]]:
        value = self.cache.get(key)
        if value is None:
            return None
        logger.debug("CACHED: %s", endpoint)
        return Outcome.ok(value).mark_cached()

    async def _cache_aside(
        self,
        key: str,
        endpoint: str,
        call: Callable[[], Awaitable[Outcome[Any]]],
        missing_error: str,
        ttl: Optional[int] = None,
    ) -> Outcome[Any]:
        """
        Serve `key` from the cache or run `call` and store its data.

        Failures pass through uncached; a success without data becomes
        Failure(missing_error).
        """
        hit = self._cached(key, endpoint)
        if hit:
            return hit

        response = await call()
        if not response.success:
            return response
        if response.data is None:
            return Outcome.fail(missing_error, "not_found")

        self.cache.set(key, response.data, ttl)
        return response
