"""
WorkbookClient - facade over the domain services.

All services share one ServiceConfig, one transport and one CacheManager.
"""

import logging
import os
from typing import Any, Dict, Optional

from workbook.cache import CacheManager, CacheSettings
from workbook.domains import JobService, ResourceService
from workbook.tracing import TraceMetadata, Tracer
from workbook.transport import HttpxTransport, Transport
from workbook.types import ServiceConfig

logger = logging.getLogger(__name__)


class WorkbookClient:
    """
    Entry point for CRM tools.

    Usage:
        client = WorkbookClient.from_environment()
        outcome = await client.resources.find_company_by_name("ACME")
    """

    def __init__(
        self,
        config: ServiceConfig,
        transport: Optional[Transport] = None,
        cache: Optional[CacheManager] = None,
        tracer: Optional[Tracer] = None,
        trace_metadata: Optional[TraceMetadata] = None,
    ):
        self.config = config
        self.cache = cache if cache is not None else CacheManager()
        self.transport = transport or HttpxTransport(
            config.base_url, tracer=tracer, trace_metadata=trace_metadata
        )

        self.resources = ResourceService(config, self.transport, self.cache)
        self.jobs = JobService(config, self.transport, self.cache)

    @classmethod
    def from_environment(cls, environment: Optional[str] = None, **kwargs: Any) -> "WorkbookClient":
        """
        Build a client from WORKBOOK_* / CACHE_* environment variables.

        Raises:
            ConfigurationError: if credentials for the environment are missing
        """
        config = ServiceConfig.from_env(environment)
        kwargs.setdefault("cache", CacheManager(CacheSettings.from_env()))
        env = (environment or os.getenv("ENVIRONMENT", "prod")).upper()
        logger.info("Workbook client initialized for %s environment (%s)", env, config.host)
        return cls(config, **kwargs)

    def cache_stats(self) -> Dict[str, Any]:
        return {
            "stats": self.cache.stats(),
            "keys": self.cache.keys(),
        }

    def clear_all_caches(self) -> None:
        self.cache.flush()

    async def health_check(self) -> Dict[str, Any]:
        """
        Check API connectivity with a cheap ids request. Never raises.

        Returns:
            {"status": "healthy"|"unhealthy", "services": {...}, "error": ..., ...}
        """
        check = await self.resources.get_all_resource_ids(include_inactive=False)
        stats = self.cache.stats()
        return {
            "status": "healthy" if check.success else "unhealthy",
            "services": {"resources": check.success},
            "error": check.error,
            "cache": {"keys": stats["keys"], "stats": stats},
            "config": {"host": self.config.host, "timeout_ms": self.config.timeout_ms},
        }
