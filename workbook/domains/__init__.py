"""Domain services built on the service request engine."""

from .base import DomainService
from .jobs import JobService
from .resources import ResourceService

__all__ = ["DomainService", "JobService", "ResourceService"]
