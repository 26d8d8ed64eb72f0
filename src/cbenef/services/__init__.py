"""
Services package - Orchestration, caching and search.
"""
from .integration import IntegrationService
from .cache import CacheService
from .search import SearchService
from .sync import SyncService

__all__ = [
    "IntegrationService",
    "CacheService",
    "SearchService",
    "SyncService",
]
