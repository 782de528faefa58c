"""
Caches en proceso.
"""
from app.infrastructure.cache.ttl_cache import InMemoryTTLCache

__all__ = ["InMemoryTTLCache"]
