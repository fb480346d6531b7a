"""
Short-lived Redis cache for per-salon read models.

Two read models go through here: the plan usage summary and the staff
directory listing. Neither feeds a write decision; quota and slot checks
always read the database under a lock.

Keys look like ``{prefix}:{tenant_id}:{module}:v{generation}:{key}``.
Invalidating a module bumps its generation counter, so entries written
before the bump (including a slow loader finishing after it) are never
read again and just expire. When Redis is down every call loads from the
database.
"""

import json
import logging
from typing import Any, Callable, Dict, Optional

import redis
from flask import Flask
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class SalonCache:
    """Cache-aside store keyed by salon and module."""

    def __init__(self, client, prefix: str = 'salonbook', default_ttl: int = 60,
                 module_ttls: Optional[Dict[str, int]] = None):
        self.client = client
        self.prefix = prefix
        self.default_ttl = default_ttl
        self.module_ttls = module_ttls or {}

    @classmethod
    def from_app(cls, app: Flask) -> Optional['SalonCache']:
        """Connect using the app config, or return None when caching is off or Redis is unreachable."""
        if not app.config.get('CACHE_ENABLED', True):
            logger.info("[CACHE] Cache is DISABLED via config")
            return None

        redis_url = app.config.get('REDIS_URL', 'redis://redis:6379/0')
        try:
            client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=3,
                socket_timeout=3,
                retry_on_timeout=True,
                health_check_interval=30
            )
            client.ping()
        except RedisError as e:
            logger.warning(f"[CACHE] Redis connection failed: {e}. Cache DISABLED.")
            return None

        logger.info(f"[CACHE] Redis connected: {redis_url}")
        default_ttl = app.config.get('CACHE_DEFAULT_TTL', 60)
        return cls(
            client,
            prefix=app.config.get('CACHE_KEY_PREFIX', 'salonbook'),
            default_ttl=default_ttl,
            module_ttls={
                'usage': app.config.get('CACHE_USAGE_TTL', default_ttl),
                'staff': app.config.get('CACHE_STAFF_TTL', default_ttl),
            }
        )

    def _generation_key(self, tenant_id: int, module: str) -> str:
        return f"{self.prefix}:{tenant_id}:{module}:gen"

    def _entry_key(self, tenant_id: int, module: str, key: str) -> str:
        generation = self.client.get(self._generation_key(tenant_id, module)) or '0'
        return f"{self.prefix}:{tenant_id}:{module}:v{generation}:{key}"

    def memoize(self, tenant_id: int, module: str, key: str, loader_fn: Callable[[], Any]) -> Any:
        """
        Return the cached value, or load it and cache it.

        Values must be JSON-ready payloads; Decimals and dates come back as
        strings, which is how the API renders them anyway.
        """
        try:
            entry_key = self._entry_key(tenant_id, module, key)
            hit = self.client.get(entry_key)
        except RedisError as e:
            logger.warning(f"[CACHE] Get error: {e}")
            return loader_fn()

        if hit is not None:
            return json.loads(hit)

        value = loader_fn()
        ttl = self.module_ttls.get(module, self.default_ttl)
        try:
            self.client.setex(entry_key, ttl, json.dumps(value, default=str))
        except RedisError as e:
            logger.warning(f"[CACHE] Set error: {e}")
        return value

    def invalidate(self, tenant_id: int, module: str) -> None:
        try:
            generation = self.client.incr(self._generation_key(tenant_id, module))
        except RedisError as e:
            logger.warning(f"[CACHE] Invalidate error: {e}")
            return
        logger.debug(f"[CACHE] INVALIDATE tenant {tenant_id} {module} -> v{generation}")


_cache: Optional[SalonCache] = None


def init_cache(app: Flask) -> None:
    global _cache
    _cache = SalonCache.from_app(app)
    app.extensions['cache'] = _cache


def cached(tenant_id: int, module: str, key: str, loader_fn: Callable[[], Any]) -> Any:
    """Memoize through the shared cache, or just load when there is none."""
    if _cache is None:
        return loader_fn()
    return _cache.memoize(tenant_id, module, key, loader_fn)


def invalidate(tenant_id: int, *modules: str) -> None:
    """Drop cached entries for the given modules of a salon."""
    if _cache is None:
        return
    for module in modules:
        _cache.invalidate(tenant_id, module)
