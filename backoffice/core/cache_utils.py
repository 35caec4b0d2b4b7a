"""
Caching utilities for expensive report queries
Uses Redis (django-redis) when configured, the dummy cache otherwise
"""
import hashlib
import logging
from functools import wraps

from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
ANALYTICS_CACHE_TTL = 600  # 10 minutes
DASHBOARD_CACHE_TTL = 300  # 5 minutes

ANALYTICS_PREFIX = 'analytics'
DASHBOARD_PREFIX = 'dashboard'


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    # Hash it to keep key length reasonable
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def cached_query(cache_ttl=60, key_prefix="query"):
    """
    Decorator to cache expensive queries

    Usage:
        @cached_query(cache_ttl=300, key_prefix="dashboard")
        def build_dashboard(today):
            return data
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            cache_key = make_cache_key(key_prefix, *args, **kwargs)

            cached_data = cache.get(cache_key)
            if cached_data is not None:
                logger.debug(f"Cache HIT for {key_prefix}: {cache_key}")
                return cached_data

            logger.debug(f"Cache MISS for {key_prefix}: {cache_key}")
            result = func(*args, **kwargs)
            cache.set(cache_key, result, cache_ttl)
            return result
        return wrapper
    return decorator


def uses_redis():
    backend = settings.CACHES.get('default', {}).get('BACKEND', '')
    return backend.startswith('django_redis')


def invalidate_cache_pattern(pattern):
    """Drop every cached key that starts with ``pattern`` (Redis only; the dummy cache keeps nothing)"""
    if not uses_redis():
        return
    try:
        deleted = cache.delete_pattern(f"*{pattern}:*")
        if deleted:
            logger.info(f"Invalidated {deleted} cache keys for {pattern}")
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")


def invalidate_reports_cache():
    """Invalidate analytics and dashboard results"""
    invalidate_cache_pattern(ANALYTICS_PREFIX)
    invalidate_cache_pattern(DASHBOARD_PREFIX)
