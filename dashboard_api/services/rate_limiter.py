from datetime import timedelta
from django.conf import settings
from django.core.cache import cache
import logging

WINDOW = timedelta(minutes=1)

logger = logging.getLogger('weather')


class RateLimitExceeded(Exception):
    pass


def get_rate_limit() -> int:
    return getattr(settings, "WEATHER_RATE_LIMIT", 30)


def check_rate_limit(ip: str):
    """
    Cache-backed rate limiting: WEATHER_RATE_LIMIT requests per minute per IP.
    With Redis configured the counter is shared between workers.
    """
    if not ip:
        logger.warning(
            "Rate limit check failed - missing IP address",
            extra={
                'event': 'rate_limit_missing_ip',
                'error': 'IP address missing',
            }
        )
        raise RateLimitExceeded("IP address missing")

    limit = get_rate_limit()
    cache_key = f"rate_limit:{ip}"
    current_count = cache.get(cache_key, 0)

    if current_count >= limit:
        logger.warning(
            "Rate limit exceeded",
            extra={
                'ip': ip,
                'event': 'rate_limit_exceeded',
                'current_count': current_count,
                'limit': limit,
            }
        )
        raise RateLimitExceeded(f"Rate limit exceeded: {limit} req/min")

    if current_count == 0:
        cache.set(cache_key, 1, timeout=int(WINDOW.total_seconds()))
    else:
        try:
            cache.incr(cache_key)
        except ValueError:
            # key expired between get and incr
            cache.set(cache_key, 1, timeout=int(WINDOW.total_seconds()))

    logger.debug(
        "Rate limit check passed",
        extra={
            'ip': ip,
            'event': 'rate_limit_check',
            'current_count': current_count + 1,
            'limit': limit,
        }
    )
