"""
Order submission throttling.

Counters live in the configured Django cache so every host instance shares
them; ``add`` + ``incr`` keeps the check atomic on backends that support it
(Redis, Memcached, the local-memory cache).
"""

import logging

from django.core.cache import cache

from .conf import get_setting
from .exceptions import RateLimited

logger = logging.getLogger(__name__)


def _key(tenant_slug, table_code):
    return f"restaurant_orders:rate:{tenant_slug}:{table_code}"


def check_order_rate(tenant_slug, table_code):
    """Count one submission for the table; raise RateLimited past the limit."""
    config = get_setting('order_rate_limit')
    if not config:
        return

    key = _key(tenant_slug, table_code)
    cache.add(key, 0, timeout=config['window_seconds'])
    try:
        count = cache.incr(key)
    except ValueError:
        # Expired between add() and incr().
        cache.add(key, 1, timeout=config['window_seconds'])
        count = 1

    if count > config['limit']:
        logger.warning("Order rate limit hit for %s/%s (%s)", tenant_slug, table_code, count)
        raise RateLimited("Too many orders. Please wait a moment before ordering again.")
