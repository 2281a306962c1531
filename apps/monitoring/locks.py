"""
Single-flight lock backed by the Django cache.

With a shared cache (Redis) only one worker across all instances holds a
given key at a time; ``cache.add`` is atomic there. The lock expires after
``timeout`` seconds so a crashed holder cannot block later runs forever.
"""

import logging
import uuid
from contextlib import contextmanager

from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)

MONITORING_PASS_LOCK = "monitoring:pass-lock"


@contextmanager
def single_flight(key: str, timeout: int | None = None):
    """
    Hold ``key`` for the duration of the block.

    Yields True when the lock was acquired, False when another holder has it.
    The lock is only released by the holder that acquired it.
    """
    if timeout is None:
        timeout = getattr(settings, "MONITORING_LOCK_TIMEOUT", 300)

    token = uuid.uuid4().hex
    acquired = cache.add(key, token, timeout)
    if not acquired:
        logger.info(f"Lock {key} is held elsewhere")

    try:
        yield acquired
    finally:
        if acquired and cache.get(key) == token:
            cache.delete(key)
