"""
Per-(instructor, date) mutex for the booking commit path.

The lock is a Redis key set with NX and a TTL, so it is shared by every
worker process. When Redis cannot be reached the lock degrades to
"acquired"; the instructor row lock taken inside the commit transaction
still serializes writers on databases that support SELECT ... FOR UPDATE.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date
import logging
import threading
import time
from typing import Iterator, Optional

from redis import Redis

from ..monitoring.prometheus_metrics import prometheus_metrics
from .config import settings

logger = logging.getLogger(__name__)

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()


def _lock_key(instructor_id: str, lesson_date: date) -> str:
    return f"booking:{instructor_id}:{lesson_date.isoformat()}:mutex"


def _namespaced_key(key: str) -> str:
    return f"{settings.lock_namespace}:lock:{key}"


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS
    if _SYNC_REDIS is not None:
        return _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is not None:
            return _SYNC_REDIS
        try:
            client = Redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=1,
            )
            client.ping()
        except Exception as exc:
            logger.warning("booking_lock_sync_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


def acquire_booking_lock_sync(
    instructor_id: str, lesson_date: date, ttl_s: Optional[int] = None
) -> bool:
    key = _lock_key(instructor_id, lesson_date)
    client = _get_sync_redis()
    if client is None:
        prometheus_metrics.record_booking_lock("acquire", "redis_unavailable")
        logger.warning("booking_lock_sync_redis_unavailable", extra={"lock_key": key})
        return True
    try:
        acquired = bool(
            client.set(
                _namespaced_key(key),
                str(time.time()),
                nx=True,
                ex=ttl_s or settings.booking_lock_ttl_seconds,
            )
        )
    except Exception as exc:
        prometheus_metrics.record_booking_lock("acquire", "error")
        logger.warning(
            "booking_lock_sync_failed",
            extra={"lock_key": key, "error": str(exc), "error_type": type(exc).__name__},
        )
        return True

    if acquired:
        prometheus_metrics.record_booking_lock("acquire", "success")
    else:
        prometheus_metrics.record_booking_lock("acquire", "blocked")
        logger.warning("booking_lock_sync_blocked", extra={"lock_key": key})
    return acquired


def release_booking_lock_sync(instructor_id: str, lesson_date: date) -> None:
    key = _lock_key(instructor_id, lesson_date)
    client = _get_sync_redis()
    if client is None:
        prometheus_metrics.record_booking_lock("release", "redis_unavailable")
        return
    try:
        deleted = client.delete(_namespaced_key(key))
        if deleted:
            prometheus_metrics.record_booking_lock("release", "success")
        else:
            prometheus_metrics.record_booking_lock("release", "not_found")
    except Exception as exc:
        prometheus_metrics.record_booking_lock("release", "error")
        logger.warning(
            "booking_lock_sync_release_failed",
            extra={"lock_key": key, "error": str(exc), "error_type": type(exc).__name__},
        )


@contextmanager
def booking_lock_sync(
    instructor_id: str, lesson_date: date, ttl_s: Optional[int] = None
) -> Iterator[bool]:
    acquired = acquire_booking_lock_sync(instructor_id, lesson_date, ttl_s=ttl_s)
    try:
        yield acquired
    finally:
        if acquired:
            release_booking_lock_sync(instructor_id, lesson_date)
