"""
Short-lived Redis mutex around a single slot reservation.

The lock only sheds contention before the insert; the partial unique index on
slot_bookings is what makes reservation atomic. When Redis is unreachable the
lock degrades open.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
import threading
import time
from typing import Iterator, Optional

from redis import Redis
from redis.exceptions import RedisError

from ..monitoring.prometheus_metrics import prometheus_metrics
from .config import settings

logger = logging.getLogger(__name__)

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()


def _lock_key(window_id: str, ordinal: int) -> str:
    return f"slot:{window_id}:{ordinal}:mutex"


def _namespaced_key(key: str) -> str:
    return f"{settings.slot_lock_namespace}:lock:{key}"


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
        except RedisError as exc:
            logger.warning("slot_lock_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


def acquire_slot_lock(window_id: str, ordinal: int, ttl_s: Optional[int] = None) -> bool:
    """Try to take the slot mutex; returns True when the caller may proceed."""
    ttl = ttl_s if ttl_s is not None else settings.slot_lock_ttl_seconds
    client = _get_sync_redis()
    if client is None:
        prometheus_metrics.record_slot_lock("acquire", "redis_unavailable")
        logger.warning(
            "slot_lock_redis_unavailable",
            extra={"window_id": window_id, "ordinal": ordinal},
        )
        return True
    try:
        acquired = bool(
            client.set(
                _namespaced_key(_lock_key(window_id, ordinal)),
                str(time.time()),
                nx=True,
                ex=ttl,
            )
        )
    except RedisError as exc:
        prometheus_metrics.record_slot_lock("acquire", "error")
        logger.warning(
            "slot_lock_acquire_failed",
            extra={
                "window_id": window_id,
                "ordinal": ordinal,
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )
        return True
    prometheus_metrics.record_slot_lock("acquire", "success" if acquired else "blocked")
    return acquired


def release_slot_lock(window_id: str, ordinal: int) -> None:
    client = _get_sync_redis()
    if client is None:
        prometheus_metrics.record_slot_lock("release", "redis_unavailable")
        return
    try:
        deleted = client.delete(_namespaced_key(_lock_key(window_id, ordinal)))
    except RedisError as exc:
        prometheus_metrics.record_slot_lock("release", "error")
        logger.warning(
            "slot_lock_release_failed",
            extra={
                "window_id": window_id,
                "ordinal": ordinal,
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )
        return
    prometheus_metrics.record_slot_lock("release", "success" if deleted else "not_found")


@contextmanager
def slot_lock(window_id: str, ordinal: int, ttl_s: Optional[int] = None) -> Iterator[bool]:
    acquired = acquire_slot_lock(window_id, ordinal, ttl_s=ttl_s)
    try:
        yield acquired
    finally:
        if acquired:
            release_slot_lock(window_id, ordinal)
