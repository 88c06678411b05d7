"""
Unit tests for slot_lock.py.

Coverage:
1) Key generation
2) Lock acquisition/release
3) TTL propagation
4) Graceful degradation when Redis is unavailable
5) Context manager behavior
"""

from unittest.mock import ANY, MagicMock, patch

from redis.exceptions import ConnectionError as RedisConnectionError

from tutor_scheduling.core.slot_lock import (
    _lock_key,
    _namespaced_key,
    acquire_slot_lock,
    release_slot_lock,
    slot_lock,
)


class TestKeyGeneration:
    def test_lock_key_format(self):
        assert _lock_key("ABC123", 0) == "slot:ABC123:0:mutex"
        assert _lock_key("01KDGCP1R4N6AQKXNWV4PFY2HB", 7) == "slot:01KDGCP1R4N6AQKXNWV4PFY2HB:7:mutex"

    def test_namespaced_key_format(self):
        namespaced = _namespaced_key("slot:ABC123:0:mutex")
        assert namespaced == "tutor_scheduling:lock:slot:ABC123:0:mutex"


class TestLockAcquisition:
    def test_acquire_success(self):
        mock_redis = MagicMock()
        mock_redis.set.return_value = True
        with patch("tutor_scheduling.core.slot_lock._get_sync_redis", return_value=mock_redis):
            result = acquire_slot_lock("ABC123", 1)
        assert result is True
        mock_redis.set.assert_called_once_with(
            "tutor_scheduling:lock:slot:ABC123:1:mutex", ANY, nx=True, ex=30
        )

    def test_acquire_already_held(self):
        mock_redis = MagicMock()
        mock_redis.set.return_value = None
        with patch("tutor_scheduling.core.slot_lock._get_sync_redis", return_value=mock_redis):
            result = acquire_slot_lock("ABC123", 1)
        assert result is False

    def test_acquire_passes_ttl(self):
        mock_redis = MagicMock()
        mock_redis.set.return_value = True
        with patch("tutor_scheduling.core.slot_lock._get_sync_redis", return_value=mock_redis):
            acquire_slot_lock("ABC123", 1, ttl_s=5)
        mock_redis.set.assert_called_once_with(ANY, ANY, nx=True, ex=5)

    def test_release_deletes_key(self):
        mock_redis = MagicMock()
        mock_redis.delete.return_value = 1
        with patch("tutor_scheduling.core.slot_lock._get_sync_redis", return_value=mock_redis):
            release_slot_lock("ABC123", 1)
        mock_redis.delete.assert_called_once_with("tutor_scheduling:lock:slot:ABC123:1:mutex")


class TestGracefulDegradation:
    def test_acquire_without_redis_proceeds(self):
        with patch("tutor_scheduling.core.slot_lock._get_sync_redis", return_value=None):
            assert acquire_slot_lock("ABC123", 0) is True

    def test_acquire_on_redis_error_proceeds(self):
        mock_redis = MagicMock()
        mock_redis.set.side_effect = RedisConnectionError("down")
        with patch("tutor_scheduling.core.slot_lock._get_sync_redis", return_value=mock_redis):
            assert acquire_slot_lock("ABC123", 0) is True

    def test_release_without_redis_is_noop(self):
        with patch("tutor_scheduling.core.slot_lock._get_sync_redis", return_value=None):
            release_slot_lock("ABC123", 0)

    def test_release_on_redis_error_does_not_raise(self):
        mock_redis = MagicMock()
        mock_redis.delete.side_effect = RedisConnectionError("down")
        with patch("tutor_scheduling.core.slot_lock._get_sync_redis", return_value=mock_redis):
            release_slot_lock("ABC123", 0)


class TestContextManager:
    def test_releases_after_acquire(self):
        with patch(
            "tutor_scheduling.core.slot_lock.acquire_slot_lock", return_value=True
        ) as mock_acquire, patch(
            "tutor_scheduling.core.slot_lock.release_slot_lock"
        ) as mock_release:
            with slot_lock("ABC123", 2, ttl_s=10) as acquired:
                assert acquired is True
        mock_acquire.assert_called_once_with("ABC123", 2, ttl_s=10)
        mock_release.assert_called_once_with("ABC123", 2)

    def test_does_not_release_when_blocked(self):
        with patch(
            "tutor_scheduling.core.slot_lock.acquire_slot_lock", return_value=False
        ), patch("tutor_scheduling.core.slot_lock.release_slot_lock") as mock_release:
            with slot_lock("ABC123", 2) as acquired:
                assert acquired is False
        mock_release.assert_not_called()

    def test_releases_on_exception(self):
        with patch(
            "tutor_scheduling.core.slot_lock.acquire_slot_lock", return_value=True
        ), patch("tutor_scheduling.core.slot_lock.release_slot_lock") as mock_release:
            try:
                with slot_lock("ABC123", 2):
                    raise RuntimeError("boom")
            except RuntimeError:
                pass
        mock_release.assert_called_once_with("ABC123", 2)
