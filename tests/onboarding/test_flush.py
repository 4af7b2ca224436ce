"""
Tests for the generated-asset flush: once-per-session guard, retry with
exponential backoff, and the persisted images_saved marker.
"""

import asyncio
from unittest.mock import AsyncMock, call

from onboarding import OnboardingFlowController, OnboardingSession, PersistResult
from onboarding.errors import BackendError
from onboarding.flush import FlushStatus, backoff_delay, flush_generated_assets


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio needed)."""
    return asyncio.run(coro)


def _session_with_images(images):
    return OnboardingSession(data={"generated_images": images, "logo": "https://cdn.example.com/logo.png"})


class TestFlushGuard:

    def test_second_flush_is_noop(self, store, sample_generated_images):
        backend = AsyncMock()
        backend.persist_generated_images.return_value = PersistResult(count=3)
        ctrl = OnboardingFlowController(store=store, backend=backend)
        ctrl.merge_data({"generated_images": sample_generated_images})

        first = _run(ctrl.flush_generated_assets())
        second = _run(ctrl.flush_generated_assets())

        assert first.status == FlushStatus.SAVED
        assert first.count == 3
        assert second.status == FlushStatus.ALREADY_SAVED
        assert backend.persist_generated_images.await_count == 1

    def test_nothing_to_flush(self):
        backend = AsyncMock()
        session = OnboardingSession()

        result = _run(flush_generated_assets(session, backend))

        assert result.status == FlushStatus.NOTHING_TO_FLUSH
        backend.persist_generated_images.assert_not_awaited()
        assert session.images_saved is False

    def test_no_backend(self, sample_generated_images):
        session = _session_with_images(sample_generated_images)

        result = _run(flush_generated_assets(session, None))

        assert result.status == FlushStatus.NO_BACKEND
        assert not result.ok

    def test_backend_already_persisted(self, sample_generated_images):
        backend = AsyncMock()
        backend.persist_generated_images.return_value = PersistResult(count=3, already_persisted=True)
        session = _session_with_images(sample_generated_images)

        result = _run(flush_generated_assets(session, backend))

        assert result.status == FlushStatus.SAVED
        assert result.already_persisted is True
        assert session.images_saved is True

    def test_marker_survives_reload(self, store, sample_generated_images):
        backend = AsyncMock()
        backend.persist_generated_images.return_value = PersistResult(count=3)
        first = OnboardingFlowController(store=store, backend=backend)
        first.initialize()
        first.merge_data({"generated_images": sample_generated_images})
        _run(first.flush_generated_assets())

        reloaded = OnboardingFlowController(store=store, backend=backend)
        reloaded.initialize()
        result = _run(reloaded.flush_generated_assets())

        assert reloaded.session.images_saved is True
        assert "images_saved" not in reloaded.data
        assert result.status == FlushStatus.ALREADY_SAVED
        assert backend.persist_generated_images.await_count == 1


class TestFlushRetry:

    def test_backoff_is_exponential(self):
        assert backoff_delay(1, 1.0) == 1.0
        assert backoff_delay(2, 1.0) == 2.0
        assert backoff_delay(3, 0.5) == 2.0

    def test_retries_then_succeeds(self, sample_generated_images):
        backend = AsyncMock()
        backend.persist_generated_images.side_effect = [
            BackendError("HTTP 502: bad gateway", status_code=502),
            BackendError("HTTP 502: bad gateway", status_code=502),
            PersistResult(count=3),
        ]
        sleep = AsyncMock()
        session = _session_with_images(sample_generated_images)

        result = _run(flush_generated_assets(session, backend, sleep=sleep))

        assert result.status == FlushStatus.SAVED
        assert result.attempts == 3
        assert session.images_saved is True
        assert sleep.await_args_list == [call(1.0), call(2.0)]

    def test_gives_up_after_ceiling(self, sample_generated_images):
        backend = AsyncMock()
        backend.persist_generated_images.side_effect = BackendError("HTTP 500: boom", status_code=500)
        sleep = AsyncMock()
        session = _session_with_images(sample_generated_images)

        result = _run(flush_generated_assets(session, backend, max_attempts=4, sleep=sleep))

        assert result.status == FlushStatus.FAILED
        assert result.attempts == 4
        assert "boom" in result.error
        assert backend.persist_generated_images.await_count == 4
        assert sleep.await_count == 3
        assert session.images_saved is False

    def test_client_error_not_retried(self, sample_generated_images):
        backend = AsyncMock()
        backend.persist_generated_images.side_effect = BackendError("HTTP 401: unauthorized", status_code=401)
        sleep = AsyncMock()
        session = _session_with_images(sample_generated_images)

        result = _run(flush_generated_assets(session, backend, sleep=sleep))

        assert result.status == FlushStatus.FAILED
        assert result.attempts == 1
        assert "unauthorized" in result.error
        assert backend.persist_generated_images.await_count == 1
        sleep.assert_not_awaited()
        assert session.images_saved is False

    def test_error_without_status_is_retried(self, sample_generated_images):
        backend = AsyncMock()
        backend.persist_generated_images.side_effect = [
            BackendError("connection reset"),
            PersistResult(count=3),
        ]
        session = _session_with_images(sample_generated_images)

        result = _run(flush_generated_assets(session, backend, sleep=AsyncMock()))

        assert result.status == FlushStatus.SAVED
        assert result.attempts == 2

    def test_failed_flush_can_be_retried_later(self, sample_generated_images):
        backend = AsyncMock()
        backend.persist_generated_images.side_effect = [
            RuntimeError("offline"),
            PersistResult(count=3),
        ]
        ctrl = OnboardingFlowController(backend=backend, flush_max_attempts=1)
        ctrl.merge_data({"generated_images": sample_generated_images})

        first = _run(ctrl.flush_generated_assets())
        second = _run(ctrl.flush_generated_assets())

        assert first.status == FlushStatus.FAILED
        assert second.status == FlushStatus.SAVED
        assert ctrl.session.images_saved is True
