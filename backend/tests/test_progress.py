"""Tests for render progress tracking."""

import logging

from subtitle_render.render.progress import ProgressSink, RenderProgress, RenderStatus


class TestRenderStatus:
    """Tests for RenderStatus enum."""

    def test_render_statuses_exist(self):
        """Test that all render statuses exist."""
        assert RenderStatus.PENDING.value == "pending"
        assert RenderStatus.PROCESSING.value == "processing"
        assert RenderStatus.COMPLETED.value == "completed"
        assert RenderStatus.FAILED.value == "failed"
        assert RenderStatus.CANCELLED.value == "cancelled"


class TestRenderProgress:
    """Tests for RenderProgress dataclass."""

    def test_progress_to_dict(self):
        """Test progress serialization."""
        progress = RenderProgress(
            job_id="job123",
            status=RenderStatus.PROCESSING,
            percent=75.0,
            current_step="Rendering",
            elapsed_ms=10000,
        )
        assert progress.to_dict() == {
            "job_id": "job123",
            "status": "processing",
            "percent": 75.0,
            "current_step": "Rendering",
            "elapsed_ms": 10000,
            "error_message": None,
        }


class TestProgressSink:
    """Tests for ProgressSink."""

    def test_fractions_become_percent(self):
        sink = ProgressSink("job1")
        sink(0.256)
        assert sink.progress.percent == 25.6

    def test_progress_is_monotonic(self):
        """Late or repeated updates never move progress backwards."""
        sink = ProgressSink("job1")
        sink(0.6)
        sink(0.4)
        assert sink.progress.percent == 60.0

    def test_values_are_clamped(self):
        sink = ProgressSink("job1")
        sink(1.7)
        assert sink.progress.percent == 100.0

    def test_listener_notified(self):
        seen = []
        sink = ProgressSink("job1", listener=lambda p: seen.append((p.status, p.percent)))

        sink.set_step("Rendering")
        sink(0.5)
        sink.complete()

        assert seen == [
            (RenderStatus.PROCESSING, 0.0),
            (RenderStatus.PROCESSING, 50.0),
            (RenderStatus.COMPLETED, 100.0),
        ]

    def test_listener_errors_are_logged(self, caplog):
        """A broken listener never interrupts the render."""
        def listener(progress):
            raise RuntimeError("listener broke")

        sink = ProgressSink("job1", listener=listener)
        with caplog.at_level(logging.WARNING):
            sink(0.5)

        assert sink.progress.percent == 50.0
        assert "listener broke" in caplog.text

    def test_fail_and_cancel(self):
        sink = ProgressSink("job1")
        sink.fail("FFmpeg exited with code 1")
        assert sink.progress.status == RenderStatus.FAILED
        assert sink.progress.error_message == "FFmpeg exited with code 1"

        cancelled = ProgressSink("job2")
        cancelled.fail("Render cancelled", cancelled=True)
        assert cancelled.progress.status == RenderStatus.CANCELLED
