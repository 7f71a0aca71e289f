"""
Pytest fixtures for subtitle render backend tests.

CI/CD Note:
Tests that run a real FFmpeg binary are marked with @pytest.mark.requires_ffmpeg
Run `pytest -m "not requires_ffmpeg"` to skip these tests in CI.
"""

import shutil
import subprocess
import tempfile
from pathlib import Path

import pytest

from subtitle_render.config import Settings
from subtitle_render.schemas.render import RenderRequest


def pytest_configure(config):
    """Register custom markers for CI/CD test filtering."""
    config.addinivalue_line(
        "markers",
        "requires_ffmpeg: mark test as requiring an ffmpeg binary with drawtext (skipped when absent)"
    )


def _ffmpeg_available() -> bool:
    if shutil.which("ffmpeg") is None:
        return False
    result = subprocess.run(
        ["ffmpeg", "-hide_banner", "-filters"],
        capture_output=True,
        text=True,
    )
    return result.returncode == 0 and " drawtext " in result.stdout


# Skip decorator for tests that run FFmpeg
requires_ffmpeg = pytest.mark.skipif(
    not _ffmpeg_available(),
    reason="ffmpeg with drawtext not available on PATH"
)


@pytest.fixture
def temp_output_dir():
    """Temporary directory for test outputs."""
    with tempfile.TemporaryDirectory(prefix="subtitle_render_test_") as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def settings(temp_output_dir) -> Settings:
    """Settings writing into the temporary output directory."""
    return Settings(
        output_dir=temp_output_dir / "output",
        staging_dir=temp_output_dir / "staging",
        render_max_concurrent_jobs=2,
        render_timeout_seconds=30.0,
    )


@pytest.fixture
def sample_transcript() -> dict:
    """Three phrase chunks ending at 12.5s."""
    return {
        "text": "Hello there. This is a test. Goodbye!",
        "chunks": [
            {"text": "Hello there.", "timestamp": [0.0, 2.5]},
            {"text": "This is a test.", "timestamp": [3.0, 7.0]},
            {"text": "Goodbye!", "timestamp": [10.0, 12.5]},
        ],
    }


@pytest.fixture
def sample_style() -> dict:
    """Subtitle style as sent by the editor."""
    return {
        "fontFamily": "Inter, sans-serif",
        "fontSize": 24,
        "color": "#FFFFFF",
        "backgroundColor": "rgba(0,0,0,0.5)",
        "borderWidth": 2,
        "borderColor": "#000000",
    }


@pytest.fixture
def render_body(sample_transcript, sample_style) -> dict:
    """Minimal valid /api/render-video body (no source video)."""
    return {
        "videoSrc": "",
        "transcriptData": sample_transcript,
        "subtitleStyle": sample_style,
        "mode": "phrase",
        "ratio": "16:9",
        "quality": "medium",
    }


@pytest.fixture
def render_request(render_body) -> RenderRequest:
    return RenderRequest.model_validate(render_body)
