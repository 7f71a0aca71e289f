"""Tests for staging inline video payloads and render file cleanup."""

import base64
import logging
from pathlib import Path

import pytest

from subtitle_render.exceptions import MaterializationError
from subtitle_render.render.media import (
    StagedMedia,
    cleanup_render_files,
    is_inline_video,
    materialize_video_source,
)

PAYLOAD = b"\x00\x00\x00\x18ftypmp42fake-video-bytes"


def _data_url(subtype: str = "mp4", payload: bytes = PAYLOAD) -> str:
    return f"data:video/{subtype};base64,{base64.b64encode(payload).decode()}"


class TestMaterializeVideoSource:
    """Tests for materialize_video_source."""

    def test_inline_payload_written_to_staging(self, temp_output_dir):
        """A data URL is decoded into a temporary file."""
        staging = temp_output_dir / "staging"
        staged = materialize_video_source(_data_url(), staging)

        path = Path(staged.path)
        assert staged.is_temporary is True
        assert path.parent == staging
        assert path.name.startswith("temp_video_")
        assert path.suffix == ".mp4"
        assert path.read_bytes() == PAYLOAD

    def test_extension_follows_subtype(self, temp_output_dir):
        """The MIME subtype picks the file extension."""
        staged = materialize_video_source(_data_url("quicktime"), temp_output_dir)
        assert staged.path.endswith(".mov")

    def test_codec_parameters_accepted(self, temp_output_dir):
        """Extra data URL parameters before base64 are ignored."""
        url = f"data:video/webm;codecs=vp9;base64,{base64.b64encode(PAYLOAD).decode()}"
        staged = materialize_video_source(url, temp_output_dir)
        assert staged.path.endswith(".webm")

    def test_unique_names(self, temp_output_dir):
        """Two stagings never share a file."""
        first = materialize_video_source(_data_url(), temp_output_dir)
        second = materialize_video_source(_data_url(), temp_output_dir)
        assert first.path != second.path

    def test_reference_passes_through(self, temp_output_dir):
        """A plain path is used as-is and never marked temporary."""
        staged = materialize_video_source("/videos/source.mp4", temp_output_dir)
        assert staged == StagedMedia(path="/videos/source.mp4", is_temporary=False)
        assert list(temp_output_dir.iterdir()) == []

    def test_empty_source_passes_through(self, temp_output_dir):
        """An empty source means no background video."""
        staged = materialize_video_source("", temp_output_dir)
        assert staged.path == ""
        assert staged.is_temporary is False

    def test_invalid_base64_raises(self, temp_output_dir):
        """Corrupt payloads fail without leaving files behind."""
        with pytest.raises(MaterializationError):
            materialize_video_source("data:video/mp4;base64,not*base64!", temp_output_dir)
        assert list(temp_output_dir.iterdir()) == []

    def test_missing_base64_marker_raises(self, temp_output_dir):
        """Non-base64 data URLs are rejected."""
        with pytest.raises(MaterializationError):
            materialize_video_source("data:video/mp4,rawbytes", temp_output_dir)

    def test_is_inline_video(self):
        assert is_inline_video(_data_url())
        assert not is_inline_video("/tmp/video.mp4")
        assert not is_inline_video("")
        assert not is_inline_video(None)


class TestCleanupRenderFiles:
    """Tests for cleanup_render_files."""

    def test_removes_temporary_input(self, temp_output_dir):
        """Staged temp files are removed."""
        temp = temp_output_dir / "temp_video_1.mp4"
        temp.write_bytes(b"x")

        removed = cleanup_render_files(StagedMedia(str(temp), is_temporary=True))

        assert removed == [temp]
        assert not temp.exists()

    def test_keeps_caller_owned_input(self, temp_output_dir):
        """Files the service did not write are never deleted."""
        source = temp_output_dir / "source.mp4"
        source.write_bytes(b"x")

        assert cleanup_render_files(StagedMedia(str(source), is_temporary=False)) == []
        assert source.exists()

    def test_removes_partial_output(self, temp_output_dir):
        """A partial output is removed on failure."""
        partial = temp_output_dir / "video_1.mp4"
        partial.write_bytes(b"partial")

        cleanup_render_files(None, partial)

        assert not partial.exists()

    def test_missing_files_are_fine(self, temp_output_dir):
        """Cleaning up files that were never written is not an error."""
        cleanup_render_files(
            StagedMedia(str(temp_output_dir / "gone.mp4"), is_temporary=True),
            temp_output_dir / "never_written.mp4",
        )

    def test_failure_is_logged_not_raised(self, temp_output_dir, caplog, monkeypatch):
        """A file that cannot be removed is logged as a warning."""
        temp = temp_output_dir / "temp_video_locked.mp4"
        temp.write_bytes(b"x")

        def _unlink(self, missing_ok=False):
            raise PermissionError("locked")

        monkeypatch.setattr(Path, "unlink", _unlink)
        with caplog.at_level(logging.WARNING):
            removed = cleanup_render_files(StagedMedia(str(temp), is_temporary=True))

        assert removed == []
        assert "Could not clean up" in caplog.text
