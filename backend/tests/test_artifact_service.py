"""Tests for locating rendered artifacts."""

import re
from pathlib import Path

import pytest

from subtitle_render.exceptions import ArtifactNotFoundError, InvalidArtifactPathError
from subtitle_render.services.artifact_service import ArtifactService


@pytest.fixture
def service(temp_output_dir) -> ArtifactService:
    return ArtifactService(temp_output_dir / "output")


class TestResolve:
    """Tests for ArtifactService.resolve."""

    def test_existing_file(self, service):
        path = service.new_artifact_path("video", "mp4")
        path.write_bytes(b"video")
        assert service.resolve(path.name).samefile(path)

    def test_missing_file(self, service):
        with pytest.raises(ArtifactNotFoundError) as exc_info:
            service.resolve("video_1_deadbeef.mp4")
        assert exc_info.value.status_code == 404

    def test_traversal_rejected_before_existence(self, service, temp_output_dir):
        """Escaping the output directory is invalid even when the target exists."""
        secret = temp_output_dir / "secret.txt"
        secret.write_text("do not serve")

        with pytest.raises(InvalidArtifactPathError) as exc_info:
            service.resolve("../secret.txt")
        assert exc_info.value.status_code == 400

    @pytest.mark.parametrize(
        "filename",
        [
            "../../etc/passwd",
            "/etc/passwd",
            "a/../../x.mp4",
            "..",
            ".",
            "",
            "staging/temp_video_1_deadbeef.mp4",
            "sub\\x.mp4",
        ],
    )
    def test_invalid_paths(self, service, filename):
        with pytest.raises(InvalidArtifactPathError):
            service.resolve(filename)

    def test_only_flat_names(self, service):
        """A name with directory parts is invalid even if it lands on a real artifact."""
        path = service.new_artifact_path("video", "mp4")
        path.write_bytes(b"video")
        (service.output_dir / "sub").mkdir()

        for name in (f"sub/../{path.name}", f"./{path.name}"):
            with pytest.raises(InvalidArtifactPathError):
                service.resolve(name)

    def test_nested_file_not_served(self, service):
        """Files in subdirectories of the output directory are not reachable."""
        nested = service.output_dir / "staging" / "temp_video_1_deadbeef.mp4"
        nested.parent.mkdir(parents=True)
        nested.write_bytes(b"upload")

        with pytest.raises(InvalidArtifactPathError):
            service.resolve("staging/temp_video_1_deadbeef.mp4")

    def test_directory_is_not_a_file(self, service):
        (service.output_dir / "sub").mkdir(parents=True)
        with pytest.raises(ArtifactNotFoundError):
            service.resolve("sub")


class TestNaming:
    """Tests for artifact naming and URLs."""

    def test_new_artifact_path(self, service):
        path = service.new_artifact_path("video", "mp4")
        assert path.parent == service.output_dir
        assert service.output_dir.is_dir()
        assert re.fullmatch(r"video_\d+_[0-9a-f]{8}\.mp4", path.name)

    def test_names_are_unique(self, service):
        names = {service.new_artifact_path("video", "mp4").name for _ in range(50)}
        assert len(names) == 50

    def test_url_for(self, service):
        assert service.url_for("video_1_abc.mp4") == "/api/output/video_1_abc.mp4"

    @pytest.mark.parametrize(
        "name,media_type",
        [("a.mp4", "video/mp4"), ("a.PNG", "image/png"), ("a.bin", "application/octet-stream")],
    )
    def test_media_type(self, service, name, media_type):
        assert service.media_type(Path(name)) == media_type
