"""Local output directory holding rendered artifacts."""

import os
import time
import uuid
from pathlib import Path

from subtitle_render.exceptions import ArtifactNotFoundError, InvalidArtifactPathError

MEDIA_TYPES = {
    ".mp4": "video/mp4",
    ".mov": "video/quicktime",
    ".webm": "video/webm",
    ".png": "image/png",
}


class ArtifactService:
    """Names, locates and serves files in the output directory."""

    def __init__(self, output_dir: Path, url_prefix: str = "/api/output") -> None:
        self.output_dir = Path(output_dir)
        self.url_prefix = url_prefix.rstrip("/")

    def new_artifact_path(self, prefix: str, ext: str) -> Path:
        """Unique path for a new artifact: ``<prefix>_<epoch-ms>_<8 hex>.<ext>``."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        filename = f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}.{ext}"
        return self.output_dir / filename

    def url_for(self, filename: str) -> str:
        return f"{self.url_prefix}/{filename}"

    def resolve(self, filename: str) -> Path:
        """Resolve a requested filename to a file inside the output directory.

        Artifacts are flat names, so anything other than a single plain path
        component is invalid. The check is lexical and happens before the
        file system is consulted, so a traversal attempt is rejected whether
        or not the target exists.

        Raises:
            InvalidArtifactPathError: Not a single component inside the output directory.
            ArtifactNotFoundError: No such file.
        """
        if (
            not filename
            or filename in (os.curdir, os.pardir)
            or "/" in filename
            or "\\" in filename
            or os.path.isabs(filename)
        ):
            raise InvalidArtifactPathError()

        base = Path(os.path.normpath(os.path.abspath(self.output_dir)))
        candidate = Path(os.path.normpath(os.path.join(base, filename)))
        if candidate.parent != base:
            raise InvalidArtifactPathError()

        if not candidate.is_file():
            raise ArtifactNotFoundError(filename)
        return candidate

    @staticmethod
    def media_type(path: Path) -> str:
        return MEDIA_TYPES.get(path.suffix.lower(), "application/octet-stream")
