"""Staging of inline video payloads and cleanup of render files."""

import base64
import binascii
import logging
import re
import time
import uuid
from dataclasses import dataclass
from pathlib import Path

from subtitle_render.exceptions import MaterializationError

logger = logging.getLogger(__name__)

# data:video/<subtype>[;param...];base64,<payload>
_DATA_URL_RE = re.compile(
    r"^data:video/(?P<subtype>[\w.+-]+)(?P<params>(?:;[^,;]+)*?);base64,(?P<payload>.*)$",
    re.DOTALL,
)

_EXTENSIONS = {
    "mp4": "mp4",
    "quicktime": "mov",
    "webm": "webm",
    "x-matroska": "mkv",
    "x-msvideo": "avi",
}


@dataclass(frozen=True)
class StagedMedia:
    """Video source usable by the render engine.

    ``is_temporary`` is True only for files this service wrote; those are
    removed by cleanup. Caller-owned references are never deleted.
    """

    path: str
    is_temporary: bool = False


def is_inline_video(video_src: str | None) -> bool:
    return bool(video_src) and video_src.startswith("data:video/")


def materialize_video_source(video_src: str, staging_dir: Path) -> StagedMedia:
    """Turn the request's video source into a file-system path.

    Inline ``data:video/...;base64,`` payloads are decoded into a uniquely
    named file under ``staging_dir``. Anything else passes through untouched.

    Raises:
        MaterializationError: If the payload cannot be decoded or written.
    """
    if not is_inline_video(video_src):
        return StagedMedia(path=video_src, is_temporary=False)

    match = _DATA_URL_RE.match(video_src)
    if match is None:
        raise MaterializationError("Inline video payload is not a base64 data URL")

    try:
        data = base64.b64decode(match.group("payload"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise MaterializationError(f"Inline video payload could not be decoded: {e}") from e
    if not data:
        raise MaterializationError("Inline video payload is empty")

    ext = _EXTENSIONS.get(match.group("subtype").lower(), "mp4")
    temp_path = staging_dir / f"temp_video_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}.{ext}"

    try:
        staging_dir.mkdir(parents=True, exist_ok=True)
        temp_path.write_bytes(data)
    except OSError as e:
        temp_path.unlink(missing_ok=True)
        raise MaterializationError(f"Could not write staged video: {e}") from e

    logger.info(f"[RENDER] Saved temporary video file: {temp_path} ({len(data)} bytes)")
    return StagedMedia(path=str(temp_path), is_temporary=True)


def cleanup_render_files(
    staged: StagedMedia | None,
    partial_output: Path | None = None,
) -> list[Path]:
    """Remove the staged input and, after a failure, the partial output.

    Best effort: a file that cannot be deleted is logged and left behind.
    The render's own outcome is never changed from here.

    Returns:
        Paths that were removed.
    """
    targets: list[Path] = []
    if staged is not None and staged.is_temporary:
        targets.append(Path(staged.path))
    if partial_output is not None:
        targets.append(partial_output)

    removed: list[Path] = []
    for target in targets:
        try:
            target.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"[RENDER] Could not clean up {target}: {e}")
            continue
        removed.append(target)
        logger.info(f"[RENDER] Cleaned up {target}")
    return removed
