"""Render duration derived from transcript timing."""

import math
from typing import Sequence

from subtitle_render.exceptions import RenderValidationError
from subtitle_render.schemas.transcription import TranscriptChunk

DEFAULT_DURATION_S = 30.0


def validate_chunk_order(chunks: Sequence[TranscriptChunk]) -> None:
    """Reject transcripts whose chunks are not ordered by start time.

    The last chunk marks the end of the video, so ordering is required
    rather than repaired.
    """
    for index in range(1, len(chunks)):
        previous, current = chunks[index - 1], chunks[index]
        if current.start < previous.start:
            raise RenderValidationError(
                f"Transcript chunks must be ordered by start time: chunk {index} "
                f"starts at {current.start}s, before chunk {index - 1} ({previous.start}s)"
            )


def transcript_duration_seconds(
    chunks: Sequence[TranscriptChunk],
    fallback_s: float = DEFAULT_DURATION_S,
) -> float:
    """Total duration: the end of the last chunk, or the fallback if empty."""
    if not chunks:
        return fallback_s
    return chunks[-1].end


def duration_in_frames(
    chunks: Sequence[TranscriptChunk],
    fps: int,
    fallback_s: float = DEFAULT_DURATION_S,
) -> int:
    """Number of frames to render: ceil(duration * fps).

    Raises:
        RenderValidationError: If the result is not strictly positive.
    """
    duration_s = transcript_duration_seconds(chunks, fallback_s)
    frames = math.ceil(duration_s * fps)
    if frames <= 0:
        raise RenderValidationError(
            f"Transcript duration {duration_s}s at {fps} fps produces no frames"
        )
    return frames
