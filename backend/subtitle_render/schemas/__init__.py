from subtitle_render.schemas.render import (
    ErrorResponse,
    RenderProgressResponse,
    RenderRequest,
    RenderResponse,
    StillRenderResponse,
    SubtitleStyle,
)
from subtitle_render.schemas.transcription import (
    TranscriptChunk,
    TranscriptData,
    TranscriptWord,
    parse_worker_message,
)

__all__ = [
    "ErrorResponse",
    "RenderProgressResponse",
    "RenderRequest",
    "RenderResponse",
    "StillRenderResponse",
    "SubtitleStyle",
    "TranscriptChunk",
    "TranscriptData",
    "TranscriptWord",
    "parse_worker_message",
]
