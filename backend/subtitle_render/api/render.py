"""Render API endpoints - synchronous rendering.

The request returns once the artifact is on disk; the response carries the
URL it can be fetched from.
"""

import logging

from fastapi import APIRouter

from subtitle_render.api.deps import Orchestrator
from subtitle_render.schemas.render import (
    ErrorResponse,
    RenderProgressResponse,
    RenderRequest,
    RenderResponse,
    StillRenderResponse,
)

router = APIRouter()
logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Missing or invalid render parameters"},
    500: {"model": ErrorResponse, "description": "Render failed"},
}


@router.post(
    "/render-video",
    response_model=RenderResponse,
    response_model_by_alias=True,
    responses=ERROR_RESPONSES,
)
async def render_video(
    render_request: RenderRequest,
    orchestrator: Orchestrator,
) -> RenderResponse:
    """
    Render a subtitled video.

    transcriptData and subtitleStyle are required; videoSrc may be a file
    path, a base64 data URL, or empty for a black background.
    """
    chunk_count = (
        len(render_request.transcript_data.chunks) if render_request.transcript_data else 0
    )
    logger.info(
        f"[RENDER] Starting video render: {chunk_count} chunks, "
        f"mode={render_request.resolved_mode}, ratio={render_request.resolved_ratio}, "
        f"quality={render_request.resolved_quality}"
    )

    artifact = await orchestrator.render_video(render_request)

    return RenderResponse(
        output_path=orchestrator.artifacts.url_for(artifact.filename),
        filename=artifact.filename,
        duration_in_frames=artifact.duration_in_frames,
        fps=artifact.fps,
        width=artifact.width,
        height=artifact.height,
        size_bytes=artifact.size_bytes,
    )


@router.post(
    "/test-render",
    response_model=StillRenderResponse,
    response_model_by_alias=True,
    responses=ERROR_RESPONSES,
)
async def test_render(
    render_request: RenderRequest,
    orchestrator: Orchestrator,
) -> StillRenderResponse:
    """Render a single preview frame to check subtitle styling."""
    still_path = await orchestrator.render_still(render_request)
    return StillRenderResponse(
        output_path=orchestrator.artifacts.url_for(still_path.name),
        filename=still_path.name,
    )


@router.get("/render-video/jobs", response_model=list[RenderProgressResponse])
async def list_render_jobs(orchestrator: Orchestrator) -> list[RenderProgressResponse]:
    """Progress of renders currently in flight."""
    return [
        RenderProgressResponse(**progress.to_dict())
        for progress in orchestrator.list_jobs()
    ]
