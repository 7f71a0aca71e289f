"""Rendered artifact download endpoint."""

from fastapi import APIRouter
from fastapi.responses import FileResponse

from subtitle_render.api.deps import Artifacts
from subtitle_render.schemas.render import ErrorResponse

router = APIRouter()


@router.get(
    "/output/{filename:path}",
    responses={
        400: {"model": ErrorResponse, "description": "Path escapes the output directory"},
        404: {"model": ErrorResponse, "description": "File not found"},
    },
)
async def get_output(filename: str, artifacts: Artifacts) -> FileResponse:
    """Serve a rendered file as an attachment."""
    file_path = artifacts.resolve(filename)
    return FileResponse(
        path=str(file_path),
        media_type=artifacts.media_type(file_path),
        filename=file_path.name,
    )
