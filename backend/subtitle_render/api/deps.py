from typing import Annotated

from fastapi import Depends, Request

from subtitle_render.config import get_settings
from subtitle_render.render.pipeline import RenderOrchestrator
from subtitle_render.services.artifact_service import ArtifactService


def get_orchestrator(request: Request) -> RenderOrchestrator:
    """Process-wide orchestrator, created on first use.

    Created lazily so its asyncio primitives belong to the serving loop.
    """
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        orchestrator = RenderOrchestrator(settings=get_settings())
        request.app.state.orchestrator = orchestrator
    return orchestrator


Orchestrator = Annotated[RenderOrchestrator, Depends(get_orchestrator)]


def get_artifact_service(orchestrator: Orchestrator) -> ArtifactService:
    return orchestrator.artifacts


Artifacts = Annotated[ArtifactService, Depends(get_artifact_service)]
