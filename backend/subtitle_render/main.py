import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from subtitle_render.api import output, render
from subtitle_render.config import get_settings
from subtitle_render.exceptions import RenderServiceError

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    settings.output_dir.mkdir(parents=True, exist_ok=True)
    yield
    # Shutdown
    orchestrator = getattr(app.state, "orchestrator", None)
    if orchestrator is not None:
        await orchestrator.shutdown()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RenderServiceError)
async def render_service_exception_handler(
    request: Request, exc: RenderServiceError
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Global exception handler to ensure errors return proper JSON
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "details": str(exc),
            "code": "INTERNAL_ERROR",
            "retryable": False,
        },
    )


# Routers
app.include_router(render.router, prefix="/api", tags=["render"])
app.include_router(output.router, prefix="/api", tags=["output"])


@app.get("/health")
async def health_check() -> dict[str, Any]:
    orchestrator = getattr(app.state, "orchestrator", None)
    bundle_state = orchestrator.bundle_state.value if orchestrator else "not_started"
    return {
        "status": "healthy",
        "version": settings.app_version,
        "git_hash": settings.git_hash,
        "bundle": bundle_state,
    }


@app.get("/api/version")
async def get_version() -> dict[str, str]:
    """Return the backend version info."""
    return {"version": settings.app_version, "git_hash": settings.git_hash}


# =============================================================================
# Main Entry Point
# =============================================================================


def run() -> None:
    import uvicorn

    logger.info(f"Starting {settings.app_name} on {settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
