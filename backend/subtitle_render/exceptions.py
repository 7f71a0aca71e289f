"""Custom exceptions for the subtitle render service.

Every failure the render orchestrator can produce maps to one class here.
The HTTP boundary turns them into JSON error bodies with a stable ``code``.
"""

from typing import Any


class RenderServiceError(Exception):
    """Base exception for all render service errors."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    message: str = "An unexpected error occurred"
    error: str = "Failed to render video"
    retryable: bool = False

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
    ):
        self.message = message or self.__class__.message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the error body returned by the API."""
        return {
            "error": self.error,
            "details": self.message,
            "code": self.code,
            "retryable": self.retryable,
        }


# =============================================================================
# Validation Errors (400)
# =============================================================================


class RenderValidationError(RenderServiceError):
    """Request is missing fields or carries values the renderer cannot use."""

    code = "VALIDATION_ERROR"
    status_code = 400
    message = "Invalid render request"
    error = "Invalid render request"


class MissingRequiredFieldError(RenderValidationError):
    """Required request field is missing."""

    code = "MISSING_REQUIRED_FIELD"
    message = "Required field is missing"

    def __init__(self, *fields: str):
        self.fields = fields
        if fields:
            message = (
                "Missing required parameters: "
                f"{' and '.join(fields)} {'is' if len(fields) == 1 else 'are'} required"
            )
        else:
            message = self.message
        super().__init__(message)


# =============================================================================
# Pipeline Errors (500)
# =============================================================================


class MaterializationError(RenderServiceError):
    """Inline video payload could not be decoded or written."""

    code = "MATERIALIZATION_FAILED"
    message = "Could not stage the video source"


class BundleBuildError(RenderServiceError):
    """Render bundle failed to build. The next request retries the build."""

    code = "BUNDLE_BUILD_FAILED"
    message = "Render bundle failed to build"
    retryable = True


class CompositionError(RenderServiceError):
    """Base class for composition resolution errors."""

    code = "COMPOSITION_ERROR"
    message = "Composition could not be resolved"


class CompositionNotFoundError(CompositionError):
    """Composition id does not exist in the bundle."""

    code = "COMPOSITION_NOT_FOUND"
    message = "Composition not found"

    def __init__(self, composition_id: str | None = None, available: list[str] | None = None):
        message = self.message
        if composition_id:
            message = f"Composition not found: {composition_id}"
            if available:
                message += f" (available: {', '.join(available)})"
        super().__init__(message)


class CompositionInputError(CompositionError):
    """Input properties were rejected by the composition's schema."""

    code = "COMPOSITION_INPUT_INVALID"
    message = "Composition input properties are invalid"


class RenderFailedError(RenderServiceError):
    """Rendering backend failed."""

    code = "RENDER_FAILED"
    message = "Render failed"


class RenderCancelledError(RenderFailedError):
    """Render was cancelled before it finished."""

    code = "RENDER_CANCELLED"
    message = "Render cancelled"


class RenderTimeoutError(RenderCancelledError):
    """Render exceeded the configured time limit."""

    code = "RENDER_TIMEOUT"
    message = "Render timed out"

    def __init__(self, timeout_seconds: float | None = None):
        message = self.message
        if timeout_seconds is not None:
            message = f"Render timed out after {timeout_seconds:g}s"
        super().__init__(message)


# =============================================================================
# Artifact Errors (400/404)
# =============================================================================


class ArtifactError(RenderServiceError):
    """Base class for artifact retrieval errors."""

    error = "Failed to serve file"


class InvalidArtifactPathError(ArtifactError):
    """Requested filename resolves outside the output directory."""

    code = "INVALID_PATH"
    status_code = 400
    message = "Invalid file path"
    error = "Invalid file path"


class ArtifactNotFoundError(ArtifactError):
    """Requested artifact does not exist."""

    code = "ARTIFACT_NOT_FOUND"
    status_code = 404
    message = "File not found"
    error = "File not found"

    def __init__(self, filename: str | None = None):
        message = f"File not found: {filename}" if filename else self.message
        super().__init__(message)
