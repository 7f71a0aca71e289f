from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from subtitle_render.schemas.transcription import TranscriptData

CaptionMode = Literal["word", "phrase"]
AspectRatio = Literal["16:9", "9:16"]
QualityTier = Literal["low", "medium", "high"]


class SubtitleStyle(BaseModel):
    """Caption style descriptor as sent by the editor.

    Unknown keys are kept so the descriptor can grow without server changes.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    font_family: str = Field(default="Arial, sans-serif", alias="fontFamily")
    font_size: int = Field(default=24, alias="fontSize", ge=1, le=500)
    font_weight: str = Field(default="bold", alias="fontWeight")
    color: str = "#FFFFFF"
    background_color: str = Field(default="transparent", alias="backgroundColor")
    border_width: int = Field(default=0, alias="borderWidth", ge=0, le=50)
    border_color: str = Field(default="#000000", alias="borderColor")


class RenderRequest(BaseModel):
    """Render request body (camelCase on the wire).

    ``transcriptData`` and ``subtitleStyle`` are required, but their absence is
    reported by the orchestrator as a 400 rather than a schema error.
    """

    model_config = ConfigDict(populate_by_name=True)

    video_src: str = Field(default="", alias="videoSrc")
    transcript_data: TranscriptData | None = Field(default=None, alias="transcriptData")
    subtitle_style: dict[str, Any] | None = Field(default=None, alias="subtitleStyle")
    mode: CaptionMode | None = None
    ratio: AspectRatio | None = None
    zoom_portrait: bool | None = Field(default=None, alias="zoomPortrait")
    quality: QualityTier | None = None

    @property
    def resolved_mode(self) -> CaptionMode:
        return self.mode or "phrase"

    @property
    def resolved_ratio(self) -> AspectRatio:
        return self.ratio or "16:9"

    @property
    def resolved_quality(self) -> QualityTier:
        return self.quality or "medium"

    def input_props(self, video_src: str | None = None) -> dict[str, Any]:
        """Composition input properties, with the staged video path if given."""
        return {
            "videoSrc": self.video_src if video_src is None else video_src,
            "transcriptData": (
                self.transcript_data.model_dump(mode="json")
                if self.transcript_data is not None
                else None
            ),
            "subtitleStyle": self.subtitle_style,
            "mode": self.resolved_mode,
            "ratio": self.resolved_ratio,
            "zoomPortrait": bool(self.zoom_portrait),
        }


class RenderResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    output_path: str = Field(alias="outputPath")
    filename: str
    message: str = "Video rendered successfully"
    duration_in_frames: int = Field(alias="durationInFrames")
    fps: int
    width: int
    height: int
    size_bytes: int = Field(alias="sizeBytes")


class StillRenderResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    output_path: str = Field(alias="outputPath")
    filename: str
    message: str = "Still frame rendered successfully"


class RenderProgressResponse(BaseModel):
    job_id: str
    status: str
    percent: float
    current_step: str | None = None
    elapsed_ms: int = 0
    error_message: str | None = None


class ErrorResponse(BaseModel):
    error: str
    details: str
    code: str
    retryable: bool = False
