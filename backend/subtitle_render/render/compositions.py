"""Composition definitions loaded by the render bundle.

This module is the default bundle entry point. A bundle imports it once and
registers every composition returned by ``get_compositions()``.
"""

from dataclasses import dataclass, field
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field

from subtitle_render.render.caption_renderer import CaptionRenderer, build_captions
from subtitle_render.schemas.render import AspectRatio, CaptionMode, SubtitleStyle
from subtitle_render.schemas.transcription import TranscriptData

FilterBuilder = Callable[..., str]


@dataclass(frozen=True)
class Composition:
    """A named, parameterised video template.

    width/height/fps/duration_in_frames are defaults; the orchestrator
    replaces them with values derived from the request.
    """

    id: str
    width: int
    height: int
    fps: int
    duration_in_frames: int
    props_model: type[BaseModel]
    build_filter: FilterBuilder
    default_props: dict[str, Any] = field(default_factory=dict)

    @property
    def duration_s(self) -> float:
        return self.duration_in_frames / self.fps

    def to_manifest(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "width": self.width,
            "height": self.height,
            "fps": self.fps,
            "duration_in_frames": self.duration_in_frames,
            "props_schema": self.props_model.model_json_schema(by_alias=True),
        }


class SubtitleVideoProps(BaseModel):
    """Input properties of the SubtitleVideo composition."""

    model_config = ConfigDict(populate_by_name=True)

    video_src: str = Field(default="", alias="videoSrc")
    transcript_data: TranscriptData = Field(alias="transcriptData")
    subtitle_style: SubtitleStyle = Field(alias="subtitleStyle")
    mode: CaptionMode = "phrase"
    ratio: AspectRatio = "16:9"
    zoom_portrait: bool = Field(default=False, alias="zoomPortrait")

    @property
    def has_video(self) -> bool:
        return bool(self.video_src)

    @property
    def fill_frame(self) -> bool:
        """Crop to fill the frame instead of letterboxing (portrait zoom)."""
        return self.ratio == "9:16" and self.zoom_portrait


def build_subtitle_video_filter(
    props: SubtitleVideoProps,
    composition: Composition,
    *,
    font_file: str | None = None,
) -> str:
    """Build the filter graph: background video fitted to the frame plus captions.

    Input 0 is the source video, or a black colour source when there is none.
    The graph's video output is labelled ``[vout]``.

    The source is letterboxed by default so nothing is cut off. It is scaled
    up and cropped (a cover fit) only for 9:16 with ``zoomPortrait``, which
    mirrors the editor's "Fit to Container" / "Crop/Zoom" preview toggle.
    """
    width, height, fps = composition.width, composition.height, composition.fps

    if props.has_video:
        if props.fill_frame:
            background = [
                f"scale={width}:{height}:force_original_aspect_ratio=increase",
                f"crop={width}:{height}",
            ]
        else:
            background = [
                f"scale={width}:{height}:force_original_aspect_ratio=decrease",
                f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2:color=black",
            ]
        # Hold the last frame if the video is shorter than the transcript
        background.append(f"tpad=stop_mode=clone:stop_duration={composition.duration_s:.3f}")
    else:
        background = []

    renderer = CaptionRenderer(props.subtitle_style, width, height, font_file=font_file)
    captions = build_captions(props.transcript_data.chunks, props.mode)

    chain = [
        *background,
        f"fps={fps}",
        "setsar=1",
        *renderer.build_filters(captions),
        "format=yuv420p",
    ]
    return f"[0:v]{','.join(chain)}[vout]"


SUBTITLE_VIDEO = Composition(
    id="SubtitleVideo",
    width=1920,
    height=1080,
    fps=30,
    duration_in_frames=3000,
    props_model=SubtitleVideoProps,
    build_filter=build_subtitle_video_filter,
    default_props={
        "videoSrc": "",
        "transcriptData": None,
        "subtitleStyle": None,
        "mode": "phrase",
        "ratio": "16:9",
    },
)


def get_compositions() -> list[Composition]:
    return [SUBTITLE_VIDEO]
