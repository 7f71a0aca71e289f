"""Quality presets: quality tier x aspect ratio -> frame rate, size and CRF."""

from dataclasses import dataclass

from subtitle_render.exceptions import RenderValidationError

QUALITY_TIERS = ("low", "medium", "high")
ASPECT_RATIOS = ("16:9", "9:16")


@dataclass(frozen=True)
class QualityPreset:
    """Encoding parameters for one quality tier and aspect ratio."""

    fps: int
    width: int
    height: int
    crf: int  # lower is higher quality


# Landscape sizes; portrait is the transpose.
_LANDSCAPE_SIZES: dict[str, tuple[int, int]] = {
    "low": (960, 540),
    "medium": (1280, 720),
    "high": (1920, 1080),
}

_CRF: dict[str, int] = {
    "low": 28,
    "medium": 24,
    "high": 20,
}


def _fps_for(quality: str) -> int:
    return 24 if quality == "low" else 30


def _build_presets() -> dict[tuple[str, str], QualityPreset]:
    presets: dict[tuple[str, str], QualityPreset] = {}
    for quality in QUALITY_TIERS:
        width, height = _LANDSCAPE_SIZES[quality]
        fps = _fps_for(quality)
        crf = _CRF[quality]
        presets[(quality, "16:9")] = QualityPreset(fps=fps, width=width, height=height, crf=crf)
        presets[(quality, "9:16")] = QualityPreset(fps=fps, width=height, height=width, crf=crf)
    return presets


PRESETS: dict[tuple[str, str], QualityPreset] = _build_presets()


def resolve_preset(quality: str, ratio: str) -> QualityPreset:
    """Look up the preset for a quality tier and aspect ratio.

    Raises:
        RenderValidationError: If the combination is not in the table.
    """
    try:
        return PRESETS[(quality, ratio)]
    except KeyError:
        raise RenderValidationError(
            f"Unsupported quality/ratio combination: {quality!r}, {ratio!r}"
        ) from None
