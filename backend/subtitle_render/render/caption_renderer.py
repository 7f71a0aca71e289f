"""Caption timing and FFmpeg drawtext filters for subtitle overlays.

Features:
- Word / phrase caption grouping from transcript chunks
- Two-line wrapping at natural break points
- drawtext styling from the subtitle style descriptor (size, colour, border, box)
"""

import re
from dataclasses import dataclass
from typing import Sequence

from subtitle_render.schemas.render import SubtitleStyle
from subtitle_render.schemas.transcription import TranscriptChunk

# Phrase grouping limits for word-level transcripts
MAX_PHRASE_WORDS = 6
MAX_PHRASE_GAP_S = 1.0

# Font sizes in the style descriptor are relative to a 360px-tall preview
PREVIEW_REFERENCE_HEIGHT = 360

_SENTENCE_END_RE = re.compile(r"[.!?]$")
_BREAK_POINT_RE = re.compile(r"[,;:.!?]$")
_HEX_COLOR_RE = re.compile(r"^#(?P<hex>[0-9A-Fa-f]{3}|[0-9A-Fa-f]{6}|[0-9A-Fa-f]{8})$")
_NAMED_COLOR_RE = re.compile(r"^[A-Za-z]+$")


@dataclass(frozen=True)
class Caption:
    """A caption shown between start_s and end_s."""

    text: str
    start_s: float
    end_s: float


@dataclass(frozen=True)
class CaptionLayout:
    """Geometry of the caption block for one output size."""

    width: int
    height: int
    font_size: int
    bottom_margin: int
    max_words_per_line: int

    @classmethod
    def for_frame(cls, width: int, height: int, font_size: int) -> "CaptionLayout":
        is_vertical = height > width
        scale = min(width, height) / PREVIEW_REFERENCE_HEIGHT
        return cls(
            width=width,
            height=height,
            font_size=max(1, round(font_size * scale)),
            bottom_margin=round(height * (0.08 if is_vertical else 0.16)),
            max_words_per_line=4 if is_vertical else 6,
        )

    @property
    def line_height(self) -> int:
        return round(self.font_size * 1.2)


def build_captions(chunks: Sequence[TranscriptChunk], mode: str) -> list[Caption]:
    """Group transcript chunks into timed captions.

    word: one caption per word (chunk words are expanded when present).
    phrase: chunks carrying words are already phrases; word-level chunks are
    grouped until sentence end, a pause, or MAX_PHRASE_WORDS.
    """
    enabled = [chunk for chunk in chunks if not chunk.disabled and chunk.text.strip()]

    if mode == "word":
        captions: list[Caption] = []
        for chunk in enabled:
            if chunk.words:
                for word in chunk.words:
                    start = word.timestamp[0]
                    end = word.timestamp[1] if word.timestamp[1] is not None else start
                    captions.append(Caption(word.text.strip(), start, end))
            else:
                captions.append(Caption(chunk.text.strip(), chunk.start, chunk.end))
        return captions

    if any(chunk.words for chunk in enabled):
        return [Caption(chunk.text.strip(), chunk.start, chunk.end) for chunk in enabled]

    phrases: list[Caption] = []
    current: list[TranscriptChunk] = []
    for chunk in enabled:
        if current and (
            len(current) >= MAX_PHRASE_WORDS
            or chunk.start - current[-1].end > MAX_PHRASE_GAP_S
        ):
            phrases.append(_join_phrase(current))
            current = []
        current.append(chunk)
        if _SENTENCE_END_RE.search(chunk.text.strip()):
            phrases.append(_join_phrase(current))
            current = []
    if current:
        phrases.append(_join_phrase(current))
    return phrases


def _join_phrase(chunks: list[TranscriptChunk]) -> Caption:
    text = " ".join(chunk.text.strip() for chunk in chunks)
    return Caption(text=text, start_s=chunks[0].start, end_s=chunks[-1].end)


def wrap_caption_text(text: str, max_words_per_line: int) -> list[str]:
    """Split long captions into two lines, preferring punctuation near the middle."""
    words = text.split()
    if len(words) <= max_words_per_line:
        return [" ".join(words)]

    midpoint = -(-len(words) // 2)
    split_point = midpoint
    for i in range(max(2, midpoint - 2), min(len(words) - 2, midpoint + 2) + 1):
        if _BREAK_POINT_RE.search(words[i]):
            split_point = i + 1
            break

    return [" ".join(words[:split_point]), " ".join(words[split_point:])]


def to_ffmpeg_color(value: str | None, default: str | None) -> str | None:
    """Convert a CSS-style colour to FFmpeg colour syntax.

    Returns ``default`` for transparent or unsupported values.
    """
    if not value:
        return default
    value = value.strip()
    if value.lower() == "transparent":
        return default
    match = _HEX_COLOR_RE.match(value)
    if match:
        hex_value = match.group("hex")
        if len(hex_value) == 3:
            hex_value = "".join(c * 2 for c in hex_value)
        return f"0x{hex_value.upper()}"
    if _NAMED_COLOR_RE.match(value):
        return value.lower()
    return default


def escape_drawtext(text: str) -> str:
    """Escape text for a single-quoted drawtext value.

    Straight apostrophes become typographic ones; they cannot be nested
    inside the quoted value.
    """
    return (
        text.replace("\\", "\\\\")
        .replace("'", "’")
        .replace(":", "\\:")
    )


def _primary_font(font_family: str) -> str:
    family = font_family.split(",")[0].strip().strip("'\"")
    return family or "Sans"


class CaptionRenderer:
    """Builds drawtext filters for a caption track."""

    def __init__(
        self,
        style: SubtitleStyle,
        width: int,
        height: int,
        font_file: str | None = None,
    ):
        self.style = style
        self.layout = CaptionLayout.for_frame(width, height, style.font_size)
        self.font_file = font_file

    def build_filters(self, captions: Sequence[Caption]) -> list[str]:
        """Generate one drawtext filter per caption line."""
        filters: list[str] = []
        for caption in captions:
            lines = wrap_caption_text(caption.text.upper(), self.layout.max_words_per_line)
            for index, line in enumerate(lines):
                lines_below = len(lines) - 1 - index
                filters.append(self._build_drawtext(line, caption, lines_below))
        return filters

    def _build_drawtext(self, line: str, caption: Caption, lines_below: int) -> str:
        style = self.style
        layout = self.layout
        font_color = to_ffmpeg_color(style.color, "white")
        y_offset = layout.bottom_margin + lines_below * layout.line_height

        if self.font_file:
            font_param = f"fontfile='{escape_drawtext(self.font_file)}'"
        else:
            font_param = f"font='{escape_drawtext(_primary_font(style.font_family))}'"

        params = [
            f"drawtext=text='{escape_drawtext(line)}'",
            "expansion=none",
            font_param,
            f"fontsize={layout.font_size}",
            f"fontcolor={font_color}",
            "x=(w-text_w)/2",
            f"y=h-{y_offset}-text_h",
        ]

        if style.border_width > 0:
            border_color = to_ffmpeg_color(style.border_color, "black")
            params.extend([
                f"borderw={style.border_width}",
                f"bordercolor={border_color}",
            ])

        box_color = to_ffmpeg_color(style.background_color, None)
        if box_color:
            params.extend([
                "box=1",
                f"boxcolor={box_color}",
                "boxborderw=12",
            ])

        params.append(f"enable='between(t,{caption.start_s:.3f},{caption.end_s:.3f})'")
        return ":".join(params)
