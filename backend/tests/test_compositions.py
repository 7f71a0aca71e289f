"""Tests for composition definitions and the SubtitleVideo filter graph."""

from dataclasses import replace

from subtitle_render.render.compositions import (
    SUBTITLE_VIDEO,
    SubtitleVideoProps,
    build_subtitle_video_filter,
    get_compositions,
)


def _props(**overrides) -> SubtitleVideoProps:
    data = {
        "videoSrc": "/videos/source.mp4",
        "transcriptData": {
            "text": "Hello there.",
            "chunks": [{"text": "Hello there.", "timestamp": [0.0, 2.0]}],
        },
        "subtitleStyle": {"fontSize": 24, "color": "#FFFFFF"},
        "mode": "phrase",
        "ratio": "16:9",
    }
    data.update(overrides)
    return SubtitleVideoProps.model_validate(data)


class TestCompositions:
    """Tests for the registered compositions."""

    def test_subtitle_video_registered(self):
        ids = [c.id for c in get_compositions()]
        assert ids == ["SubtitleVideo"]

    def test_manifest(self):
        manifest = SUBTITLE_VIDEO.to_manifest()
        assert manifest["id"] == "SubtitleVideo"
        assert "transcriptData" in manifest["props_schema"]["properties"]

    def test_duration_seconds(self):
        composition = replace(SUBTITLE_VIDEO, fps=30, duration_in_frames=375)
        assert composition.duration_s == 12.5


class TestSubtitleVideoProps:
    """Tests for SubtitleVideoProps."""

    def test_fill_frame_only_for_portrait_zoom(self):
        assert _props(ratio="9:16", zoomPortrait=True).fill_frame is True
        assert _props(ratio="9:16", zoomPortrait=False).fill_frame is False
        assert _props(ratio="16:9", zoomPortrait=True).fill_frame is False

    def test_has_video(self):
        assert _props().has_video is True
        assert _props(videoSrc="").has_video is False


class TestSubtitleVideoFilter:
    """Tests for build_subtitle_video_filter."""

    def test_fit_with_letterbox(self):
        """Landscape output scales the video to fit and pads."""
        composition = replace(SUBTITLE_VIDEO, width=1280, height=720, fps=30, duration_in_frames=60)
        graph = build_subtitle_video_filter(_props(), composition)

        assert graph.startswith("[0:v]")
        assert graph.endswith("[vout]")
        assert "scale=1280:720:force_original_aspect_ratio=decrease" in graph
        assert "pad=1280:720" in graph
        assert "tpad=stop_mode=clone" in graph
        assert "fps=30" in graph
        assert "drawtext=text='HELLO THERE.'" in graph
        assert graph.index("fps=30") < graph.index("drawtext")
        assert "format=yuv420p[vout]" in graph

    def test_portrait_zoom_crops(self):
        """Portrait zoom fills the frame by cropping."""
        composition = replace(SUBTITLE_VIDEO, width=1080, height=1920, fps=30, duration_in_frames=60)
        graph = build_subtitle_video_filter(_props(ratio="9:16", zoomPortrait=True), composition)

        assert "force_original_aspect_ratio=increase" in graph
        assert "crop=1080:1920" in graph
        assert "pad=1080:1920" not in graph

    def test_no_video_has_no_background_scaling(self):
        """Without a source the colour input is used as-is."""
        composition = replace(SUBTITLE_VIDEO, width=1280, height=720, fps=30, duration_in_frames=60)
        graph = build_subtitle_video_filter(_props(videoSrc=""), composition)

        assert "scale=" not in graph
        assert "tpad" not in graph
        assert graph.startswith("[0:v]fps=30,setsar=1,drawtext")
