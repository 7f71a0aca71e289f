from subtitle_render.render.bundle import BundleCache, BundleState
from subtitle_render.render.engine import BundleHandle, FFmpegRenderEngine
from subtitle_render.render.pipeline import RenderArtifact, RenderOrchestrator, RenderPlan
from subtitle_render.render.presets import QualityPreset, resolve_preset

__all__ = [
    "BundleCache",
    "BundleHandle",
    "BundleState",
    "FFmpegRenderEngine",
    "QualityPreset",
    "RenderArtifact",
    "RenderOrchestrator",
    "RenderPlan",
    "resolve_preset",
]
