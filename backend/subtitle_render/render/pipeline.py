"""Render job orchestration.

Turns one render request into a finished artifact:

1. Validate the request and derive the plan (preset, frame count)
2. Stage an inline video payload to a temporary file
3. Ensure the shared render bundle exists
4. Resolve the composition and merge in the planned geometry
5. Render with progress reporting under the concurrency cap and timeout
6. Remove the staged file, and the partial output on failure
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from subtitle_render.config import Settings, get_settings
from subtitle_render.exceptions import (
    MissingRequiredFieldError,
    RenderCancelledError,
    RenderFailedError,
    RenderServiceError,
    RenderTimeoutError,
)
from subtitle_render.render.bundle import BundleCache, BundleState
from subtitle_render.render.engine import BundleHandle, CancelCheck, EncodeOptions, FFmpegRenderEngine
from subtitle_render.render.media import StagedMedia, cleanup_render_files, materialize_video_source
from subtitle_render.render.presets import QualityPreset, resolve_preset
from subtitle_render.render.progress import ProgressListener, ProgressSink, RenderProgress
from subtitle_render.render.timing import duration_in_frames, validate_chunk_order
from subtitle_render.schemas.render import RenderRequest
from subtitle_render.services.artifact_service import ArtifactService

logger = logging.getLogger(__name__)


def _discard_staged(task: "asyncio.Future[StagedMedia]") -> None:
    """Remove a staged file whose render was abandoned while staging."""
    if task.cancelled() or task.exception() is not None:
        return
    cleanup_render_files(task.result())


@dataclass(frozen=True)
class RenderPlan:
    """Timing and geometry derived from a request before any work starts."""

    preset: QualityPreset
    duration_in_frames: int

    @property
    def duration_s(self) -> float:
        return self.duration_in_frames / self.preset.fps


@dataclass(frozen=True)
class RenderArtifact:
    """A finished render in the output directory."""

    path: Path
    size_bytes: int
    duration_in_frames: int
    fps: int
    width: int
    height: int
    elapsed_ms: int

    @property
    def filename(self) -> str:
        return self.path.name


class RenderOrchestrator:
    """Runs render jobs against a shared render bundle."""

    def __init__(
        self,
        engine: Optional[FFmpegRenderEngine] = None,
        artifacts: Optional[ArtifactService] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.engine = engine or FFmpegRenderEngine(
            self.settings.ffmpeg_path, self.settings.caption_font_file
        )
        self.artifacts = artifacts or ArtifactService(self.settings.output_dir)
        self.bundle_cache: BundleCache[BundleHandle] = BundleCache(
            lambda: self.engine.bundle(self.settings.render_entry_point),
            release=self.engine.release_bundle,
        )
        self._semaphore = asyncio.Semaphore(self.settings.render_max_concurrent_jobs)
        self._jobs: dict[str, ProgressSink] = {}

    @property
    def bundle_state(self) -> BundleState:
        return self.bundle_cache.state

    def plan(self, request: RenderRequest, preset: Optional[QualityPreset] = None) -> RenderPlan:
        """Validate the request and compute preset and frame count.

        Raises:
            MissingRequiredFieldError: transcriptData or subtitleStyle is absent.
            RenderValidationError: Unordered chunks, unknown preset or empty duration.
        """
        if request.transcript_data is None or request.subtitle_style is None:
            raise MissingRequiredFieldError("transcriptData", "subtitleStyle")

        chunks = request.transcript_data.chunks
        validate_chunk_order(chunks)

        if preset is None:
            preset = resolve_preset(request.resolved_quality, request.resolved_ratio)
        frames = duration_in_frames(chunks, preset.fps, self.settings.render_fallback_duration_s)
        return RenderPlan(preset=preset, duration_in_frames=frames)

    async def render_video(
        self,
        request: RenderRequest,
        *,
        job_id: Optional[str] = None,
        cancel_check: Optional[CancelCheck] = None,
        on_progress: Optional[ProgressListener] = None,
    ) -> RenderArtifact:
        """Render a subtitled video for ``request``.

        Raises:
            RenderServiceError: Validation, staging, bundle, composition or
                render failure. Anything unexpected is wrapped in
                RenderFailedError.
        """
        plan = self.plan(request)
        job_id = job_id or uuid.uuid4().hex[:12]
        sink = ProgressSink(job_id, on_progress)
        self._jobs[job_id] = sink

        preset = plan.preset
        logger.info(
            f"[RENDER] Job {job_id}: {request.resolved_quality} {request.resolved_ratio} -> "
            f"{preset.width}x{preset.height} @{preset.fps}fps, "
            f"{plan.duration_in_frames} frames ({plan.duration_s:.2f}s), crf={preset.crf}"
        )

        try:
            artifact = await self._run_limited(
                self._render(request, plan, sink, cancel_check), job_id, sink
            )
        finally:
            self._jobs.pop(job_id, None)

        sink.complete()
        logger.info(
            f"[RENDER] Job {job_id} completed: {artifact.filename} "
            f"({artifact.size_bytes} bytes, {artifact.elapsed_ms}ms)"
        )
        return artifact

    async def render_still(self, request: RenderRequest) -> Path:
        """Render one preview frame of the composition to a PNG file."""
        medium = resolve_preset("medium", request.resolved_ratio)
        plan = self.plan(request, preset=replace(medium, fps=self.settings.still_fps))
        job_id = f"still-{uuid.uuid4().hex[:8]}"
        sink = ProgressSink(job_id)
        return await self._run_limited(self._render_still(request, plan, sink), job_id, sink)

    def list_jobs(self) -> list[RenderProgress]:
        """Progress snapshots of in-flight render jobs."""
        return [sink.progress for sink in self._jobs.values()]

    async def shutdown(self) -> None:
        await self.bundle_cache.release()

    async def _run_limited(self, coro, job_id: str, sink: ProgressSink):
        """Run ``coro`` under the concurrency cap and the render timeout."""
        timeout = self.settings.render_timeout_seconds
        try:
            async with self._semaphore:
                return await asyncio.wait_for(coro, timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(f"[RENDER] Job {job_id} timed out after {timeout:g}s")
            sink.fail(f"Render timed out after {timeout:g}s", cancelled=True)
            raise RenderTimeoutError(timeout) from None
        except RenderServiceError as e:
            logger.error(f"[RENDER] Job {job_id} failed: {e.code}: {e.message}")
            sink.fail(e.message, cancelled=isinstance(e, RenderCancelledError))
            raise
        except Exception as e:
            logger.exception(f"[RENDER] Job {job_id} failed unexpectedly")
            sink.fail(str(e))
            raise RenderFailedError(str(e) or type(e).__name__) from e
        finally:
            # Never awaited if the semaphore wait was cancelled
            coro.close()

    async def _stage(self, request: RenderRequest, sink: ProgressSink) -> StagedMedia:
        sink.set_step("Staging video source")
        staging = asyncio.ensure_future(
            asyncio.to_thread(
                materialize_video_source, request.video_src, self.settings.staging_dir
            )
        )
        try:
            return await asyncio.shield(staging)
        except asyncio.CancelledError:
            # The worker thread keeps writing; remove the file once it lands
            staging.add_done_callback(_discard_staged)
            raise

    async def _resolve(
        self,
        request: RenderRequest,
        plan: RenderPlan,
        sink: ProgressSink,
        staged: StagedMedia,
    ):
        sink.set_step("Preparing render bundle")
        bundle = await self.bundle_cache.ensure_bundle()

        input_props = request.input_props(video_src=staged.path)
        composition = await self.engine.select_composition(
            bundle, self.settings.render_composition_id, input_props
        )
        composition = replace(
            composition,
            width=plan.preset.width,
            height=plan.preset.height,
            fps=plan.preset.fps,
            duration_in_frames=plan.duration_in_frames,
        )
        return bundle, composition, input_props

    async def _render(
        self,
        request: RenderRequest,
        plan: RenderPlan,
        sink: ProgressSink,
        cancel_check: Optional[CancelCheck],
    ) -> RenderArtifact:
        started = time.monotonic()
        output_path = self.artifacts.new_artifact_path("video", "mp4")
        staged = await self._stage(request, sink)
        succeeded = False
        try:
            bundle, composition, input_props = await self._resolve(
                request, plan, sink, staged
            )
            sink.set_step("Rendering")
            options = EncodeOptions(
                crf=plan.preset.crf,
                codec=self.settings.render_video_codec,
                x264_preset=self.settings.render_x264_preset,
                concurrency=self.settings.render_concurrency,
                audio_codec=self.settings.render_audio_codec,
                audio_bitrate=self.settings.render_audio_bitrate,
            )
            await self.engine.render_media(
                composition,
                bundle,
                input_props,
                output_path,
                options,
                progress=sink,
                cancel_check=cancel_check,
            )
            size_bytes = output_path.stat().st_size
            succeeded = True
        finally:
            cleanup_render_files(staged, None if succeeded else output_path)

        return RenderArtifact(
            path=output_path,
            size_bytes=size_bytes,
            duration_in_frames=plan.duration_in_frames,
            fps=plan.preset.fps,
            width=plan.preset.width,
            height=plan.preset.height,
            elapsed_ms=int((time.monotonic() - started) * 1000),
        )

    async def _render_still(
        self,
        request: RenderRequest,
        plan: RenderPlan,
        sink: ProgressSink,
    ) -> Path:
        output_path = self.artifacts.new_artifact_path("still", "png")
        # Captions only; the source video is not needed for a preview frame
        staged = StagedMedia(path="", is_temporary=False)
        succeeded = False
        try:
            bundle, composition, input_props = await self._resolve(
                request, plan, sink, staged
            )
            sink.set_step("Rendering still")
            await self.engine.render_still(
                composition, bundle, input_props, output_path, self.settings.still_frame
            )
            succeeded = True
        finally:
            cleanup_render_files(staged, None if succeeded else output_path)
        sink.complete()
        return output_path
