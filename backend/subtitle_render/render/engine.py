"""FFmpeg render engine.

The orchestrator talks to the engine through three calls:

1. ``bundle()`` loads the composition entry point once and prepares a
   reusable bundle directory (expensive, cached by BundleCache)
2. ``select_composition()`` resolves a composition by id and validates the
   input properties against the composition's schema
3. ``render_media()`` / ``render_still()`` run FFmpeg with the resolved
   composition, reporting progress and honouring cancellation
"""

import asyncio
import importlib
import json
import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import BaseModel, ValidationError

from subtitle_render.config import get_settings
from subtitle_render.exceptions import (
    CompositionInputError,
    CompositionNotFoundError,
    RenderCancelledError,
    RenderFailedError,
)
from subtitle_render.render.compositions import Composition

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]
CancelCheck = Callable[[], bool]

# Lines of FFmpeg stderr kept in error messages
STDERR_TAIL_LINES = 20


@dataclass(frozen=True)
class BundleHandle:
    """A built render bundle: loaded compositions plus a prepared directory."""

    serve_dir: Path
    entry_point: str
    compositions: dict[str, Composition]
    ffmpeg_version: str
    built_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def composition_ids(self) -> list[str]:
        return sorted(self.compositions)


@dataclass(frozen=True)
class EncodeOptions:
    """Encoder settings for a video render."""

    crf: int
    codec: str = "libx264"
    x264_preset: str = "veryfast"
    concurrency: int = 2
    audio_codec: str = "aac"
    audio_bitrate: str = "192k"


class FFmpegRenderEngine:
    """Renders compositions with FFmpeg."""

    def __init__(self, ffmpeg_path: Optional[str] = None, font_file: Optional[str] = None):
        settings = get_settings()
        self.ffmpeg_path = ffmpeg_path or settings.ffmpeg_path
        self.font_file = font_file if font_file is not None else settings.caption_font_file

    # ========================================================================
    # Bundle
    # ========================================================================

    async def bundle(self, entry_point: str) -> BundleHandle:
        """Load compositions from ``entry_point`` and prepare a bundle directory.

        Raises:
            ImportError: If the entry point cannot be imported.
            RuntimeError: If it defines no compositions or FFmpeg is unusable.
        """
        logger.info(f"[BUNDLE] Bundling render entry point {entry_point} (cold start)")

        module = importlib.import_module(entry_point)
        get_compositions = getattr(module, "get_compositions", None)
        if get_compositions is None:
            raise RuntimeError(f"Entry point {entry_point} has no get_compositions()")

        compositions: dict[str, Composition] = {}
        for composition in get_compositions():
            if composition.id in compositions:
                raise RuntimeError(f"Duplicate composition id: {composition.id}")
            compositions[composition.id] = composition
        if not compositions:
            raise RuntimeError(f"Entry point {entry_point} defines no compositions")

        ffmpeg_version = await self._probe_ffmpeg()

        serve_dir = Path(tempfile.mkdtemp(prefix="subtitle_render_bundle_"))
        manifest = {
            "entry_point": entry_point,
            "ffmpeg_version": ffmpeg_version,
            "compositions": [c.to_manifest() for c in compositions.values()],
        }
        (serve_dir / "manifest.json").write_text(json.dumps(manifest, indent=2))

        logger.info(
            f"[BUNDLE] Bundle ready at {serve_dir}: "
            f"{', '.join(sorted(compositions))} ({ffmpeg_version})"
        )
        return BundleHandle(
            serve_dir=serve_dir,
            entry_point=entry_point,
            compositions=compositions,
            ffmpeg_version=ffmpeg_version,
        )

    def release_bundle(self, bundle: BundleHandle) -> None:
        """Remove the bundle directory."""
        shutil.rmtree(bundle.serve_dir, ignore_errors=True)
        logger.info(f"[BUNDLE] Released bundle {bundle.serve_dir}")

    async def _probe_ffmpeg(self) -> str:
        """Return FFmpeg's version line, checking that drawtext is available."""
        version_out = await self._run_capture([self.ffmpeg_path, "-hide_banner", "-version"])
        version_line = version_out.splitlines()[0] if version_out else "ffmpeg (unknown version)"

        filters_out = await self._run_capture([self.ffmpeg_path, "-hide_banner", "-filters"])
        if " drawtext " not in filters_out:
            raise RuntimeError("FFmpeg was built without the drawtext filter")
        return version_line

    async def _run_capture(self, cmd: list[str]) -> str:
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise RuntimeError(f"FFmpeg not found at {self.ffmpeg_path}") from e
        stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            raise RuntimeError(
                f"{' '.join(cmd)} failed: {stderr.decode('utf-8', errors='replace').strip()}"
            )
        return stdout.decode("utf-8", errors="replace")

    # ========================================================================
    # Compositions
    # ========================================================================

    async def select_composition(
        self,
        bundle: BundleHandle,
        composition_id: str,
        input_props: dict[str, Any],
    ) -> Composition:
        """Resolve a composition and validate input properties against it.

        Raises:
            CompositionNotFoundError: Unknown composition id.
            CompositionInputError: Props rejected by the composition schema.
        """
        composition = bundle.compositions.get(composition_id)
        if composition is None:
            raise CompositionNotFoundError(composition_id, bundle.composition_ids)
        self.validate_props(composition, input_props)
        return composition

    def validate_props(self, composition: Composition, input_props: dict[str, Any]) -> BaseModel:
        try:
            return composition.props_model.model_validate(input_props)
        except ValidationError as e:
            errors = e.errors()
            first = errors[0] if errors else {}
            loc = ".".join(str(x) for x in first.get("loc", []))
            msg = first.get("msg", "invalid input")
            raise CompositionInputError(
                f"Invalid input for composition {composition.id}: {loc}: {msg}"
                if loc
                else f"Invalid input for composition {composition.id}: {msg}"
            ) from e

    # ========================================================================
    # Rendering
    # ========================================================================

    def build_input_args(self, composition: Composition, props: BaseModel) -> list[str]:
        video_src = getattr(props, "video_src", "")
        if video_src:
            return ["-i", video_src]
        color = (
            f"color=c=black:s={composition.width}x{composition.height}"
            f":r={composition.fps}:d={composition.duration_s:.3f}"
        )
        return ["-f", "lavfi", "-i", color]

    def build_render_command(
        self,
        composition: Composition,
        props: BaseModel,
        filter_script: str,
        output_path: str,
        options: EncodeOptions,
    ) -> list[str]:
        """Build the FFmpeg command for a full video render without executing it."""
        has_audio_source = bool(getattr(props, "video_src", ""))
        cmd = [
            self.ffmpeg_path,
            "-y",
            "-hide_banner",
            "-loglevel", "error",
            *self.build_input_args(composition, props),
            "-filter_complex_script", filter_script,
            "-map", "[vout]",
        ]
        if has_audio_source:
            cmd.extend([
                "-map", "0:a?",
                "-c:a", options.audio_codec,
                "-b:a", options.audio_bitrate,
            ])
        cmd.extend([
            "-c:v", options.codec,
            "-preset", options.x264_preset,
            "-crf", str(options.crf),
            "-threads", str(options.concurrency),
            "-r", str(composition.fps),
            "-frames:v", str(composition.duration_in_frames),
            "-t", f"{composition.duration_s:.6f}",
            "-pix_fmt", "yuv420p",
            "-movflags", "+faststart",
            "-progress", "pipe:1",
            "-nostats",
            output_path,
        ])
        return cmd

    def build_still_command(
        self,
        composition: Composition,
        props: BaseModel,
        filter_script: str,
        output_path: str,
        frame: int,
    ) -> list[str]:
        """Build the FFmpeg command that writes a single frame as PNG."""
        seek_s = frame / composition.fps
        return [
            self.ffmpeg_path,
            "-y",
            "-hide_banner",
            "-loglevel", "error",
            *self.build_input_args(composition, props),
            "-filter_complex_script", filter_script,
            "-map", "[vout]",
            "-ss", f"{seek_s:.6f}",
            "-frames:v", "1",
            "-update", "1",
            output_path,
        ]

    async def render_media(
        self,
        composition: Composition,
        bundle: BundleHandle,
        input_props: dict[str, Any],
        output_path: Path,
        options: EncodeOptions,
        progress: Optional[ProgressCallback] = None,
        cancel_check: Optional[CancelCheck] = None,
    ) -> Path:
        """Render the composition to ``output_path``.

        Raises:
            RenderFailedError: FFmpeg failed or could not be started.
            RenderCancelledError: ``cancel_check`` asked to stop.
        """
        props = self.validate_props(composition, input_props)
        work_dir = Path(tempfile.mkdtemp(prefix=f"{composition.id}_", dir=bundle.serve_dir))
        try:
            filter_script = self._write_filter_script(composition, props, work_dir)
            cmd = self.build_render_command(
                composition, props, str(filter_script), str(output_path), options
            )
            logger.info(
                f"[RENDER] Rendering {composition.id}: {composition.width}x{composition.height} "
                f"@{composition.fps}fps, {composition.duration_in_frames} frames, "
                f"crf={options.crf}, preset={options.x264_preset} -> {output_path}"
            )
            await self._run_ffmpeg(
                cmd,
                total_frames=composition.duration_in_frames,
                progress=progress,
                cancel_check=cancel_check,
            )
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)

        if progress:
            progress(1.0)
        return output_path

    async def render_still(
        self,
        composition: Composition,
        bundle: BundleHandle,
        input_props: dict[str, Any],
        output_path: Path,
        frame: int,
    ) -> Path:
        """Render a single frame of the composition to a PNG file."""
        props = self.validate_props(composition, input_props)
        frame = min(max(frame, 0), composition.duration_in_frames - 1)
        work_dir = Path(tempfile.mkdtemp(prefix=f"{composition.id}_still_", dir=bundle.serve_dir))
        try:
            filter_script = self._write_filter_script(composition, props, work_dir)
            cmd = self.build_still_command(
                composition, props, str(filter_script), str(output_path), frame
            )
            logger.info(f"[RENDER] Rendering still frame {frame} of {composition.id} -> {output_path}")
            await self._run_ffmpeg(cmd, total_frames=1)
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)
        return output_path

    def _write_filter_script(
        self, composition: Composition, props: BaseModel, work_dir: Path
    ) -> Path:
        filter_graph = composition.build_filter(props, composition, font_file=self.font_file)
        script_path = work_dir / "filter_complex.txt"
        script_path.write_text(filter_graph, encoding="utf-8")
        logger.debug(f"[RENDER] filter_complex:\n{filter_graph}")
        return script_path

    async def _run_ffmpeg(
        self,
        cmd: list[str],
        total_frames: int,
        progress: Optional[ProgressCallback] = None,
        cancel_check: Optional[CancelCheck] = None,
    ) -> None:
        """Run FFmpeg, streaming ``-progress`` output into ``progress``.

        The process is killed if the caller is cancelled or ``cancel_check``
        returns True.
        """
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise RenderFailedError(f"FFmpeg not found at {self.ffmpeg_path}") from e

        stderr_task = asyncio.ensure_future(proc.stderr.read())
        cancelled = False
        try:
            async for raw_line in proc.stdout:
                line = raw_line.decode("utf-8", errors="replace").strip()
                if line.startswith("frame=") and progress and total_frames > 0:
                    try:
                        frame = int(line.split("=", 1)[1])
                    except ValueError:
                        continue
                    progress(min(1.0, frame / total_frames))
                if cancel_check is not None and cancel_check():
                    cancelled = True
                    break

            if cancelled:
                logger.info("[RENDER] Render cancelled, stopping FFmpeg")
                await self._terminate(proc)
                raise RenderCancelledError()

            returncode = await proc.wait()
            stderr_output = (await stderr_task).decode("utf-8", errors="replace")
        finally:
            if proc.returncode is None:
                await self._terminate(proc)
            if not stderr_task.done():
                stderr_task.cancel()

        if returncode != 0:
            tail = "\n".join(stderr_output.strip().splitlines()[-STDERR_TAIL_LINES:])
            logger.error(f"[RENDER] FFmpeg exited with code {returncode}: {tail}")
            raise RenderFailedError(f"FFmpeg exited with code {returncode}: {tail}")

    async def _terminate(self, proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is None:
            proc.kill()
        await proc.wait()
