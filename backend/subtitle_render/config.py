import json
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SUBTITLE_RENDER_",
        extra="ignore",
    )

    # Application
    app_name: str = "Subtitle Render API"
    app_version: str = "0.1.0"
    git_hash: str = "unknown"  # Set via SUBTITLE_RENDER_GIT_HASH at build time
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3001

    # CORS - stored as string, parsed via computed property
    cors_origins_raw: str = "http://localhost:3000,http://localhost:5173"

    @computed_field
    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from pipe/comma-separated string or JSON array."""
        v = self.cors_origins_raw
        if v.startswith("["):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        if "|" in v:
            return [origin.strip() for origin in v.split("|") if origin.strip()]
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    # Directories
    output_dir: Path = Path("output")
    # Staged uploads never live under output_dir, which is served over HTTP
    staging_dir: Path = Path("staging")

    # FFmpeg
    ffmpeg_path: str = "ffmpeg"

    # Render engine
    render_entry_point: str = "subtitle_render.render.compositions"
    render_composition_id: str = "SubtitleVideo"
    render_video_codec: str = "libx264"
    render_x264_preset: str = "veryfast"
    render_audio_codec: str = "aac"
    render_audio_bitrate: str = "192k"
    # Encoder threads per render (engine-internal parallelism)
    render_concurrency: int = 2
    # Renders allowed to run at the same time across all requests
    render_max_concurrent_jobs: int = 2
    render_timeout_seconds: float = 1800.0
    render_fallback_duration_s: float = 30.0
    # Font file for captions; fontconfig lookup by family name when unset
    caption_font_file: str | None = None
    # Still preview frame (test render)
    still_frame: int = 30
    still_fps: int = 30


@lru_cache
def get_settings() -> Settings:
    return Settings()
