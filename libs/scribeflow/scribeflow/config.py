"""Configuration management using pydantic-settings."""

from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from scribeflow.exceptions import ConfigurationError

_ENV_FILES = (".env", "../.env", "../../.env")

_REPO_ROOT = Path(__file__).resolve().parents[3]

MAX_SEGMENT_BYTES = 25 * 1024 * 1024


def _resolve_repo_path(value: str) -> str:
    raw = str(value or "").strip()
    if not raw:
        return raw
    p = Path(raw)
    if p.is_absolute():
        return str(p)
    return str((_REPO_ROOT / p).resolve())


class TranscriptionConfig(BaseSettings):
    """Remote speech-to-text provider configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TRANSCRIPTION_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    provider: str = "openai_whisper"
    base_url: str = "https://api.groq.com/openai/v1"
    api_key: str = ""
    model: str = "whisper-large-v3-turbo"
    language: str | None = "nl"
    prompt: str | None = None
    temperature: float = Field(default=0.0, ge=0, le=1)
    response_format: str = "verbose_json"
    timeout: float = Field(default=120.0, gt=0)  # HTTP timeout per request (seconds)


class SegmentationConfig(BaseSettings):
    """How oversized recordings are cut into segments."""

    model_config = SettingsConfigDict(
        env_prefix="SEGMENTATION_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_segment_bytes: int = Field(default=MAX_SEGMENT_BYTES, ge=1)
    min_segment_duration_s: float = Field(default=30.0, gt=0)
    fallback_chunk_duration_s: float = Field(
        default=30.0,
        gt=0,
        description="Assumed duration used to estimate timing of byte-chunked segments.",
    )
    decoder: Literal["ffmpeg", "wav", "none"] = "ffmpeg"
    ffmpeg_bin: str = "ffmpeg"
    sample_rate: int = Field(default=16000, ge=1000)
    channels: int = Field(default=1, ge=1, le=2)


class QueueConfig(BaseSettings):
    """Bounded-concurrency job queue configuration."""

    model_config = SettingsConfigDict(
        env_prefix="QUEUE_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_concurrent: int = Field(default=2, ge=1)
    base_retry_delay_s: float = Field(default=2.0, ge=0)
    max_retries: int = Field(default=3, ge=0)
    backoff: Literal["linear", "exponential_jitter"] = "linear"
    max_backoff_s: float = Field(default=60.0, gt=0)
    job_timeout_s: float | None = Field(
        default=None,
        description="Per-attempt timeout (seconds). None leaves remote calls unbounded.",
    )
    classify_errors: bool = False

    @model_validator(mode="after")
    def _validate_timeout(self) -> "QueueConfig":
        if self.job_timeout_s is not None and float(self.job_timeout_s) <= 0:
            raise ConfigurationError("QUEUE_JOB_TIMEOUT_S must be > 0 when set")
        return self


class PipelineConfig(BaseSettings):
    """Segment pipeline execution mode."""

    model_config = SettingsConfigDict(
        env_prefix="PIPELINE_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    mode: Literal["sequential", "queue"] = "sequential"


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt: str = "%Y-%m-%d %H:%M:%S"
    console: bool = True
    file: str | None = None
    max_bytes: int = Field(default=10 * 1024 * 1024, ge=0)
    backup_count: int = Field(default=5, ge=0)
    quiet_loggers: list[str] = Field(
        default_factory=lambda: ["httpx", "httpcore"],
        description="Third-party loggers capped at WARNING (httpx logs every request at INFO).",
    )


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILES, env_file_encoding="utf-8", extra="ignore"
    )

    log_dir: str = "./logs"

    transcription: TranscriptionConfig = TranscriptionConfig()
    segmentation: SegmentationConfig = SegmentationConfig()
    queue: QueueConfig = QueueConfig()
    pipeline: PipelineConfig = PipelineConfig()

    logging: LoggingSettings = LoggingSettings()

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        self.log_dir = _resolve_repo_path(self.log_dir)
        return self

    @property
    def max_segment_bytes(self) -> int:
        return int(self.segmentation.max_segment_bytes)

    @property
    def uses_queue(self) -> bool:
        return self.pipeline.mode == "queue"
