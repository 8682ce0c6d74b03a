"""Application configuration using Pydantic settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # OpenAI Configuration (evaluation agents)
    openai_api_key: str = ""  # Empty means agents fail fast with a config error
    openai_model: str = "gpt-4.1-mini"
    openai_audio_model: str = "gpt-4o-audio-preview"
    openai_transcription_model: str = "whisper-1"
    llm_temperature: float = 0.2
    max_tokens: int = 2048

    # ElevenLabs speech-to-text
    elevenlabs_api_key: str = ""
    elevenlabs_stt_endpoint: str = "https://api.elevenlabs.io/v1/speech-to-text"
    elevenlabs_stt_model: str = "scribe_v2"
    stt_language: Optional[str] = None
    stt_timeout_seconds: int = 120

    # Job persistence
    job_store_backend: Literal["file", "redis"] = "file"
    data_dir: Path = Path(".data")
    redis_url: str = "redis://localhost:6379/0"
    result_ttl_seconds: int = 0  # 0 keeps redis records forever

    # Prompts
    prompt_dir: Optional[Path] = None  # Optional <name>.txt overrides

    # Retry policy for provider calls
    retry_attempts: int = 3
    retry_base_delay_seconds: float = 1.0

    # Timeouts
    audio_analysis_max_wait_seconds: float = 60
    evaluation_timeout_seconds: float = 0  # 0 disables the per-job timeout
    shutdown_drain_seconds: float = 10.0

    # Media tooling
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"

    # Logging
    log_level: str = "INFO"

    @property
    def jobs_dir(self) -> Path:
        return self.data_dir / "jobs"

    @property
    def results_dir(self) -> Path:
        return self.data_dir / "results"

    @property
    def uploads_dir(self) -> Path:
        return self.data_dir / "uploads"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
