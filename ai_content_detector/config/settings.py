"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Mock mode for video enables local development without FFmpeg.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like api_keys), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "AI Content Detector API"
    api_version: str = "v1"
    api_keys: str = Field(
        default="dev-key-1",
        description="Comma-separated API keys accepted in the X-API-Key header."
    )

    # Anthropic Configuration
    anthropic_api_key: str = Field(
        default="",
        description="Claude API key. Required; the service refuses to start without it."
    )
    anthropic_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Vision-capable Claude model used for all three modes."
    )
    anthropic_max_tokens: int = Field(
        default=2048,
        description="Max tokens for the verdict reply."
    )
    anthropic_temperature: float = Field(
        default=0.2,
        description="Sampling temperature. Kept low so repeated runs agree."
    )

    # Frame Sampling
    video_frame_count: int = Field(
        default=5,
        description="Frames sampled from a video when the request doesn't say."
    )
    max_frame_count: int = Field(
        default=20,
        description="Upper bound on frames a request may ask for. Limits payload size and cost."
    )
    seek_offset_seconds: float = Field(
        default=0.01,
        description="Where the first seek lands. Seeking to exactly 0 is unreliable."
    )
    keep_partial_frames: bool = Field(
        default=False,
        description="On a mid-sequence decode error, analyze the frames captured so far instead of failing."
    )
    ffmpeg_path: str = Field(default="ffmpeg", description="Path to ffmpeg binary")
    ffprobe_path: str = Field(default="ffprobe", description="Path to ffprobe binary")
    video_mock_mode: bool = Field(
        default=False,
        description="Use a mock decoder instead of FFmpeg. Enables local dev without video tooling."
    )

    # Application Behavior
    max_upload_size_mb: int = Field(
        default=100,
        description="Maximum image/video upload size in MB."
    )
    max_text_length: int = Field(
        default=50_000,
        description="Maximum characters accepted for text analysis."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:5173,http://localhost:3000",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def api_keys_list(self) -> list[str]:
        """Parse comma-separated API keys into a list."""
        return [key.strip() for key in self.api_keys.split(",") if key.strip()]

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    def validate_required_fields(self) -> list[str]:
        """
        Return the names of required settings that are missing.

        Separate from Pydantic validation so the service can report every
        gap at once, and so health checks can reuse it.
        """
        missing = []

        if not self.anthropic_api_key:
            missing.append("ANTHROPIC_API_KEY")

        if not self.api_keys_list:
            missing.append("API_KEYS")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    For tests, you can call get_settings.cache_clear() to reset.
    """
    return Settings()
