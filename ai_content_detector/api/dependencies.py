"""
FastAPI dependency injection.

Dependencies provide instances of services, clients, and configuration
to route handlers. Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- Dependencies can be overridden in tests via app.dependency_overrides
- Configuration is centralized

Each dependency is a function that FastAPI calls when needed.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from ..config.settings import Settings, get_settings
from ..core.analysis.detector import ContentDetector
from ..core.analysis.frames import FrameSampler
from ..infrastructure.anthropic.client import create_anthropic_client
from ..infrastructure.video.processor import create_video_decoder

logger = logging.getLogger(__name__)

# API Key security scheme
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)

# One detector per process so its single-flight lock covers every request
_detector: Optional[ContentDetector] = None


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def verify_api_key(
    settings: Annotated[Settings, Depends(get_settings)],
    api_key: str = Security(api_key_header),
) -> str:
    """
    Validate the pre-issued API key from the request header.

    Raises 403 if key is invalid or missing.
    """
    if not api_key:
        logger.warning("Request missing API key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="API key required. Provide X-API-Key header.",
        )

    if api_key not in settings.api_keys_list:
        logger.warning(
            "Invalid API key attempt",
            extra={"key_prefix": api_key[:8]}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )

    return api_key


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def build_detector(settings: Settings) -> ContentDetector:
    """
    Wire a ContentDetector from settings.

    The model credential is handed to the client here; a missing key
    raises ConfigurationError before any request can be attempted.
    """
    vision_client = create_anthropic_client(
        api_key=settings.anthropic_api_key,
        model=settings.anthropic_model,
        max_tokens=settings.anthropic_max_tokens,
        temperature=settings.anthropic_temperature,
    )

    decoder = create_video_decoder(
        mock_mode=settings.video_mock_mode,
        ffmpeg_path=settings.ffmpeg_path,
        ffprobe_path=settings.ffprobe_path,
    )

    sampler = FrameSampler(
        decoder=decoder,
        seek_offset=settings.seek_offset_seconds,
        keep_partial_frames=settings.keep_partial_frames,
    )

    return ContentDetector(
        vision_client=vision_client,
        frame_sampler=sampler,
        video_frame_count=settings.video_frame_count,
        max_text_length=settings.max_text_length,
    )


def get_detector(
    settings: Annotated[Settings, Depends(get_settings)],
) -> ContentDetector:
    """Provide the shared ContentDetector, building it on first use."""
    global _detector

    if _detector is None:
        _detector = build_detector(settings)
        logger.info(
            "Created ContentDetector",
            extra={
                "model": settings.anthropic_model,
                "video_mock_mode": settings.video_mock_mode,
            }
        )

    return _detector


def reset_detector() -> None:
    """Drop the shared detector (used on shutdown and in tests)."""
    global _detector
    _detector = None


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

AuthenticatedUser = Annotated[str, Depends(verify_api_key)]
DetectorDep = Annotated[ContentDetector, Depends(get_detector)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
