"""
Video frame sampling.

This module picks evenly spaced stills out of a video so a vision model
can judge the whole clip from a handful of images. Decoding itself is
delegated to a VideoDecoder (FFmpeg in production, fakes in tests), which
keeps the scheduling and failure rules here testable without a video file.

A decode session exposes one cursor. Seeks are therefore issued strictly
one after another: seek, wait for it to land, capture, repeat.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from ..errors import (
    ConfigurationError,
    FrameExtractionFailed,
    InputValidationError,
    SourceUnreadable,
)
from .models import Frame, VideoSource

logger = logging.getLogger(__name__)

# Seeking to exactly 0 is unreliable on some decoders
DEFAULT_SEEK_OFFSET = 0.01


@dataclass(frozen=True)
class VideoInfo:
    """Technical information about an opened video."""
    duration_seconds: float
    width: int
    height: int
    fps: float = 0.0
    codec: str = "unknown"

    @property
    def has_known_duration(self) -> bool:
        d = self.duration_seconds
        return d is not None and math.isfinite(d) and d > 0


class DecodeSession(Protocol):
    """An open decode cursor on one video."""

    info: VideoInfo
    frame_media_type: str

    async def seek(self, timestamp: float) -> None:
        """Move the cursor; returns once the seek has landed."""
        ...

    async def capture(self) -> bytes:
        """Encode the still at the current cursor position."""
        ...

    async def close(self) -> None:
        """Release temp files, subprocess handles, etc."""
        ...


class VideoDecoder(Protocol):
    """Something that can open a video for seeking."""

    async def open(self, video: VideoSource) -> DecodeSession:
        ...


class SamplerState(Enum):
    """Where a sampling run is in its seek/capture cycle."""
    IDLE = "idle"
    SEEKING = "seeking"
    CAPTURED = "captured"
    DONE = "done"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Schedule
# ---------------------------------------------------------------------------

def compute_sample_timestamps(
    duration: float,
    frame_count: int,
    offset: float = DEFAULT_SEEK_OFFSET,
) -> list[float]:
    """
    Timestamps to seek to, in order.

    Evenly spaced at ``duration / frame_count`` starting from ``offset``.
    Stops early rather than seeking past the end, so a short list is a
    normal result. A zero or unknown duration yields a single timestamp:
    with no interval every seek would land on the same instant, and we
    never return the same moment twice.
    """
    if frame_count < 1:
        raise InputValidationError("Frame count must be at least 1.")

    known = duration is not None and math.isfinite(duration) and duration > 0
    if not known:
        return [offset]

    interval = duration / frame_count
    first = min(offset, duration)

    timestamps = []
    for i in range(frame_count):
        ts = first + i * interval
        if ts > duration:
            break
        timestamps.append(ts)

    return timestamps


# ---------------------------------------------------------------------------
# Sampler
# ---------------------------------------------------------------------------

class FrameSampler:
    """
    Captures evenly spaced frames from a video.

    Stateless between calls: every sample() opens a fresh decode session
    and closes it before returning, whatever the outcome.

    ``keep_partial_frames`` decides what happens when a seek or capture
    fails partway through. By default the frames captured so far are
    discarded and FrameExtractionFailed is raised, so a short and
    unrepresentative set is never sent for analysis.
    """

    def __init__(
        self,
        decoder: VideoDecoder,
        seek_offset: float = DEFAULT_SEEK_OFFSET,
        keep_partial_frames: bool = False,
    ) -> None:
        self._decoder = decoder
        self._seek_offset = seek_offset
        self._keep_partial = keep_partial_frames

    async def sample(self, video: VideoSource, frame_count: int) -> list[Frame]:
        """Return up to ``frame_count`` frames ordered by timestamp."""
        if frame_count < 1:
            raise InputValidationError("Frame count must be at least 1.")

        try:
            session = await self._decoder.open(video)
        except (SourceUnreadable, ConfigurationError):
            raise
        except Exception as e:
            logger.error(
                "Could not open video for sampling",
                extra={"video_filename": video.filename, "error": str(e)},
            )
            raise SourceUnreadable(f"Could not read video metadata: {e}") from e

        try:
            return await self._run(session, frame_count)
        finally:
            await session.close()

    async def _run(self, session: DecodeSession, frame_count: int) -> list[Frame]:
        info = session.info
        timestamps = compute_sample_timestamps(
            info.duration_seconds, frame_count, self._seek_offset
        )

        if not info.has_known_duration:
            logger.info(
                "Video duration unknown, falling back to a single frame",
                extra={"duration": info.duration_seconds},
            )

        frames: list[Frame] = []
        state = SamplerState.IDLE

        for i, ts in enumerate(timestamps):
            try:
                state = SamplerState.SEEKING
                await session.seek(ts)
                data = await session.capture()
                state = SamplerState.CAPTURED
            except Exception as e:
                return self._handle_failure(frames, ts, state, e)

            frames.append(Frame(
                data=data,
                media_type=session.frame_media_type,
                timestamp_seconds=ts,
                frame_number=i,
            ))

        state = SamplerState.DONE
        logger.info(
            "Sampled video frames",
            extra={
                "requested": frame_count,
                "captured": len(frames),
                "duration": info.duration_seconds,
                "state": state.value,
            },
        )
        return frames

    def _handle_failure(
        self,
        frames: list[Frame],
        timestamp: float,
        state: SamplerState,
        error: Exception,
    ) -> list[Frame]:
        logger.error(
            "Frame extraction failed",
            extra={
                "timestamp": timestamp,
                "captured": len(frames),
                "failed_in": state.value,
                "state": SamplerState.FAILED.value,
                "error": str(error),
            },
        )

        if self._keep_partial and frames:
            logger.warning(
                "Returning partial frame set",
                extra={"captured": len(frames)},
            )
            return frames

        raise FrameExtractionFailed(
            f"Decode error at {timestamp:.2f}s: {error}"
        ) from error
