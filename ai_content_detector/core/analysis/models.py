"""
Domain models for content detection.

These models represent the core concepts: what the user submits and what
the model concludes about it. They have no dependencies on FastAPI, the
Anthropic SDK, or FFmpeg. All of them are transient values; nothing here
is persisted.
"""

import base64
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class InputMode(Enum):
    """What kind of content is being analyzed."""
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"


class Determination(Enum):
    """
    The classification outcomes the prompts ask the model for.

    Verdicts keep the model's string as-is; this enum is only for callers
    that want to match against the known values.
    """
    AI_GENERATED = "Likely AI-Generated"
    HUMAN_GENERATED = "Likely Human-Generated"
    INCONCLUSIVE = "Inconclusive"


@dataclass(frozen=True)
class Verdict:
    """
    The structured result of one analysis request.

    Built all-or-nothing by the response extractor. ``confidence`` is
    meant to be 0-100 but is not clamped, and ``determination`` is not
    checked against the Determination values.
    """
    determination: str
    confidence: Union[int, float]
    rationale: str

    @property
    def known_determination(self) -> Optional[Determination]:
        """The matching Determination, or None if the model went off-script."""
        try:
            return Determination(self.determination)
        except ValueError:
            return None

    @property
    def confidence_band(self) -> str:
        """Coarse bucket used when rendering the confidence score."""
        if self.confidence > 75:
            return "high"
        if self.confidence > 50:
            return "medium"
        return "low"

    def to_dict(self) -> dict:
        return {
            "determination": self.determination,
            "confidence": self.confidence,
            "rationale": self.rationale,
        }


@dataclass(frozen=True)
class Frame:
    """
    A still image sampled from a video.

    Frozen because frames are values. Once captured, a frame belongs to
    whoever received it from the sampler.
    """
    data: bytes
    media_type: str
    timestamp_seconds: float
    frame_number: int

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    @property
    def timestamp_formatted(self) -> str:
        """Human-readable timestamp."""
        minutes = int(self.timestamp_seconds // 60)
        seconds = self.timestamp_seconds % 60
        return f"{minutes:02d}:{seconds:05.2f}"


@dataclass(frozen=True)
class VideoSource:
    """Caller-supplied video bytes and their declared media type."""
    data: bytes
    media_type: str
    filename: str = ""

    @property
    def size_bytes(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class InlineImage:
    """An image sent inline with a model request."""
    data: bytes
    media_type: str

    @classmethod
    def from_frame(cls, frame: Frame) -> "InlineImage":
        return cls(data=frame.data, media_type=frame.media_type)

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")
