"""
Content analysis logic.

Contains the detector service, domain models, the reply extractor, and
frame sampling.
"""

from .models import (
    Determination,
    Frame,
    InlineImage,
    InputMode,
    Verdict,
    VideoSource,
)
from .extractor import ResponseExtractor, extract_verdict
from .frames import FrameSampler, VideoInfo, compute_sample_timestamps
from .detector import ContentDetector, VisionModelClient

__all__ = [
    "Determination",
    "Frame",
    "InlineImage",
    "InputMode",
    "Verdict",
    "VideoSource",
    "ResponseExtractor",
    "extract_verdict",
    "FrameSampler",
    "VideoInfo",
    "compute_sample_timestamps",
    "ContentDetector",
    "VisionModelClient",
]
