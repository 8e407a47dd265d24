"""
Video decoding infrastructure.

Handles server-side decoding using FFmpeg:
- Video metadata extraction
- Single-frame decoding at a requested timestamp

Implements the VideoDecoder protocol the frame sampler drives.
"""

from .processor import (
    FFmpegVideoDecoder,
    MockVideoDecoder,
    create_video_decoder,
)

__all__ = [
    "FFmpegVideoDecoder",
    "MockVideoDecoder",
    "create_video_decoder",
]
