"""
Video decoding using FFmpeg.

Implements the VideoDecoder protocol from core.analysis.frames:
1. Write the upload to a temp file and read its metadata with FFprobe
2. Seek to a timestamp by having FFmpeg decode exactly one frame there
3. Hand the resulting JPEG back as the captured still

Why FFmpeg:
- Handles any container/codec a browser would upload
- Available everywhere (including Docker)
- Keeps us out of native decoder bindings
"""

import asyncio
import json
import logging
import os
import shutil
import subprocess
import tempfile
from typing import Optional

from ...core.analysis.frames import DecodeSession, VideoDecoder, VideoInfo
from ...core.analysis.models import VideoSource
from ...core.errors import ConfigurationError, SourceUnreadable

logger = logging.getLogger(__name__)


class DecodeError(Exception):
    """Raised when FFmpeg fails to land a seek or produce a frame."""
    pass


_SUFFIXES = {
    "video/mp4": ".mp4",
    "video/quicktime": ".mov",
    "video/webm": ".webm",
    "video/x-msvideo": ".avi",
    "video/x-matroska": ".mkv",
}


def parse_ffprobe_output(output: str) -> VideoInfo:
    """
    Parse FFprobe JSON into VideoInfo.

    Duration comes from the container when present, falling back to the
    video stream. A missing duration is reported as 0 (unknown) rather
    than an error; the sampler has a fallback for that.
    """
    try:
        info = json.loads(output)
    except json.JSONDecodeError as e:
        raise SourceUnreadable(f"FFprobe returned invalid JSON: {e}") from e

    video_stream = None
    for stream in info.get("streams", []):
        if stream.get("codec_type") == "video":
            video_stream = stream
            break

    if not video_stream:
        raise SourceUnreadable("No video stream found")

    # fps can be a fraction like "30000/1001"
    fps_str = video_stream.get("r_frame_rate", "0/1")
    try:
        if "/" in fps_str:
            num, denom = fps_str.split("/")
            fps = float(num) / float(denom) if float(denom) else 0.0
        else:
            fps = float(fps_str)
    except ValueError:
        fps = 0.0

    duration = 0.0
    for raw in (info.get("format", {}).get("duration"), video_stream.get("duration")):
        try:
            duration = float(raw)
        except (TypeError, ValueError):
            continue
        if duration > 0:
            break

    return VideoInfo(
        duration_seconds=duration,
        width=int(video_stream.get("width", 0)),
        height=int(video_stream.get("height", 0)),
        fps=fps,
        codec=video_stream.get("codec_name", "unknown"),
    )


class FFmpegDecodeSession:
    """
    One open video on disk plus a scratch directory for frames.

    FFmpeg has no persistent cursor, so a "seek" decodes the single frame
    at the target time into the scratch directory and ``capture`` reads
    it back. Only one seek is ever pending.
    """

    frame_media_type = "image/jpeg"

    def __init__(self, ffmpeg_path: str, video_path: str, workdir: str, info: VideoInfo) -> None:
        self._ffmpeg = ffmpeg_path
        self._video_path = video_path
        self._workdir = workdir
        self._pending: Optional[str] = None
        self._seeks = 0
        self.info = info

    async def seek(self, timestamp: float) -> None:
        output_path = os.path.join(self._workdir, f"frame_{self._seeks:04d}.jpg")
        self._seeks += 1

        # -ss before -i for fast seeking, -q:v 2 for good jpeg quality
        cmd = [
            self._ffmpeg,
            "-ss", f"{timestamp:.3f}",
            "-i", self._video_path,
            "-frames:v", "1",
            "-q:v", "2",
            "-y",
            output_path,
        ]

        try:
            result = await asyncio.to_thread(
                subprocess.run,
                cmd,
                capture_output=True,
                timeout=10,
            )
        except subprocess.TimeoutExpired as e:
            raise DecodeError(f"FFmpeg timed out seeking to {timestamp:.2f}s") from e

        if result.returncode != 0 or not os.path.exists(output_path):
            stderr = result.stderr.decode(errors="replace") if result.stderr else ""
            raise DecodeError(f"FFmpeg could not decode a frame at {timestamp:.2f}s: {stderr[-200:]}")

        self._pending = output_path

    async def capture(self) -> bytes:
        if self._pending is None:
            raise DecodeError("capture called before a seek landed")

        path, self._pending = self._pending, None
        with open(path, "rb") as f:
            data = f.read()
        os.unlink(path)

        if not data:
            raise DecodeError("FFmpeg produced an empty frame")
        return data

    async def close(self) -> None:
        shutil.rmtree(self._workdir, ignore_errors=True)
        logger.debug("Closed decode session", extra={"workdir": self._workdir})


class FFmpegVideoDecoder:
    """
    VideoDecoder backed by the ffmpeg/ffprobe binaries.

    All work happens in a private temp directory per session, removed on
    close() or immediately if opening fails. Missing binaries only fail
    video requests; text and image analysis never touch this class.
    """

    def __init__(self, ffmpeg_path: str = "ffmpeg", ffprobe_path: str = "ffprobe") -> None:
        self._ffmpeg = ffmpeg_path
        self._ffprobe = ffprobe_path

    @property
    def available(self) -> bool:
        return shutil.which(self._ffmpeg) is not None and shutil.which(self._ffprobe) is not None

    async def open(self, video: VideoSource) -> DecodeSession:
        if not self.available:
            raise ConfigurationError(
                f"FFmpeg not found at {self._ffmpeg!r} / {self._ffprobe!r}. "
                "Install with: apt-get install ffmpeg"
            )

        workdir = tempfile.mkdtemp(prefix="detect-")
        video_path = os.path.join(workdir, "source" + _SUFFIXES.get(video.media_type, ".mp4"))

        try:
            with open(video_path, "wb") as f:
                f.write(video.data)

            cmd = [
                self._ffprobe,
                "-v", "quiet",
                "-print_format", "json",
                "-show_format",
                "-show_streams",
                video_path,
            ]

            try:
                result = await asyncio.to_thread(
                    subprocess.run,
                    cmd,
                    capture_output=True,
                    text=True,
                    timeout=30,
                )
            except subprocess.TimeoutExpired as e:
                raise SourceUnreadable("FFprobe timed out") from e

            if result.returncode != 0:
                raise SourceUnreadable(f"FFprobe failed: {result.stderr}")

            info = parse_ffprobe_output(result.stdout)
        except BaseException:
            shutil.rmtree(workdir, ignore_errors=True)
            raise

        logger.info(
            "Opened video",
            extra={
                "video_filename": video.filename,
                "duration": info.duration_seconds,
                "resolution": f"{info.width}x{info.height}",
                "fps": info.fps,
            },
        )
        return FFmpegDecodeSession(self._ffmpeg, video_path, workdir, info)


# minimal 1x1 JPEG
MINIMAL_JPEG = bytes([
    0xFF, 0xD8, 0xFF, 0xE0, 0x00, 0x10, 0x4A, 0x46,
    0x49, 0x46, 0x00, 0x01, 0x01, 0x00, 0x00, 0x01,
    0x00, 0x01, 0x00, 0x00, 0xFF, 0xDB, 0x00, 0x43,
    0x00, 0x08, 0x06, 0x06, 0x07, 0x06, 0x05, 0x08,
    0x07, 0x07, 0x07, 0x09, 0x09, 0x08, 0x0A, 0x0C,
    0x14, 0x0D, 0x0C, 0x0B, 0x0B, 0x0C, 0x19, 0x12,
    0x13, 0x0F, 0x14, 0x1D, 0x1A, 0x1F, 0x1E, 0x1D,
    0x1A, 0x1C, 0x1C, 0x20, 0x24, 0x2E, 0x27, 0x20,
    0x22, 0x2C, 0x23, 0x1C, 0x1C, 0x28, 0x37, 0x29,
    0x2C, 0x30, 0x31, 0x34, 0x34, 0x34, 0x1F, 0x27,
    0x39, 0x3D, 0x38, 0x32, 0x3C, 0x2E, 0x33, 0x34,
    0x32, 0xFF, 0xC0, 0x00, 0x0B, 0x08, 0x00, 0x01,
    0x00, 0x01, 0x01, 0x01, 0x11, 0x00, 0xFF, 0xC4,
    0x00, 0x1F, 0x00, 0x00, 0x01, 0x05, 0x01, 0x01,
    0x01, 0x01, 0x01, 0x01, 0x00, 0x00, 0x00, 0x00,
    0x00, 0x00, 0x00, 0x00, 0x01, 0x02, 0x03, 0x04,
    0x05, 0x06, 0x07, 0x08, 0x09, 0x0A, 0x0B, 0xFF,
    0xC4, 0x00, 0xB5, 0x10, 0x00, 0x02, 0x01, 0x03,
    0x03, 0x02, 0x04, 0x03, 0x05, 0x05, 0x04, 0x04,
    0x00, 0x00, 0x01, 0x7D, 0x01, 0x02, 0x03, 0x00,
    0x04, 0x11, 0x05, 0x12, 0x21, 0x31, 0x41, 0x06,
    0x13, 0x51, 0x61, 0x07, 0x22, 0x71, 0x14, 0x32,
    0x81, 0x91, 0xA1, 0x08, 0x23, 0x42, 0xB1, 0xC1,
    0x15, 0x52, 0xD1, 0xF0, 0x24, 0x33, 0x62, 0x72,
    0x82, 0x09, 0x0A, 0x16, 0x17, 0x18, 0x19, 0x1A,
    0x25, 0x26, 0x27, 0x28, 0x29, 0x2A, 0x34, 0x35,
    0x36, 0x37, 0x38, 0x39, 0x3A, 0x43, 0x44, 0x45,
    0x46, 0x47, 0x48, 0x49, 0x4A, 0x53, 0x54, 0x55,
    0x56, 0x57, 0x58, 0x59, 0x5A, 0x63, 0x64, 0x65,
    0x66, 0x67, 0x68, 0x69, 0x6A, 0x73, 0x74, 0x75,
    0x76, 0x77, 0x78, 0x79, 0x7A, 0x83, 0x84, 0x85,
    0x86, 0x87, 0x88, 0x89, 0x8A, 0x92, 0x93, 0x94,
    0x95, 0x96, 0x97, 0x98, 0x99, 0x9A, 0xA2, 0xA3,
    0xA4, 0xA5, 0xA6, 0xA7, 0xA8, 0xA9, 0xAA, 0xB2,
    0xB3, 0xB4, 0xB5, 0xB6, 0xB7, 0xB8, 0xB9, 0xBA,
    0xC2, 0xC3, 0xC4, 0xC5, 0xC6, 0xC7, 0xC8, 0xC9,
    0xCA, 0xD2, 0xD3, 0xD4, 0xD5, 0xD6, 0xD7, 0xD8,
    0xD9, 0xDA, 0xE1, 0xE2, 0xE3, 0xE4, 0xE5, 0xE6,
    0xE7, 0xE8, 0xE9, 0xEA, 0xF1, 0xF2, 0xF3, 0xF4,
    0xF5, 0xF6, 0xF7, 0xF8, 0xF9, 0xFA, 0xFF, 0xDA,
    0x00, 0x08, 0x01, 0x01, 0x00, 0x00, 0x3F, 0x00,
    0xFB, 0xD3, 0x28, 0xA0, 0x02, 0x8A, 0x28, 0x03,
    0xFF, 0xD9
])


class MockDecodeSession:
    """Decode session that never touches a real video."""

    frame_media_type = "image/jpeg"

    def __init__(self, info: VideoInfo) -> None:
        self.info = info
        self.position: Optional[float] = None
        self.closed = False

    async def seek(self, timestamp: float) -> None:
        self.position = timestamp

    async def capture(self) -> bytes:
        return MINIMAL_JPEG

    async def close(self) -> None:
        self.closed = True


class MockVideoDecoder:
    """
    Mock decoder for local development without FFmpeg.

    Every video is reported as 30 seconds of 1080p and every frame is a
    placeholder JPEG. Useful for exercising the API flow.
    """

    def __init__(self, duration_seconds: float = 30.0) -> None:
        self._duration = duration_seconds
        logger.info("Initialized mock video decoder")

    async def open(self, video: VideoSource) -> DecodeSession:
        return MockDecodeSession(VideoInfo(
            duration_seconds=self._duration,
            width=1920,
            height=1080,
            fps=30.0,
            codec="h264",
        ))


def create_video_decoder(
    mock_mode: bool = False,
    ffmpeg_path: str = "ffmpeg",
    ffprobe_path: str = "ffprobe",
) -> VideoDecoder:
    """
    Factory function for the video decoder.

    Args:
        mock_mode: If True, return mock decoder (no FFmpeg required)
    """
    if mock_mode:
        return MockVideoDecoder()

    return FFmpegVideoDecoder(ffmpeg_path=ffmpeg_path, ffprobe_path=ffprobe_path)
