"""
Unit tests for the FFmpeg decoder glue.

FFmpeg itself isn't invoked here; these cover FFprobe output parsing,
the capture bookkeeping, and the mock decoder used in local dev.
"""

import json
import os

import pytest

from ai_content_detector.core.analysis.frames import FrameSampler, VideoInfo
from ai_content_detector.core.errors import ConfigurationError, SourceUnreadable
from ai_content_detector.infrastructure.video.processor import (
    MINIMAL_JPEG,
    DecodeError,
    FFmpegDecodeSession,
    FFmpegVideoDecoder,
    MockVideoDecoder,
    create_video_decoder,
    parse_ffprobe_output,
)


def _probe(streams, fmt=None) -> str:
    return json.dumps({"streams": streams, "format": fmt or {}})


class TestParseFfprobeOutput:

    def test_reads_stream_details(self):
        output = _probe(
            [
                {"codec_type": "audio", "codec_name": "aac"},
                {
                    "codec_type": "video",
                    "codec_name": "h264",
                    "width": 1280,
                    "height": 720,
                    "r_frame_rate": "30000/1001",
                },
            ],
            {"duration": "12.5"},
        )

        info = parse_ffprobe_output(output)

        assert info.duration_seconds == 12.5
        assert (info.width, info.height) == (1280, 720)
        assert info.fps == pytest.approx(29.97, abs=0.01)
        assert info.codec == "h264"

    def test_falls_back_to_stream_duration(self):
        output = _probe([{"codec_type": "video", "duration": "4.0", "r_frame_rate": "25/1"}])
        assert parse_ffprobe_output(output).duration_seconds == 4.0

    def test_missing_duration_is_zero(self):
        """WebM from MediaRecorder often has no duration; that's not fatal."""
        output = _probe([{"codec_type": "video", "r_frame_rate": "25/1"}], {"duration": "N/A"})
        assert parse_ffprobe_output(output).duration_seconds == 0.0

    def test_no_video_stream_is_unreadable(self):
        with pytest.raises(SourceUnreadable, match="No video stream"):
            parse_ffprobe_output(_probe([{"codec_type": "audio"}]))

    def test_invalid_json_is_unreadable(self):
        with pytest.raises(SourceUnreadable):
            parse_ffprobe_output("not json")


class TestFFmpegDecodeSession:

    @pytest.fixture
    def session(self, tmp_path) -> FFmpegDecodeSession:
        info = VideoInfo(duration_seconds=1.0, width=1, height=1)
        return FFmpegDecodeSession("ffmpeg", str(tmp_path / "v.mp4"), str(tmp_path / "work"), info)

    @pytest.mark.asyncio
    async def test_capture_before_seek_fails(self, session):
        with pytest.raises(DecodeError):
            await session.capture()

    @pytest.mark.asyncio
    async def test_capture_reads_and_removes_pending_frame(self, session, tmp_path):
        frame_path = tmp_path / "frame.jpg"
        frame_path.write_bytes(MINIMAL_JPEG)
        session._pending = str(frame_path)

        data = await session.capture()

        assert data == MINIMAL_JPEG
        assert not frame_path.exists()

    @pytest.mark.asyncio
    async def test_close_removes_workdir(self, tmp_path):
        workdir = tmp_path / "work"
        workdir.mkdir()
        (workdir / "source.mp4").write_bytes(b"x")
        session = FFmpegDecodeSession(
            "ffmpeg", str(workdir / "source.mp4"), str(workdir),
            VideoInfo(duration_seconds=1.0, width=1, height=1),
        )

        await session.close()

        assert not os.path.exists(workdir)


class TestMockVideoDecoder:

    def test_factory_returns_mock_in_mock_mode(self):
        assert isinstance(create_video_decoder(mock_mode=True), MockVideoDecoder)

    @pytest.mark.asyncio
    async def test_samples_placeholder_frames(self, video_source):
        sampler = FrameSampler(decoder=MockVideoDecoder(duration_seconds=30.0))

        frames = await sampler.sample(video_source, 5)

        assert [f.timestamp_seconds for f in frames] == pytest.approx([0.01, 6.01, 12.01, 18.01, 24.01])
        assert all(f.data == MINIMAL_JPEG for f in frames)


class TestFFmpegVideoDecoder:

    def test_construction_does_not_require_binaries(self):
        decoder = FFmpegVideoDecoder(ffmpeg_path="/nonexistent/ffmpeg", ffprobe_path="/nonexistent/ffprobe")
        assert not decoder.available

    @pytest.mark.asyncio
    async def test_open_without_binaries_is_configuration_error(self, video_source):
        decoder = FFmpegVideoDecoder(ffmpeg_path="/nonexistent/ffmpeg", ffprobe_path="/nonexistent/ffprobe")

        with pytest.raises(ConfigurationError, match="FFmpeg not found"):
            await decoder.open(video_source)

    @pytest.mark.asyncio
    async def test_sampler_passes_configuration_error_through(self, video_source):
        sampler = FrameSampler(decoder=FFmpegVideoDecoder(ffmpeg_path="/nonexistent/ffmpeg"))

        with pytest.raises(ConfigurationError):
            await sampler.sample(video_source, 3)
