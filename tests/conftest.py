"""Shared fixtures."""

import json

import pytest

from ai_content_detector.core.analysis.frames import FrameSampler
from ai_content_detector.core.analysis.models import VideoSource
from tests.fakes import VERDICT_PAYLOAD, FakeDecoder


@pytest.fixture
def verdict_json() -> str:
    return json.dumps(VERDICT_PAYLOAD)


@pytest.fixture
def fake_decoder() -> FakeDecoder:
    return FakeDecoder(duration=10.0)


@pytest.fixture
def sampler(fake_decoder) -> FrameSampler:
    return FrameSampler(decoder=fake_decoder)


@pytest.fixture
def video_source() -> VideoSource:
    return VideoSource(data=b"\x00\x00\x00\x18ftypmp42", media_type="video/mp4", filename="clip.mp4")
