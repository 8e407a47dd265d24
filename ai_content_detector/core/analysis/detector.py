"""
Detection orchestration and prompt management.

This module ties the pieces together for one analysis request: validate
the input, sample frames for video, send the prompt and images to the
vision model, and turn the reply into a Verdict. It doesn't know about
HTTP or which model provider sits behind the client.

The prompts are here, not in config, because they're core business logic.
Changing them changes what the product does.
"""

import asyncio
import logging
from typing import Optional, Protocol

from ..errors import (
    AnalysisInProgressError,
    DetectionError,
    InputValidationError,
    MalformedResponseError,
    UpstreamRequestError,
)
from .extractor import ResponseExtractor
from .frames import FrameSampler
from .models import InlineImage, InputMode, Verdict, VideoSource

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class VisionModelClient(Protocol):
    """
    Interface for the generative model behind the detector.

    One call shape covers all three modes: a prompt plus zero or more
    inline images, returning the model's raw reply text.
    """

    async def generate(self, prompt: str, images: list[InlineImage]) -> str:
        ...


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

_RESPONSE_FORMAT = """Provide your response in a valid JSON object with the following structure:
{{
  "determination": "Likely AI-Generated" | "Likely Human-Generated" | "Inconclusive",
  "confidence": <a number between 0 and 100 representing your confidence>,
  "rationale": "<{rationale_hint} Use markdown for formatting.>"
}}"""


TEXT_ANALYSIS_PROMPT = """You are an expert in distinguishing between human-written and AI-generated text. Analyze the following text and determine if it was likely written by an AI.
Consider factors like perplexity, burstiness, complexity, and common AI writing patterns.

""" + _RESPONSE_FORMAT.format(
    rationale_hint="A detailed explanation of your reasoning, highlighting specific characteristics of the text that led to your conclusion."
) + """

Here is the text to analyze:
---
"""


IMAGE_ANALYSIS_PROMPT = """You are an expert in detecting AI-generated images. Analyze the following image for common artifacts of AI generation, such as unnatural textures, strange anatomy (especially hands and eyes), distorted backgrounds, nonsensical text, an overly perfect/glossy appearance, or inconsistent lighting.

""" + _RESPONSE_FORMAT.format(
    rationale_hint="A detailed explanation of your reasoning, pointing out specific visual elements in the image that support your conclusion."
)


VIDEO_ANALYSIS_PROMPT = """You are an expert in detecting AI-generated video content. You will be given a series of {frame_count} frames sampled from a video. Analyze these frames collectively to determine if the video was likely AI-generated.

Look for two types of clues:
1. **Intra-frame artifacts:** Within each individual frame, look for common AI image generation artifacts like unnatural textures, strange anatomy (hands, eyes, teeth), distorted backgrounds, nonsensical text, overly glossy appearance, or inconsistent lighting.
2. **Inter-frame inconsistencies:** Across the sequence of frames, look for temporal artifacts. Does the background subtly warp or shift unnaturally between frames? Do objects or people flicker, morph, or lack temporal coherence? Is the motion smooth or does it have a "boiling" or jittery quality common in AI video?

Synthesize your findings from all frames to make a final determination.

""" + _RESPONSE_FORMAT.format(
    rationale_hint="A detailed explanation of your reasoning, pointing out specific visual elements within frames and temporal inconsistencies across the sequence that support your conclusion."
).replace("{", "{{").replace("}", "}}")


# ---------------------------------------------------------------------------
# Detector Service
# ---------------------------------------------------------------------------

class ContentDetector:
    """
    The service that runs one analysis at a time.

    Holds its collaborators and a lock, nothing else. A second request
    while one is outstanding is rejected rather than queued.
    """

    def __init__(
        self,
        vision_client: VisionModelClient,
        frame_sampler: FrameSampler,
        extractor: Optional[ResponseExtractor] = None,
        video_frame_count: int = 5,
        max_text_length: int = 50_000,
    ) -> None:
        self._vision_client = vision_client
        self._sampler = frame_sampler
        self._extractor = extractor or ResponseExtractor()
        self._video_frame_count = video_frame_count
        self._max_text_length = max_text_length
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def analyze_text(self, text: str) -> Verdict:
        """Judge whether a piece of text was written by a model."""
        if not text or not text.strip():
            raise InputValidationError("Please enter some text to analyze.")
        if len(text) > self._max_text_length:
            raise InputValidationError(
                f"Text is too long to analyze (maximum {self._max_text_length} characters)."
            )

        async with self._exclusive():
            return await self._request(
                InputMode.TEXT,
                prompt=f"{TEXT_ANALYSIS_PROMPT}\n{text}",
                images=[],
            )

    async def analyze_image(self, data: bytes, media_type: str) -> Verdict:
        """Judge a single image."""
        if not media_type or not media_type.startswith("image/"):
            raise InputValidationError("Only image files are supported for analysis.")
        if not data:
            raise InputValidationError("Please select an image file to analyze.")

        async with self._exclusive():
            return await self._request(
                InputMode.IMAGE,
                prompt=IMAGE_ANALYSIS_PROMPT,
                images=[InlineImage(data=data, media_type=media_type)],
            )

    async def analyze_video(
        self,
        video: VideoSource,
        frame_count: Optional[int] = None,
    ) -> tuple[Verdict, int]:
        """
        Judge a video from evenly sampled frames.

        Returns the verdict and how many frames the model actually saw,
        which can be fewer than requested for very short clips.
        """
        if not video.media_type or not video.media_type.startswith("video/"):
            raise InputValidationError("Only video files are supported for analysis.")
        if not video.data:
            raise InputValidationError("Please select a video file to analyze.")

        count = frame_count if frame_count is not None else self._video_frame_count

        async with self._exclusive():
            logger.info("Extracting frames from video", extra={"video_filename": video.filename, "frame_count": count})
            frames = await self._sampler.sample(video, count)

            verdict = await self._request(
                InputMode.VIDEO,
                prompt=VIDEO_ANALYSIS_PROMPT.format(frame_count=len(frames)),
                images=[InlineImage.from_frame(f) for f in frames],
            )
            return verdict, len(frames)

    def _exclusive(self) -> asyncio.Lock:
        if self._lock.locked():
            raise AnalysisInProgressError("analysis already outstanding")
        return self._lock

    async def _request(
        self,
        mode: InputMode,
        prompt: str,
        images: list[InlineImage],
    ) -> Verdict:
        logger.info(
            "Sending analysis request",
            extra={"mode": mode.value, "image_count": len(images)},
        )

        try:
            raw_response = await self._vision_client.generate(prompt, images)
        except DetectionError:
            raise
        except Exception as e:
            logger.error(
                "Model request failed",
                extra={"mode": mode.value, "error": str(e)},
                exc_info=e,
            )
            raise UpstreamRequestError(f"{mode.value} analysis request failed: {e}") from e

        verdict = self._extractor.extract(raw_response)
        if verdict is None:
            raise MalformedResponseError(f"Unusable {mode.value} analysis reply")

        logger.info(
            "Analysis complete",
            extra={
                "mode": mode.value,
                "determination": verdict.determination,
                "confidence": verdict.confidence,
            },
        )
        return verdict
