"""
VisionModelClient backed by the Anthropic Messages API.

SDK failures are translated into UpstreamRequestError (or its
RateLimitExceeded subclass) so callers never see anthropic types.
It sends a prompt plus images and returns text; it knows nothing about
detection.
"""

import logging
from dataclasses import dataclass

import anthropic
from anthropic import APIError, RateLimitError

from ...core.analysis.detector import VisionModelClient
from ...core.analysis.models import InlineImage
from ...core.errors import ConfigurationError, UpstreamRequestError


logger = logging.getLogger(__name__)

SUPPORTED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")


class RateLimitExceeded(UpstreamRequestError):
    """Raised when we hit rate limits."""

    user_message = "API rate limit exceeded. Please try again later."


@dataclass
class AnthropicConfig:
    """
    Configuration for the Anthropic client.

    The credential is passed in explicitly rather than read from the
    environment here, so tests can build a client without real keys.
    """
    api_key: str
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 2048
    temperature: float = 0.2  # low, for repeatable verdicts

    def __post_init__(self) -> None:
        if not self.api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY is not set")
        if self.max_tokens < 1:
            raise ValueError("max_tokens must be positive")
        if not 0 <= self.temperature <= 1:
            raise ValueError("temperature must be between 0 and 1")


class AnthropicVisionClient(VisionModelClient):
    """Implementation of VisionModelClient using Claude."""

    def __init__(self, config: AnthropicConfig) -> None:
        self._config = config
        self._client = anthropic.AsyncAnthropic(api_key=config.api_key)

    async def generate(self, prompt: str, images: list[InlineImage]) -> str:
        """
        Send a prompt with zero or more inline images.

        Covers all three request shapes: text only, one image, or a
        sequence of video frames.
        """
        content = self._build_content(prompt, images)

        try:
            response = await self._client.messages.create(
                model=self._config.model,
                max_tokens=self._config.max_tokens,
                temperature=self._config.temperature,
                messages=[
                    {"role": "user", "content": content}
                ],
            )
        except RateLimitError as e:
            logger.warning("Rate limit hit", extra={"error": str(e)})
            raise RateLimitExceeded("API rate limit exceeded") from e
        except APIError as e:
            logger.error("API error", extra={"error": str(e), "status": getattr(e, "status_code", None)})
            raise UpstreamRequestError(f"API error: {e.message}") from e

        return self._extract_text_response(response)

    def _build_content(self, prompt: str, images: list[InlineImage]) -> list[dict]:
        """
        Build the content array for a request.

        The prompt goes first, followed by the images in order, so frame
        order in the request matches the sampled timeline.
        """
        content: list[dict] = [{"type": "text", "text": prompt}]

        for image in images:
            media_type = image.media_type
            if media_type not in SUPPORTED_IMAGE_TYPES:
                media_type = self._detect_image_type(image.data)

            content.append({
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": media_type,
                    "data": image.to_base64(),
                },
            })

        return content

    def _detect_image_type(self, image_data: bytes) -> str:
        """Detect image MIME type from magic bytes."""
        if image_data[:3] == b'\xff\xd8\xff':
            return "image/jpeg"
        elif image_data[:8] == b'\x89PNG\r\n\x1a\n':
            return "image/png"
        elif image_data[:6] in (b'GIF87a', b'GIF89a'):
            return "image/gif"
        elif image_data[:4] == b'RIFF' and image_data[8:12] == b'WEBP':
            return "image/webp"
        else:
            # ffmpeg frames are jpeg
            return "image/jpeg"

    def _extract_text_response(self, response) -> str:
        """Extract text content from API response."""
        if not response.content:
            return ""

        text_blocks = [
            block.text
            for block in response.content
            if hasattr(block, 'text')
        ]

        return "\n".join(text_blocks)


def create_anthropic_client(
    api_key: str,
    model: str = "claude-sonnet-4-20250514",
    max_tokens: int = 2048,
    temperature: float = 0.2,
) -> AnthropicVisionClient:
    """Build a configured client; raises ConfigurationError without a key."""
    config = AnthropicConfig(
        api_key=api_key,
        model=model,
        max_tokens=max_tokens,
        temperature=temperature,
    )
    return AnthropicVisionClient(config)
