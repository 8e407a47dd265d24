"""
Unit tests for the Anthropic client wrapper.

The SDK client is replaced with a stub so nothing leaves the process.
"""

from types import SimpleNamespace

import httpx
import pytest
from anthropic import APIStatusError, RateLimitError

from ai_content_detector.core.analysis.models import InlineImage
from ai_content_detector.core.errors import ConfigurationError, UpstreamRequestError
from ai_content_detector.infrastructure.anthropic.client import (
    AnthropicConfig,
    AnthropicVisionClient,
    RateLimitExceeded,
    create_anthropic_client,
)


class StubMessages:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self.response


def _client_with(messages: StubMessages) -> AnthropicVisionClient:
    client = create_anthropic_client(api_key="sk-test")
    client._client = SimpleNamespace(messages=messages)
    return client


def _reply(text: str):
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=text)])


def _status_error(cls, status_code: int):
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    response = httpx.Response(status_code, request=request)
    return cls("boom", response=response, body=None)


class TestAnthropicConfig:

    def test_missing_key_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            AnthropicConfig(api_key="")

    def test_default_temperature_is_low(self):
        assert AnthropicConfig(api_key="k").temperature == 0.2

    def test_rejects_out_of_range_temperature(self):
        with pytest.raises(ValueError):
            AnthropicConfig(api_key="k", temperature=1.5)


class TestGenerate:

    @pytest.mark.asyncio
    async def test_text_only_request(self):
        messages = StubMessages(response=_reply('{"a": 1}'))
        client = _client_with(messages)

        text = await client.generate("Analyze this", [])

        assert text == '{"a": 1}'
        assert messages.kwargs["temperature"] == 0.2
        content = messages.kwargs["messages"][0]["content"]
        assert content == [{"type": "text", "text": "Analyze this"}]

    @pytest.mark.asyncio
    async def test_images_follow_prompt_in_order(self):
        messages = StubMessages(response=_reply("ok"))
        client = _client_with(messages)

        await client.generate("p", [
            InlineImage(data=b"\xff\xd8\xff1", media_type="image/jpeg"),
            InlineImage(data=b"\x89PNG\r\n\x1a\n2", media_type="image/png"),
        ])

        content = messages.kwargs["messages"][0]["content"]
        assert [block["type"] for block in content] == ["text", "image", "image"]
        assert content[1]["source"]["media_type"] == "image/jpeg"
        assert content[2]["source"]["media_type"] == "image/png"

    @pytest.mark.asyncio
    async def test_unsupported_media_type_is_sniffed(self):
        messages = StubMessages(response=_reply("ok"))
        client = _client_with(messages)

        await client.generate("p", [InlineImage(data=b"\x89PNG\r\n\x1a\nrest", media_type="image/x-png")])

        assert messages.kwargs["messages"][0]["content"][1]["source"]["media_type"] == "image/png"

    @pytest.mark.asyncio
    async def test_api_error_becomes_upstream_error(self):
        client = _client_with(StubMessages(error=_status_error(APIStatusError, 500)))

        with pytest.raises(UpstreamRequestError):
            await client.generate("p", [])

    @pytest.mark.asyncio
    async def test_rate_limit_is_upstream_and_retryable(self):
        client = _client_with(StubMessages(error=_status_error(RateLimitError, 429)))

        with pytest.raises(RateLimitExceeded) as exc_info:
            await client.generate("p", [])

        assert isinstance(exc_info.value, UpstreamRequestError)
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_empty_content_gives_empty_string(self):
        client = _client_with(StubMessages(response=SimpleNamespace(content=[])))
        assert await client.generate("p", []) == ""
