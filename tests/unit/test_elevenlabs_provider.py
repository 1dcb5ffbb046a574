"""Unit tests for ElevenLabsTTSProvider and error classification."""

from __future__ import annotations

import json

import httpx
import pytest

from storymap.config.settings import Settings
from storymap.providers.tts.elevenlabs_provider import ElevenLabsTTSProvider, is_critical_error
from storymap.utils.errors import SpeechSynthesisError


def _provider(handler, api_key: str = "xi-test") -> ElevenLabsTTSProvider:
    settings = Settings(elevenlabs_api_key=api_key, elevenlabs_base_url="https://tts.test")
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ElevenLabsTTSProvider(settings, http_client=client)


class TestIsCriticalError:
    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_statuses(self, status) -> None:
        assert is_critical_error("", status)

    @pytest.mark.parametrize(
        "message",
        [
            "Free Tier usage disabled",
            "Unusual activity detected",
            "This voice requires a paid plan",
            "Your subscription has expired",
            "quota_exceeded",
        ],
    )
    def test_account_messages(self, message) -> None:
        assert is_critical_error(message, 400)

    def test_ordinary_failure(self) -> None:
        assert not is_critical_error("text too long", 422)
        assert not is_critical_error("", 500)


class TestSynthesize:
    @pytest.mark.asyncio
    async def test_success_returns_audio(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=b"ID3-audio")

        audio = await _provider(handler).synthesize("Hello", "voice-1", "eleven_turbo_v2_5", "en")
        assert audio == b"ID3-audio"

        request = seen[0]
        assert request.url.path == "/v1/text-to-speech/voice-1"
        assert request.headers["xi-api-key"] == "xi-test"
        assert request.headers["accept"] == "audio/mpeg"
        body = json.loads(request.content)
        assert body["model_id"] == "eleven_turbo_v2_5"
        assert body["language_code"] == "en"
        assert body["voice_settings"] == {"stability": 0.6, "similarity_boost": 0.75}

    @pytest.mark.asyncio
    async def test_language_code_omitted_when_none(self) -> None:
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, content=b"x")

        await _provider(handler).synthesize("שלום", "voice-1", "eleven_multilingual_v2")
        assert "language_code" not in bodies[0]

    @pytest.mark.asyncio
    async def test_quota_error_is_critical(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"detail": {"status": "quota_exceeded", "message": "Quota exceeded"}})

        with pytest.raises(SpeechSynthesisError) as exc_info:
            await _provider(handler).synthesize("Hello", "voice-1", "m")
        assert exc_info.value.critical is True
        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Quota exceeded"

    @pytest.mark.asyncio
    async def test_server_error_is_per_item(self) -> None:
        with pytest.raises(SpeechSynthesisError) as exc_info:
            await _provider(lambda request: httpx.Response(500, text="upstream")).synthesize("Hi", "v", "m")
        assert exc_info.value.critical is False
        assert exc_info.value.message == "upstream"

    @pytest.mark.asyncio
    async def test_network_error_is_per_item(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(SpeechSynthesisError) as exc_info:
            await _provider(handler).synthesize("Hi", "v", "m")
        assert exc_info.value.critical is False

    @pytest.mark.asyncio
    async def test_missing_key_is_critical(self) -> None:
        provider = _provider(lambda request: httpx.Response(200), api_key="")
        assert not provider.is_available()
        with pytest.raises(SpeechSynthesisError) as exc_info:
            await provider.synthesize("Hi", "v", "m")
        assert exc_info.value.critical is True
