"""ElevenLabs text-to-speech provider implementing ITTSProvider.

POSTs to ``/v1/text-to-speech/{voice_id}`` and returns the MP3 body.
Failures are raised as :class:`SpeechSynthesisError` and classified:

    critical  -- HTTP 401/403, or an error message mentioning the free
                 tier, abuse, unusual activity, a paid plan, the
                 subscription, the account or the quota.  A batch must
                 stop on these since every further request fails the same way.
    per-item  -- anything else (bad text, 5xx, network).  Only the
                 current event is skipped.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from storymap.config.settings import Settings
from storymap.interfaces.tts_provider import ITTSProvider
from storymap.utils.errors import SpeechSynthesisError

logger = structlog.get_logger(logger_name=__name__)

_TIMEOUT = 60.0
_VOICE_SETTINGS = {"stability": 0.6, "similarity_boost": 0.75}
_CRITICAL_STATUS_CODES = frozenset({401, 403})
_CRITICAL_KEYWORDS = (
    "free tier",
    "abuse",
    "unusual activity",
    "paid plan",
    "subscription",
    "account",
    "quota",
)


def is_critical_error(message: str, status_code: int | None) -> bool:
    """True when the failure will repeat for every request of a batch."""
    if status_code in _CRITICAL_STATUS_CODES:
        return True
    lowered = (message or "").lower()
    return any(keyword in lowered for keyword in _CRITICAL_KEYWORDS)


def _error_message(response: httpx.Response) -> str:
    """Pull ``detail.message`` / ``detail`` out of an error body, else the raw text."""
    text = response.text
    try:
        payload: Any = response.json()
    except ValueError:
        return text or f"HTTP {response.status_code}"
    detail = payload.get("detail") if isinstance(payload, dict) else None
    if isinstance(detail, dict):
        return str(detail.get("message") or detail)
    if detail:
        return str(detail)
    return text or f"HTTP {response.status_code}"


class ElevenLabsTTSProvider(ITTSProvider):
    """Speech synthesis through the ElevenLabs REST API."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = settings.elevenlabs_api_key
        self._base_url = settings.elevenlabs_base_url.rstrip("/")
        self._http = http_client or httpx.AsyncClient(timeout=_TIMEOUT)

    def get_provider_name(self) -> str:
        return "elevenlabs"

    def is_available(self) -> bool:
        return bool(self._api_key)

    async def synthesize(
        self,
        text: str,
        voice_id: str,
        model_id: str,
        language_code: str | None = None,
    ) -> bytes:
        if not self.is_available():
            raise SpeechSynthesisError(
                message="ElevenLabs API key is not configured",
                provider_name=self.get_provider_name(),
                critical=True,
            )

        body: dict[str, Any] = {
            "text": text,
            "model_id": model_id,
            "voice_settings": dict(_VOICE_SETTINGS),
        }
        if language_code:
            body["language_code"] = language_code

        try:
            response = await self._http.post(
                f"{self._base_url}/v1/text-to-speech/{voice_id}",
                json=body,
                headers={
                    "Accept": "audio/mpeg",
                    "xi-api-key": self._api_key,
                },
            )
        except httpx.HTTPError as exc:
            logger.error("elevenlabs_request_failed", voice_id=voice_id, error=str(exc))
            raise SpeechSynthesisError(
                message=f"ElevenLabs request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if response.is_success:
            return response.content

        message = _error_message(response)
        critical = is_critical_error(message, response.status_code)
        logger.error(
            "elevenlabs_error",
            status=response.status_code,
            critical=critical,
            error=message,
            text_preview=text[:100],
        )
        raise SpeechSynthesisError(
            message=message,
            provider_name=self.get_provider_name(),
            status_code=response.status_code,
            critical=critical,
        )
