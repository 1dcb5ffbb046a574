"""Narration generation — text-to-speech for every eligible event of a story.

# ─── HOW A GENERATION BATCH RUNS ──────────────────────────────────────
#
#   for each event, in story order:
#     skip  Opening / Closing cards
#     skip  empty text, the language's placeholder text, existing audio
#     text  = plain text of content.textHtml, cut to 5000 characters
#     audio = ITTSProvider.synthesize(text, voice, model, language_code)
#       ok        -> file saved, content.audioUrl + content.wordTimestamps set
#       per-item  -> error recorded, batch continues
#       critical  -> batch stops here
#   if anything was generated: the event list is saved (also after a
#   critical stop, so finished narration is never lost)
#
# Word timestamps are estimated: the MP3 duration is derived from its
# size at 128 kbps, and each word gets a slice proportional to its length
# (1.2x pacing, 50 ms gaps), scaled down to fit the duration.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

import structlog

from storymap.interfaces.media_store import IMediaStore
from storymap.interfaces.tts_provider import ITTSProvider
from storymap.models.story import Language, Story, normalize_language, resolve_voice_id
from storymap.services.story_service import StoryService
from storymap.utils.errors import (
    EventNotFoundError,
    ProviderUnavailableError,
    SpeechSynthesisError,
)
from storymap.utils.geometry import is_special_event
from storymap.utils.logging import story_context
from storymap.utils.text import strip_html, tokenize_words

logger = structlog.get_logger(logger_name=__name__)

MAX_TEXT_LENGTH = 5000
ESTIMATED_BITRATE_BPS = 128_000
WORD_PACING = 1.2
WORD_GAP_MS = 50
MIN_WORD_MS = 100

PLACEHOLDER_TEXT = {
    Language.EN.value: "Full text about the event",
    Language.HE.value: "טקסט מלא על האירוע",
}

_MODEL_MULTILINGUAL = "eleven_multilingual_v2"
_MODEL_TURBO = "eleven_turbo_v2_5"


def model_for_language(language: str) -> str:
    return _MODEL_MULTILINGUAL if language == Language.HE.value else _MODEL_TURBO


def estimate_duration_ms(audio: bytes) -> int:
    return round(len(audio) * 8 / ESTIMATED_BITRATE_BPS * 1000)


def estimate_word_timestamps(text: str, audio: bytes) -> list[dict[str, Any]]:
    """Spread the words of ``text`` over the estimated length of ``audio``."""
    words = [token["word"] for token in tokenize_words(text)]
    duration_ms = estimate_duration_ms(audio)
    if not words or duration_ms == 0:
        return []

    ms_per_char = duration_ms / len(text)
    timestamps: list[dict[str, Any]] = []
    cursor = 0.0
    for word in words:
        word_ms = max(MIN_WORD_MS, len(word) * ms_per_char * WORD_PACING)
        timestamps.append({"word": word, "start": round(cursor), "end": round(cursor + word_ms)})
        cursor += word_ms + WORD_GAP_MS

    if cursor > duration_ms:
        scale = duration_ms / cursor
        for stamp in timestamps:
            stamp["start"] = round(stamp["start"] * scale)
            stamp["end"] = round(stamp["end"] * scale)
    return timestamps


def narration_text(event: dict[str, Any], language: str) -> str | None:
    """Text to narrate for ``event``, or ``None`` when it should be skipped."""
    if is_special_event(event):
        return None
    content = event.get("content") or {}
    if content.get("audioUrl"):
        return None
    text = strip_html(content.get("textHtml") or "")
    if not text or text == PLACEHOLDER_TEXT.get(language, PLACEHOLDER_TEXT[Language.EN.value]):
        return None
    return text[:MAX_TEXT_LENGTH]


@dataclass
class AudioGenerationResult:
    """Outcome of one batch.  ``critical_error`` is set when the batch stopped early."""

    files: list[dict[str, str]] = field(default_factory=list)
    errors: list[dict[str, str]] = field(default_factory=list)
    critical_error: dict[str, Any] | None = None

    @property
    def generated(self) -> int:
        return len(self.files)


class AudioGenerationService:
    """Generates and removes narration audio for a story's events."""

    def __init__(
        self,
        story_service: StoryService,
        tts: ITTSProvider | None,
        media_store: IMediaStore,
    ) -> None:
        self._stories = story_service
        self._tts = tts
        self._media = media_store

    async def generate_for_story(self, story_id: str) -> AudioGenerationResult:
        story = await self._stories.get_story(story_id)
        if self._tts is None or not self._tts.is_available():
            raise ProviderUnavailableError(
                message="Text-to-speech is not configured (missing ELEVENLABS_API_KEY)",
                provider_name="elevenlabs",
            )

        events = copy.deepcopy(await self._stories.get_events(story_id))
        result = AudioGenerationResult()
        with story_context(story_id):
            await self._generate(story, events, result)
            if result.files:
                await self._stories.save_events(story_id, events)
            logger.info(
                "audio_generation_finished",
                generated=result.generated,
                errors=len(result.errors),
                critical=result.critical_error is not None,
            )
        return result

    async def _generate(
        self,
        story: Story,
        events: list[dict[str, Any]],
        result: AudioGenerationResult,
    ) -> None:
        language = normalize_language(story.language).value
        voice_id = resolve_voice_id(language, story.voice_id)
        model_id = model_for_language(language)
        language_code = "en" if language == Language.EN.value else None
        logger.info("audio_generation_started", language=language, voice_id=voice_id)

        for event in events:
            text = narration_text(event, language)
            if text is None:
                continue
            event_id = event.get("eventId", "")
            try:
                audio = await self._tts.synthesize(text, voice_id, model_id, language_code)
            except SpeechSynthesisError as exc:
                if exc.critical:
                    result.critical_error = {
                        "message": exc.message,
                        "eventId": event_id,
                        "status": exc.status_code,
                    }
                    logger.error("audio_generation_halted", event_id=event_id, error=exc.message)
                    return
                result.errors.append({"eventId": event_id, "message": exc.message})
                continue

            audio_url = await self._media.save_audio(story.id, event_id, audio)
            content = event.setdefault("content", {})
            content["audioUrl"] = audio_url
            content["wordTimestamps"] = estimate_word_timestamps(text, audio)
            result.files.append({"eventId": event_id, "audioUrl": audio_url})

    async def delete_story_audio(self, story_id: str) -> int:
        """Remove every event's narration.  Returns the number of files deleted."""
        events = copy.deepcopy(await self._stories.get_events(story_id))
        deleted = 0
        changed = False
        for event in events:
            content = event.get("content")
            if not isinstance(content, dict) or not content.get("audioUrl"):
                continue
            if await self._media.delete_audio(content["audioUrl"]):
                deleted += 1
            content.pop("audioUrl", None)
            content.pop("wordTimestamps", None)
            changed = True

        if changed:
            await self._stories.save_events(story_id, events)
        logger.info("story_audio_removed", story_id=story_id, deleted=deleted)
        return deleted

    async def delete_event_audio(self, story_id: str, event_id: str) -> None:
        events = copy.deepcopy(await self._stories.get_events(story_id))
        event = next((item for item in events if item.get("eventId") == event_id), None)
        if event is None:
            raise EventNotFoundError(event_id)
        content = event.get("content")
        if not isinstance(content, dict) or not content.get("audioUrl"):
            raise EventNotFoundError(event_id, message="Audio file not found for this event")

        await self._media.delete_audio(content["audioUrl"])
        content.pop("audioUrl", None)
        content.pop("wordTimestamps", None)
        await self._stories.save_events(story_id, events)
        logger.info("event_audio_removed", story_id=story_id, event_id=event_id)
