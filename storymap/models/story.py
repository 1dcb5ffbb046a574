"""Story domain models — one life story and its narration settings.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Models (bottom of the dependency graph — no imports from upper layers).
#
# ``Story`` is the persisted header of a life story map: its name, the
# narration language/voice, a cached event count and the publish flag.
# The event list itself lives separately (see ``storymap.models.event``)
# and is stored and replaced as a whole.
#
# Key design decisions:
#   - **Immutable state**: ``Story`` is frozen.  Partial updates go through
#     ``model_copy(update={...})`` in the service layer.
#   - **Wire names**: fields are snake_case in Python and camelCase on the
#     wire (``voiceId``, ``eventCount``, ``dateCreated``) via aliases, so
#     the JSON API stays compatible with the map front end.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ─── Language ────────────────────────────────────────────────────────
# Narration languages.  Inherits from (str, Enum) so values serialize as
# plain strings.
class Language(str, Enum):
    """Supported story languages."""

    EN = "en"
    HE = "he"


DEFAULT_LANGUAGE = Language.EN


# ─── Voices ──────────────────────────────────────────────────────────
# Text-to-speech voices per language, female voice first (the default).
VOICE_OPTIONS: dict[str, list[dict[str, str]]] = {
    Language.EN.value: [
        {"id": "EXAVITQu4vr4xnSDxMaL", "name": "Bella (Female)", "gender": "female"},
        {"id": "NOpBlnGInO9m6vDvFkFC", "name": "Adam (Male)", "gender": "male"},
    ],
    Language.HE.value: [
        {"id": "21m00Tcm4TlvDq8ikWAM", "name": "Rachel (Female)", "gender": "female"},
        {"id": "VR6AewLTigWG4xSOukaG", "name": "Arnold (Male)", "gender": "male"},
    ],
}


def normalize_language(code: str | None) -> Language:
    """Return the matching ``Language`` or the default for unknown codes."""
    try:
        return Language(code)
    except ValueError:
        return DEFAULT_LANGUAGE


def voices_for_language(code: str | None) -> list[dict[str, str]]:
    return VOICE_OPTIONS[normalize_language(code).value]


def default_voice_id(code: str | None) -> str:
    return voices_for_language(code)[0]["id"]


def resolve_voice_id(language: str | None, voice_id: str | None) -> str:
    """Return ``voice_id`` if it belongs to ``language``, else the language default."""
    valid = {voice["id"] for voice in voices_for_language(language)}
    if voice_id and voice_id in valid:
        return voice_id
    return default_voice_id(language)


# ─── Story ───────────────────────────────────────────────────────────
class Story(BaseModel):
    """A life story map header.

    ``event_count`` is a cache of the stored event list length, refreshed
    every time the event list is replaced.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str = Field(description="Story id, e.g. 'story-1718000000000'.")
    name: str = Field(description="Display name of the story.")
    language: Language = Field(default=DEFAULT_LANGUAGE, description="Narration language.")
    voice_id: str = Field(default="", description="Text-to-speech voice id.")
    event_count: int = Field(default=0, ge=0, description="Cached number of events.")
    published: bool = Field(default=False, description="Shown in the public story list.")
    date_created: str = Field(default="", description="ISO-8601 creation timestamp.")

    def to_api(self) -> dict:
        """Serialize with camelCase keys, as returned by the HTTP API."""
        return self.model_dump(mode="json", by_alias=True)


# Bundled example stories share this id prefix; their routes live under
# /api/example-stories.
EXAMPLE_STORY_PREFIX = "example-story-"


def is_example_story_id(story_id: str | None) -> bool:
    return isinstance(story_id, str) and story_id.startswith(EXAMPLE_STORY_PREFIX)
