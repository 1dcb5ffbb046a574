"""Pydantic request/response schemas for the StoryMap API.

Story headers and event documents are returned in their stored camelCase
form (``Story.to_api()`` / plain event dicts), so only the request bodies
and the small status envelopes are modelled here.  Request bodies keep
their fields optional: missing values are rejected by the service layer
with a 400 and a readable message rather than a 422.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CreateStoryRequest(BaseModel):
    """Body of ``POST /api/stories``."""

    name: str | None = None
    language: str | None = None


class UpdateStoryRequest(BaseModel):
    """Body of ``PUT /api/stories/{id}``.  Only the fields sent are applied."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    name: str | None = None
    language: str | None = None
    voice_id: str | None = None
    published: bool | None = None

    def to_updates(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True)


class UploadImageRequest(BaseModel):
    """Body of ``POST /api/upload-image``: base64 ``data`` plus the original name."""

    filename: str | None = None
    data: str | None = None


class UploadImageResponse(BaseModel):
    url: str


class OkResponse(BaseModel):
    ok: bool = True


class SaveEventsResponse(BaseModel):
    ok: bool = True
    event_count: int = Field(serialization_alias="eventCount")


class DeleteAudioResponse(BaseModel):
    ok: bool = True
    deleted: int = 0


class GeneratedAudioFile(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    event_id: str
    audio_url: str


class AudioItemError(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    event_id: str
    message: str


class GenerateAudioResponse(BaseModel):
    """Batch result.  ``errors`` is omitted when every event succeeded."""

    ok: bool = True
    generated: int
    files: list[GeneratedAudioFile] = Field(default_factory=list)
    errors: list[AudioItemError] | None = None


class CriticalAudioErrorResponse(BaseModel):
    """Returned with 502 when the TTS service refuses the whole batch."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    error: str
    event_id: str
    critical: bool = True


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    error_type: str


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]
