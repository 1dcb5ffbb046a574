"""Custom exception hierarchy for StoryMap.

All application exceptions inherit from :class:`StoryMapError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "mapbox", "elevenlabs", "sqlite_story") caused the
failure.

The hierarchy is organized by concern:

    StoryMapError  (base -- catch-all for any storymap error)
    +-- ValidationError          (bad user input: empty name, empty query)
    |   +-- StoryLimitError      (story cap reached)
    +-- StoryNotFoundError       (unknown story id)
    +-- EventNotFoundError       (unknown event id / event without audio)
    +-- PersistenceError         (story store read/write failure)
    +-- GeocodingError           (forward/reverse geocoding failure)
    +-- SpeechSynthesisError     (text-to-speech failure, critical or per-item)
    +-- ProviderUnavailableError (external service down / unreachable)
    +-- ConfigurationError       (startup / missing config)

The API middleware maps each branch to an HTTP status code, so route
handlers simply raise and never build error responses by hand.
"""


class StoryMapError(Exception):
    """Base exception for all StoryMap errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[mapbox] Geocoding request failed``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Input errors
# ---------------------------------------------------------------------------

class ValidationError(StoryMapError):
    """Raised when user input is rejected before any state is mutated."""

    def __init__(
        self,
        message: str = "Invalid input",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StoryLimitError(ValidationError):
    """Raised when creating a story would exceed the configured story cap."""

    def __init__(self, max_stories: int = 5) -> None:
        self.max_stories = max_stories
        super().__init__(message=f"Maximum of {max_stories} stories allowed")


# ---------------------------------------------------------------------------
# Lookup errors
# ---------------------------------------------------------------------------

class StoryNotFoundError(StoryMapError):
    """Raised when a story id does not resolve to a stored story."""

    def __init__(self, story_id: str, provider_name: str | None = None) -> None:
        self.story_id = story_id
        super().__init__(message="Story not found", provider_name=provider_name)


class EventNotFoundError(StoryMapError):
    """Raised when an event id is unknown within a story (or carries no audio)."""

    def __init__(
        self,
        event_id: str,
        message: str = "Event not found",
        provider_name: str | None = None,
    ) -> None:
        self.event_id = event_id
        super().__init__(message=message, provider_name=provider_name)


class PersistenceError(StoryMapError):
    """Raised when the story store cannot read or write data."""

    def __init__(
        self,
        message: str = "Story storage failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External service / provider errors
# ---------------------------------------------------------------------------

class GeocodingError(StoryMapError):
    """Raised when a geocoding request fails (network, HTTP status, bad payload)."""

    def __init__(
        self,
        message: str = "Geocoding request failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class SpeechSynthesisError(StoryMapError):
    """Raised when text-to-speech generation fails.

    ``critical`` errors (auth failures, quota or abuse blocks) must stop a
    whole generation batch; non-critical ones only skip the current event.
    """

    def __init__(
        self,
        message: str = "Speech synthesis failed",
        provider_name: str | None = None,
        status_code: int | None = None,
        critical: bool = False,
    ) -> None:
        self.status_code = status_code
        self.critical = critical
        super().__init__(message=message, provider_name=provider_name)


class ProviderUnavailableError(StoryMapError):
    """Raised when an external service or provider is unreachable or unconfigured."""

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class ConfigurationError(StoryMapError):
    """Raised when required configuration is missing or invalid at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
