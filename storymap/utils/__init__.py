"""Utility modules for StoryMap.

- **errors** -- Domain exception hierarchy rooted at StoryMapError; the API
  middleware maps each branch to an HTTP status.
- **logging** -- structlog setup with a dual-renderer pattern (console in
  development, JSON in production) plus ``story_context`` bindings.
- **geometry** -- Coordinate keying, distance/bearing, path GeoJSON and
  fly-over timing for story events.
- **text** -- HTML stripping, word tokenizing and timeline date formatting.
"""

# -- Domain exception hierarchy --------------------------------------------
from storymap.utils.errors import (
    ConfigurationError,
    EventNotFoundError,
    GeocodingError,
    PersistenceError,
    ProviderUnavailableError,
    SpeechSynthesisError,
    StoryLimitError,
    StoryMapError,
    StoryNotFoundError,
    ValidationError,
)

# -- Structured logging setup ----------------------------------------------
from storymap.utils.logging import configure_logging, get_logger, story_context

__all__ = [
    "ConfigurationError",
    "EventNotFoundError",
    "GeocodingError",
    "PersistenceError",
    "ProviderUnavailableError",
    "SpeechSynthesisError",
    "StoryLimitError",
    "StoryMapError",
    "StoryNotFoundError",
    "ValidationError",
    "configure_logging",
    "get_logger",
    "story_context",
]
