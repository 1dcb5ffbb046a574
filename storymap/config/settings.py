"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# Values are read from TWO sources (in priority order):
#
#   1. **Environment variables** — e.g., MAPBOX_TOKEN=pk.abc123
#   2. **.env file** — key=value lines in the project root .env file
#
# Field ``mapbox_token`` maps to env var ``MAPBOX_TOKEN``.  Defaults apply
# when neither source provides a value.  An empty API key means "not
# configured": the matching provider reports itself unavailable and the
# features depending on it degrade (no geocoding, no narration).
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """StoryMap application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === External services ===
    mapbox_token: str = ""
    mapbox_base_url: str = "https://api.mapbox.com"
    elevenlabs_api_key: str = ""
    elevenlabs_base_url: str = "https://api.elevenlabs.io"

    # === Storage ===
    data_dir: str = "data"
    stories_db_path: str = "data/stories.db"
    example_stories_path: str = ""  # empty → bundled storymap/data/example_stories.json
    max_stories: int = 5

    # === Map / playback tuning ===
    camera_transition_ms: int = 800
    cinema_no_audio_delay_s: float = 2.0

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"
    api_base_url: str = "http://127.0.0.1:8000"
