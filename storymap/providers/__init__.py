"""Concrete adapters behind the interfaces in ``storymap.interfaces``.

    - story/       SQLiteStoryProvider       (aiosqlite)
    - examples/    JsonExampleStoryProvider  (bundled JSON, read-only)
    - geocoding/   MapboxGeocodingProvider   (httpx)
    - tts/         ElevenLabsTTSProvider     (httpx)
    - media/       LocalMediaStore           (filesystem)
    - api_client/  StoryApiClient            (httpx, client side of the API)

main.py builds one of each at startup and injects them into app.state.
"""
