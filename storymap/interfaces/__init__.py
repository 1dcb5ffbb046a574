"""Public interface definitions for every external collaborator.

Business logic and the map controllers talk to outside systems only
through the abstract classes in this package; concrete adapters live in
``storymap/providers/`` and are wired in ``storymap/main.py``.  Tests
inject fakes implementing the same contracts.

CONCRETE PROVIDER MAP:
    Interface               →  Concrete implementation
    ─────────────────────────────────────────────────────────────────────
    IStoryProvider          →  SQLiteStoryProvider
    IExampleStoryProvider   →  JsonExampleStoryProvider
    IGeocodingProvider      →  MapboxGeocodingProvider
    ITTSProvider            →  ElevenLabsTTSProvider
    IMediaStore             →  LocalMediaStore
    IStoryReader            →  StoryApiClient
    IMapWidget              →  (front-end bridge; test fakes)
    IAudioPlayer            →  (front-end bridge; test fakes)
    Scheduler               →  asyncio event loop
"""

from storymap.interfaces.audio_player import IAudioPlayer
from storymap.interfaces.geocoding_provider import GeocodeResult, IGeocodingProvider
from storymap.interfaces.map_widget import IMapWidget
from storymap.interfaces.media_store import IMediaStore
from storymap.interfaces.scheduler import Clock, Scheduler, TimerHandle
from storymap.interfaces.story_provider import IExampleStoryProvider, IStoryProvider
from storymap.interfaces.story_reader import IStoryReader
from storymap.interfaces.tts_provider import ITTSProvider

__all__ = [
    "Clock",
    "GeocodeResult",
    "IAudioPlayer",
    "IExampleStoryProvider",
    "IGeocodingProvider",
    "IMapWidget",
    "IMediaStore",
    "IStoryProvider",
    "IStoryReader",
    "ITTSProvider",
    "Scheduler",
    "TimerHandle",
]
