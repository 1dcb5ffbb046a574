"""Filesystem media store implementing IMediaStore.

Layout under ``Settings.data_dir``::

    images/{ms}-{rand6}{ext}                      -> /stories/images/...
    audio/{story_id}/{event_id}-{ms}-{rand6}.mp3  -> /stories/audio/...

main.py mounts both directories as static files under the same URL
prefixes.  Blocking file I/O runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import re
import secrets
import shutil
import string
import time
from pathlib import Path

import structlog

from storymap.interfaces.media_store import IMediaStore
from storymap.utils.errors import PersistenceError

logger = structlog.get_logger(logger_name=__name__)

IMAGES_URL_PREFIX = "/stories/images"
AUDIO_URL_PREFIX = "/stories/audio"

_UNSAFE_CHARS_RE = re.compile(r"[^a-zA-Z0-9.\-_]")
_RAND_ALPHABET = string.ascii_lowercase + string.digits


def sanitize_filename(filename: str) -> str:
    return _UNSAFE_CHARS_RE.sub("_", str(filename))


def _unique_stem() -> str:
    rand = "".join(secrets.choice(_RAND_ALPHABET) for _ in range(6))
    return f"{int(time.time() * 1000)}-{rand}"


class LocalMediaStore(IMediaStore):
    """Stores media files on local disk."""

    def __init__(self, data_dir: str | Path) -> None:
        root = Path(data_dir)
        self._images_dir = root / "images"
        self._audio_dir = root / "audio"

    @property
    def images_dir(self) -> Path:
        return self._images_dir

    @property
    def audio_dir(self) -> Path:
        return self._audio_dir

    def get_provider_name(self) -> str:
        return "local_media"

    def ensure_dirs(self) -> None:
        self._images_dir.mkdir(parents=True, exist_ok=True)
        self._audio_dir.mkdir(parents=True, exist_ok=True)

    async def save_image(self, filename: str, data: bytes) -> str:
        ext = Path(sanitize_filename(filename)).suffix or ".bin"
        name = f"{_unique_stem()}{ext}"
        await self._write(self._images_dir / name, data)
        logger.info("image_saved", filename=name, size=len(data))
        return f"{IMAGES_URL_PREFIX}/{name}"

    async def save_audio(self, story_id: str, event_id: str, data: bytes) -> str:
        story_dir = sanitize_filename(story_id)
        name = f"{sanitize_filename(event_id)}-{_unique_stem()}.mp3"
        await self._write(self._audio_dir / story_dir / name, data)
        logger.info("audio_saved", story_id=story_id, event_id=event_id, size=len(data))
        return f"{AUDIO_URL_PREFIX}/{story_dir}/{name}"

    async def delete_audio(self, audio_url: str) -> bool:
        path = self._audio_path_for(audio_url)
        if path is None:
            logger.warning("audio_url_outside_store", audio_url=audio_url)
            return False
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            logger.debug("audio_file_missing", audio_url=audio_url)
            return False
        except OSError as exc:
            raise PersistenceError(
                message=f"Failed to delete audio file: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("audio_deleted", audio_url=audio_url)
        return True

    async def delete_story_audio(self, story_id: str) -> int:
        story_dir = self._audio_dir / sanitize_filename(story_id)
        if not story_dir.is_dir():
            return 0
        count = sum(1 for item in story_dir.iterdir() if item.is_file())
        try:
            await asyncio.to_thread(shutil.rmtree, story_dir)
        except OSError as exc:
            raise PersistenceError(
                message=f"Failed to delete story audio: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("story_audio_deleted", story_id=story_id, files=count)
        return count

    def _audio_path_for(self, audio_url: str) -> Path | None:
        """Map a ``/stories/audio/...`` URL back to a file inside the audio dir."""
        if not audio_url or not audio_url.startswith(f"{AUDIO_URL_PREFIX}/"):
            return None
        relative = audio_url[len(AUDIO_URL_PREFIX) + 1:]
        root = self._audio_dir.resolve()
        path = (root / relative).resolve()
        if root not in path.parents:
            return None
        return path

    async def _write(self, path: Path, data: bytes) -> None:
        def _write_sync() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        try:
            await asyncio.to_thread(_write_sync)
        except OSError as exc:
            logger.error("media_write_failed", path=str(path), error=str(exc))
            raise PersistenceError(
                message=f"Failed to save file: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
