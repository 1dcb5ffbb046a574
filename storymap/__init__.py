"""StoryMap: life story maps with map sync, cinema playback and narration."""

__version__ = "0.1.0"
