"""
Playback: replay a Log one record per tick on a virtual clock, with
pause/resume, seek and speed control.
"""
from .scheduler import PlaybackScheduler, PlaybackState

__all__ = ["PlaybackScheduler", "PlaybackState"]
