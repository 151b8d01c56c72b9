"""
Station: the single coordinator object for one ground station.

GroundStation owns the source adapters, fusion, recording and playback, and
the ModeController that decides which producer feeds the displayed record.
Construct it once and hand it to the outer surfaces (HTTP API, CLI).
"""
from .mode import ModeController
from .station import GroundStation

__all__ = ["ModeController", "GroundStation"]
