"""
Fusion: merge the latest attitude and position samples into CombinedRecords.

No estimation happens here: each record is the newest sample of each source,
stamped with the newer of the two timestamps.
"""
from .coordinator import FusionCoordinator

__all__ = ["FusionCoordinator"]
