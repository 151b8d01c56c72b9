"""
Telemetry sources (attitude link and RTK positioning)

Provides:
- SourceAdapter: uniform connect/stream/subscribe contract over one feed
- MockAttitudeSource: synthetic rocket attitude/inertial downlink
- MockPositionSource: synthetic RTK GNSS position/orientation

Usage:
    from sources import MockAttitudeSource, MockPositionSource
"""
from .base import SourceAdapter
from .attitude import MockAttitudeSource
from .position import MockPositionSource

__all__ = ["SourceAdapter", "MockAttitudeSource", "MockPositionSource"]
