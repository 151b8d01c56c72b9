from __future__ import annotations

from typing import Callable, List, Optional

from common.events import Publisher, Subscription
from common.logging_setup import get_logger
from common.types import AttitudeSample, CombinedRecord, PositionSample
from sources.base import SourceAdapter


log = get_logger("fusion")


class FusionCoordinator:
    """
    Holds the most recent sample of each source (overwritten, never queued)
    and republishes a CombinedRecord on every incoming sample.

    Partial records are published as soon as either side has spoken; the
    coordinator never waits for the other source.
    """

    def __init__(self) -> None:
        self._attitude: Optional[AttitudeSample] = None
        self._position: Optional[PositionSample] = None
        self._records: Publisher[CombinedRecord] = Publisher("fusion.records", log)
        self._links: List[tuple] = []
        self.published = 0

    def attach_attitude(self, source: SourceAdapter[AttitudeSample]) -> Subscription:
        sub = source.subscribe(self.on_attitude)
        self._links.append((source, sub))
        return sub

    def attach_position(self, source: SourceAdapter[PositionSample]) -> Subscription:
        sub = source.subscribe(self.on_position)
        self._links.append((source, sub))
        return sub

    @property
    def attached(self) -> bool:
        return bool(self._links)

    def detach_all(self) -> None:
        for source, sub in self._links:
            source.unsubscribe(sub)
        self._links.clear()

    def on_attitude(self, sample: AttitudeSample) -> None:
        self._attitude = sample
        self._publish_latest()

    def on_position(self, sample: PositionSample) -> None:
        self._position = sample
        self._publish_latest()

    def latest(self) -> Optional[CombinedRecord]:
        return CombinedRecord.merge(self._attitude, self._position)

    def subscribe(self, handler: Callable[[CombinedRecord], None]) -> Subscription:
        return self._records.subscribe(handler)

    def unsubscribe(self, sub: Subscription) -> bool:
        return self._records.unsubscribe(sub)

    def _publish_latest(self) -> None:
        record = self.latest()
        if record is None:
            return
        self.published += 1
        self._records.publish(record)
