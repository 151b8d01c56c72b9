from __future__ import annotations

from typing import Callable, Generic, Iterable, Optional, TypeVar

from common.errors import SourceConnectionError
from common.events import Publisher, Subscription
from common.logging_setup import get_logger
from common.timers import Clock, PeriodicTask
from common.types import AttitudeSample, PositionSample
from common.utils import RateTimer


S = TypeVar("S", AttitudeSample, PositionSample)

log = get_logger("sources")


class SourceAdapter(Generic[S]):
    """
    One telemetry feed behind a uniform contract.

    connect() reports failure as False and never raises. Once streaming, a
    failed read skips that tick and the stream keeps going. Listeners are
    called synchronously, once per sample, in arrival order.

    Subclasses implement _read() and optionally _open()/_close().

    Args:
        clock: drives the emission timer and sample timestamps.
        interval_ms: emission period.
        reachable: endpoints that accept a connection (None = any non-empty).
    """

    kind = "source"

    def __init__(self, clock: Clock, interval_ms: int = 1000, reachable: Optional[Iterable[str]] = None):
        if interval_ms <= 0:
            raise ValueError("interval_ms must be > 0")
        self.clock = clock
        self.interval_ms = int(interval_ms)
        self._reachable = None if reachable is None else set(reachable)
        self._endpoint: Optional[str] = None
        self._connected = False
        self._latest: Optional[S] = None
        self._samples: Publisher[S] = Publisher(f"{self.kind}.samples", log)
        self._task = PeriodicTask(clock, self._tick, lambda: self.interval_ms / 1000.0, name=f"{self.kind}.stream")
        self.rate = RateTimer()
        self.skipped_ticks = 0

    # ---- connection ----

    @property
    def endpoint(self) -> Optional[str]:
        return self._endpoint

    def is_connected(self) -> bool:
        return self._connected

    def connect(self, endpoint: str) -> bool:
        if self._connected and endpoint == self._endpoint:
            return True
        if self._connected:
            self.disconnect()
        try:
            self._open(endpoint)
        except SourceConnectionError as e:
            log.warning(
                "Connect failed",
                extra={"extra": {"source": self.kind, "endpoint": endpoint, "error": str(e)}},
            )
            return False
        except Exception:
            log.exception("Connect raised", extra={"extra": {"source": self.kind, "endpoint": endpoint}})
            return False
        self._endpoint = endpoint
        self._connected = True
        log.info("Connected", extra={"extra": {"source": self.kind, "endpoint": endpoint}})
        return True

    def disconnect(self) -> bool:
        if not self._connected:
            return False
        self.stop_stream()
        ok = True
        try:
            self._close()
        except Exception:
            log.exception("Disconnect raised", extra={"extra": {"source": self.kind, "endpoint": self._endpoint}})
            ok = False
        log.info("Disconnected", extra={"extra": {"source": self.kind, "endpoint": self._endpoint}})
        self._connected = False
        self._endpoint = None
        return ok

    # ---- streaming ----

    @property
    def streaming(self) -> bool:
        return self._task.running

    def start_stream(self) -> None:
        if not self._connected:
            log.warning("start_stream ignored: not connected", extra={"extra": {"source": self.kind}})
            return
        if self._task.start():
            self.rate.reset()
            log.info("Stream started", extra={"extra": {"source": self.kind, "interval_ms": self.interval_ms}})

    def stop_stream(self) -> None:
        if self._task.cancel():
            log.info("Stream stopped", extra={"extra": {"source": self.kind}})

    def subscribe(self, on_sample: Callable[[S], None]) -> Subscription:
        return self._samples.subscribe(on_sample)

    def unsubscribe(self, sub: Subscription) -> bool:
        return self._samples.unsubscribe(sub)

    def get_latest(self) -> Optional[S]:
        return self._latest

    def emit(self, sample: S) -> None:
        """Record `sample` as latest and fan it out to listeners."""
        self._latest = sample
        self.rate.tick(sample.timestamp)
        self._samples.publish(sample)

    def _tick(self) -> None:
        try:
            sample = self._read()
        except Exception as e:
            self.skipped_ticks += 1
            log.warning("Read failed; tick skipped", extra={"extra": {"source": self.kind, "error": str(e)}})
            return
        if sample is None:
            self.skipped_ticks += 1
            return
        self.emit(sample)

    # ---- subclass hooks ----

    def _open(self, endpoint: str) -> None:
        """Raise SourceConnectionError when `endpoint` cannot be opened."""
        if not endpoint:
            raise SourceConnectionError("empty endpoint")
        if self._reachable is not None and endpoint not in self._reachable:
            raise SourceConnectionError(f"{endpoint} is not reachable")

    def _close(self) -> None:
        pass

    def _read(self) -> Optional[S]:
        raise NotImplementedError
