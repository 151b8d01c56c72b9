from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import List, Optional

from common.errors import LogNotFoundError, LogParseError
from common.logging_setup import get_logger
from common.timers import Clock, now_ms
from common.types import CombinedRecord, Log
from common.utils import log_identifier
from recording.codec import export_json, export_log, parse_log


log = get_logger("recording")


class RecorderState(str, Enum):
    IDLE = "idle"
    ARMED = "armed"


class RecordingStore:
    """
    Append-only capture of live combined records.

    start_logging() arms a fresh session; stop_logging() freezes it into an
    immutable Log that stays available for export and for load_log_file()
    under the session identifier. With `log_dir` set, the frozen Log is also
    written there as JSON.
    """

    def __init__(self, clock: Clock, log_dir: Optional[str] = None):
        self.clock = clock
        self.log_dir = Path(log_dir) if log_dir else None
        self.state = RecorderState.IDLE
        self._buffer: List[CombinedRecord] = []
        self._identifier: Optional[str] = None
        self.started_at: Optional[int] = None
        self._frozen: Optional[Log] = None
        self._frozen_identifier: Optional[str] = None

    def is_logging(self) -> bool:
        return self.state is RecorderState.ARMED

    @property
    def log_path(self) -> Optional[str]:
        """Identifier of the current session, or of the last finished one."""
        return self._identifier if self.is_logging() else self._frozen_identifier

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    def start_logging(self) -> bool:
        if self.is_logging():
            return False
        self.started_at = now_ms(self.clock)
        self._identifier = log_identifier(self.started_at)
        self._buffer = []
        self.state = RecorderState.ARMED
        log.info("Started logging", extra={"extra": {"log": self._identifier}})
        return True

    def append(self, record: CombinedRecord) -> bool:
        if not self.is_logging():
            return False
        self._buffer.append(record)
        return True

    def stop_logging(self) -> Optional[Log]:
        if not self.is_logging():
            return None
        frozen = Log(tuple(self._buffer))
        self.state = RecorderState.IDLE
        self._frozen = frozen
        self._frozen_identifier = self._identifier
        self._buffer = []
        log.info(
            "Stopped logging",
            extra={"extra": {"log": self._frozen_identifier, "records": len(frozen)}},
        )
        if self.log_dir is not None:
            self._persist(frozen, self._frozen_identifier)
        return frozen

    def snapshot(self) -> Log:
        """The in-progress session while armed, else the last frozen Log (possibly empty)."""
        if self.is_logging():
            return Log(tuple(self._buffer))
        return self._frozen if self._frozen is not None else Log()

    def export_log(self, fmt: str = "json") -> str:
        return export_log(self.snapshot(), fmt)

    def load_log_file(self, identifier: str) -> Log:
        """
        Resolve `identifier` to a Log: the current/last session by name first,
        then a file name relative to log_dir.
        """
        log.info("Loading log", extra={"extra": {"log": identifier}})
        if self.is_logging() and identifier == self._identifier:
            return Log(tuple(self._buffer))
        if self._frozen is not None and identifier == self._frozen_identifier:
            return self._frozen

        path = self._resolve(identifier)
        if path is None:
            raise LogNotFoundError(f"no log found for '{identifier}'")
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise LogParseError(f"{identifier}: not UTF-8 text") from e
        except OSError as e:
            raise LogParseError(f"{identifier}: unreadable ({e.strerror or e})") from e
        fmt = "csv" if path.suffix.lower() == ".csv" else "json"
        loaded = parse_log(text, fmt)
        log.info("Loaded log", extra={"extra": {"log": str(path), "records": len(loaded)}})
        return loaded

    def _resolve(self, identifier: str) -> Optional[Path]:
        # only plain names under log_dir; no absolute paths, no escaping it
        if not identifier or self.log_dir is None:
            return None
        rel = Path(identifier)
        if rel.is_absolute() or ".." in rel.parts:
            log.warning("Rejected log identifier outside log_dir", extra={"extra": {"log": identifier}})
            return None
        root = self.log_dir.resolve()
        path = (self.log_dir / rel).resolve()
        if not path.is_relative_to(root) or not path.is_file():
            return None
        return path

    def _persist(self, frozen: Log, identifier: Optional[str]) -> None:
        if self.log_dir is None or identifier is None:
            return
        path = self.log_dir / identifier
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(export_json(frozen), encoding="utf-8")
            log.info("Saved log", extra={"extra": {"path": str(path), "records": len(frozen)}})
        except OSError:
            log.exception("Saving log failed; kept in memory", extra={"extra": {"path": str(path)}})
