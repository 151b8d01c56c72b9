"""
Unit tests for the recording store
"""

import json
import os
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.errors import ExportError, LogNotFoundError, LogParseError
from common.timers import ManualClock
from recording import RecordingStore
from recording.codec import export_csv
from tests.factories import make_log, record

START_S = 1_700_000_000.0
IDENT = "rocket_telemetry_2023-11-14T22-13-20.000Z.json"


@pytest.fixture
def store():
    return RecordingStore(ManualClock(start_s=START_S))


@pytest.fixture
def disk_store(tmp_path):
    return RecordingStore(ManualClock(start_s=START_S), log_dir=str(tmp_path))


class TestCapture:
    def test_idle_ignores_records(self, store):
        assert store.append(record(1)) is False
        assert len(store.snapshot()) == 0

    def test_armed_captures_in_order(self, store):
        assert store.start_logging() is True
        assert store.log_path == IDENT
        for ts in (10, 20, 30):
            assert store.append(record(ts))
        assert store.buffered == 3
        frozen = store.stop_logging()
        assert [r.timestamp for r in frozen] == [10, 20, 30]
        assert not store.is_logging()
        assert store.log_path == IDENT

    def test_start_while_armed_is_noop(self, store):
        store.start_logging()
        store.append(record(1))
        assert store.start_logging() is False
        assert store.buffered == 1

    def test_stop_when_idle(self, store):
        assert store.stop_logging() is None

    def test_immediate_stop_yields_empty_log(self, store):
        store.start_logging()
        frozen = store.stop_logging()
        assert frozen is not None and len(frozen) == 0

    def test_new_session_starts_empty(self, store):
        store.start_logging()
        store.append(record(1))
        store.stop_logging()
        store.clock.advance(5.0)
        store.start_logging()
        assert store.buffered == 0
        assert store.log_path != IDENT


class TestExport:
    def test_export_before_any_session_is_empty(self, store):
        assert json.loads(store.export_log("json")) == []

    def test_export_while_armed_covers_current_session(self, store):
        store.start_logging()
        store.append(record(1))
        assert len(json.loads(store.export_log("json"))) == 1

    def test_export_after_stop_uses_frozen_log(self, store):
        store.start_logging()
        store.append(record(1))
        store.append(record(2))
        store.stop_logging()
        store.append(record(3))
        lines = store.export_log("csv").strip().split("\n")
        assert len(lines) == 3

    def test_export_unknown_format(self, store):
        with pytest.raises(ExportError):
            store.export_log("parquet")


class TestLoad:
    def test_load_finished_session_by_identifier(self, store):
        store.start_logging()
        store.append(record(5))
        frozen = store.stop_logging()
        assert store.load_log_file(IDENT) is frozen

    def test_load_empty_session_by_identifier(self, store):
        store.start_logging()
        store.stop_logging()
        assert len(store.load_log_file(IDENT)) == 0

    def test_load_current_session_while_armed(self, store):
        store.start_logging()
        store.append(record(5))
        assert len(store.load_log_file(IDENT)) == 1
        assert store.is_logging()

    def test_load_json_file(self, disk_store, tmp_path):
        log = make_log(4)
        (tmp_path / "flight.json").write_text(
            json.dumps([{"timestamp": r.timestamp, "data": r.to_dict()} for r in log])
        )
        assert disk_store.load_log_file("flight.json") == log

    def test_load_csv_file(self, disk_store, tmp_path):
        log = make_log(3)
        (tmp_path / "flight.csv").write_text(export_csv(log))
        assert disk_store.load_log_file("flight.csv") == log

    def test_load_from_subdirectory_of_log_dir(self, disk_store, tmp_path):
        (tmp_path / "day1").mkdir()
        (tmp_path / "day1" / "old.json").write_text("[]")
        assert len(disk_store.load_log_file("day1/old.json")) == 0

    def test_missing_log(self, store):
        with pytest.raises(LogNotFoundError):
            store.load_log_file("does_not_exist.json")
        with pytest.raises(FileNotFoundError):
            store.load_log_file("")

    def test_files_need_a_log_dir(self, store, tmp_path):
        path = tmp_path / "flight.json"
        path.write_text("[]")
        with pytest.raises(LogNotFoundError):
            store.load_log_file(str(path))

    def test_absolute_path_rejected(self, disk_store, tmp_path):
        path = tmp_path / "flight.json"
        path.write_text("[]")
        with pytest.raises(LogNotFoundError):
            disk_store.load_log_file(str(path))

    def test_parent_segments_rejected(self, tmp_path):
        (tmp_path / "outside.json").write_text("[]")
        (tmp_path / "logs").mkdir()
        store = RecordingStore(ManualClock(), log_dir=str(tmp_path / "logs"))
        with pytest.raises(LogNotFoundError):
            store.load_log_file("../outside.json")
        with pytest.raises(LogNotFoundError):
            store.load_log_file("sub/../../outside.json")

    def test_symlink_out_of_log_dir_rejected(self, tmp_path):
        (tmp_path / "outside.json").write_text("[]")
        (tmp_path / "logs").mkdir()
        (tmp_path / "logs" / "link.json").symlink_to(tmp_path / "outside.json")
        store = RecordingStore(ManualClock(), log_dir=str(tmp_path / "logs"))
        with pytest.raises(LogNotFoundError):
            store.load_log_file("link.json")

    def test_corrupt_log(self, disk_store, tmp_path):
        (tmp_path / "bad.json").write_text("[{")
        with pytest.raises(LogParseError):
            disk_store.load_log_file("bad.json")

    def test_binary_file(self, disk_store, tmp_path):
        (tmp_path / "blob.json").write_bytes(b"\xff\xfe\x00\x81")
        with pytest.raises(LogParseError):
            disk_store.load_log_file("blob.json")

    def test_unreadable_file(self, disk_store, tmp_path):
        (tmp_path / "locked.json").write_text("[]")
        with patch.object(Path, "read_text", side_effect=PermissionError(13, "Permission denied")):
            with pytest.raises(LogParseError, match="unreadable"):
                disk_store.load_log_file("locked.json")

    def test_overflowing_number_in_file(self, disk_store, tmp_path):
        entry = {"timestamp": 1000, "data": make_log(1)[0].to_dict()}
        text = json.dumps([entry]).replace('"x": 10.0', '"x": 1' + "0" * 400, 1)
        (tmp_path / "huge.json").write_text(text)
        with pytest.raises(LogParseError):
            disk_store.load_log_file("huge.json")


class TestPersistence:
    def test_stop_writes_json_to_log_dir(self, tmp_path):
        store = RecordingStore(ManualClock(start_s=START_S), log_dir=str(tmp_path / "rec"))
        store.start_logging()
        store.append(record(1))
        store.stop_logging()
        saved = tmp_path / "rec" / IDENT
        assert saved.is_file()
        entries = json.loads(saved.read_text())
        assert entries[0]["timestamp"] == 1

        # a fresh store finds it on disk
        other = RecordingStore(ManualClock(), log_dir=str(tmp_path / "rec"))
        assert len(other.load_log_file(IDENT)) == 1

    def test_unwritable_log_dir_keeps_log_in_memory(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        store = RecordingStore(ManualClock(start_s=START_S), log_dir=str(blocker / "sub"))
        store.start_logging()
        store.append(record(1))
        frozen = store.stop_logging()
        assert len(frozen) == 1
        assert store.load_log_file(IDENT) is frozen
