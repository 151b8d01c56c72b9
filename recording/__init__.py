"""
Recording: capture combined records while armed, freeze them into a Log,
export to JSON/CSV and load recordings back for playback.
"""
from .codec import CSV_HEADER, export_log, parse_csv, parse_json
from .store import RecorderState, RecordingStore

__all__ = ["CSV_HEADER", "export_log", "parse_csv", "parse_json", "RecorderState", "RecordingStore"]
