from __future__ import annotations

import csv
import io
import json
from typing import Any, Dict, List, Optional, Sequence

from common.errors import ExportError, LogParseError
from common.types import AttitudeSample, CombinedRecord, Log, PositionSample, Vector3


CSV_HEADER = [
    "timestamp", "eulerCounter", "eulerX", "eulerY", "eulerZ",
    "velocityX", "velocityY", "velocityZ",
    "gravityX", "gravityY", "gravityZ",
    "angAccelX", "angAccelY", "angAccelZ",
    "linAccelX", "linAccelY", "linAccelZ",
    "freeHeapSize", "servoAngle",
    "rtkPosX", "rtkPosY", "rtkPosZ",
    "rtkOrientX", "rtkOrientY", "rtkOrientZ",
]

# column slices of CSV_HEADER
_ATT = slice(1, 19)
_POS = slice(19, 25)

FORMATS = ("json", "csv")


# ---------------------------
# JSON (full fidelity)
# ---------------------------

def export_json(log: Log) -> str:
    entries = [{"timestamp": r.timestamp, "data": r.to_dict()} for r in log]
    return json.dumps(entries, indent=2)


def parse_json(text: str) -> Log:
    """
    Accepts the export shape [{timestamp, data: {...}}] as well as a bare
    array of combined records.
    """
    try:
        entries = json.loads(text)
    except json.JSONDecodeError as e:
        raise LogParseError(f"invalid JSON: {e}") from e
    if not isinstance(entries, list):
        raise LogParseError("log must be a JSON array")
    records: List[CombinedRecord] = []
    for i, entry in enumerate(entries):
        try:
            d = entry["data"] if isinstance(entry, dict) and "data" in entry else entry
            if "timestamp" not in d and isinstance(entry, dict):
                d = {**d, "timestamp": entry["timestamp"]}
            records.append(CombinedRecord.from_dict(d))
        except (AttributeError, KeyError, OverflowError, TypeError, ValueError) as e:
            raise LogParseError(f"entry {i}: {e!r}") from e
    return _to_log(records)


# ---------------------------
# CSV (flat, lossy)
# ---------------------------

def _cell(v: Any) -> str:
    return "" if v is None else str(v)


def _vec_cells(v: Optional[Vector3]) -> List[str]:
    if v is None:
        return ["", "", ""]
    return [_cell(v.x), _cell(v.y), _cell(v.z)]


def _row(r: CombinedRecord) -> List[str]:
    a = r.attitude
    p = r.position
    row = [_cell(r.timestamp)]
    if a is not None:
        row.append(_cell(a.euler_counter))
        for v in (a.euler_angles, a.velocity, a.gravity, a.angular_acceleration, a.linear_acceleration):
            row.extend(_vec_cells(v))
        row.extend([_cell(a.free_heap_size), _cell(a.servo_angle)])
    else:
        row.extend([""] * 18)
    row.extend(_vec_cells(p.position if p else None))
    row.extend(_vec_cells(p.orientation if p else None))
    return row


def export_csv(log: Log) -> str:
    """Absent samples render as empty cells; per-sample timestamps are dropped."""
    buf = io.StringIO()
    w = csv.writer(buf, lineterminator="\n")
    w.writerow(CSV_HEADER)
    for r in log:
        w.writerow(_row(r))
    return buf.getvalue()


def _vec(cells: Sequence[str]) -> Vector3:
    return Vector3(float(cells[0]), float(cells[1]), float(cells[2]))


def _present(cells: Sequence[str], what: str) -> bool:
    filled = [c != "" for c in cells]
    if all(filled):
        return True
    if any(filled):
        raise ValueError(f"partially empty {what} columns")
    return False


def parse_csv(text: str) -> Log:
    """
    Inverse of export_csv as far as the format allows: each sample takes the
    row timestamp because the per-source timestamps are not exported.
    """
    reader = csv.reader(io.StringIO(text))
    header = next(reader, None)
    if header is None:
        raise LogParseError("empty CSV")
    if [h.strip() for h in header] != CSV_HEADER:
        raise LogParseError("unexpected CSV header")
    records: List[CombinedRecord] = []
    for lineno, row in enumerate(reader, start=2):
        if not row:
            continue
        try:
            if len(row) != len(CSV_HEADER):
                raise ValueError(f"expected {len(CSV_HEADER)} columns, got {len(row)}")
            ts = int(row[0])
            att = row[_ATT]
            pos = row[_POS]
            attitude = None
            if _present(att, "attitude"):
                attitude = AttitudeSample(
                    timestamp=ts,
                    euler_counter=int(att[0]),
                    euler_angles=_vec(att[1:4]),
                    velocity=_vec(att[4:7]),
                    gravity=_vec(att[7:10]),
                    angular_acceleration=_vec(att[10:13]),
                    linear_acceleration=_vec(att[13:16]),
                    free_heap_size=int(att[16]),
                    servo_angle=float(att[17]),
                )
            position = None
            if _present(pos, "position"):
                position = PositionSample(timestamp=ts, position=_vec(pos[0:3]), orientation=_vec(pos[3:6]))
            records.append(CombinedRecord(timestamp=ts, attitude=attitude, position=position))
        except (OverflowError, ValueError) as e:
            raise LogParseError(f"line {lineno}: {e}") from e
    return _to_log(records)


def _to_log(records: List[CombinedRecord]) -> Log:
    try:
        return Log(tuple(records))
    except ValueError as e:
        raise LogParseError(str(e)) from e


def export_log(log: Log, fmt: str) -> str:
    fmt = fmt.lower()
    if fmt not in FORMATS:
        raise ExportError(f"unsupported export format '{fmt}' (use json or csv)")
    try:
        return export_json(log) if fmt == "json" else export_csv(log)
    except (TypeError, ValueError) as e:
        raise ExportError(f"{fmt} export failed: {e}") from e


def parse_log(text: str, fmt: str) -> Log:
    return parse_csv(text) if fmt.lower() == "csv" else parse_json(text)


def summarize(log: Log) -> Dict[str, Any]:
    with_att = sum(1 for r in log if r.attitude is not None)
    with_pos = sum(1 for r in log if r.position is not None)
    return {
        "records": len(log),
        "with_attitude": with_att,
        "with_position": with_pos,
        "first_ts": log[0].timestamp if len(log) else None,
        "last_ts": log[-1].timestamp if len(log) else None,
        "span_ms": log.span_ms,
    }
