from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, Mapping, Optional, Sequence, Tuple, Union, overload


EpochMs = int


def _as_int_ms(x: Any) -> EpochMs:
    v = int(x)
    if v < 0:
        raise ValueError("timestamp must be >= 0")
    return v


@dataclass(frozen=True, slots=True)
class Vector3:
    """Three scalar components, no units attached."""
    x: float
    y: float
    z: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "x", float(self.x))
        object.__setattr__(self, "y", float(self.y))
        object.__setattr__(self, "z", float(self.z))

    @classmethod
    def from_seq(cls, v: Sequence[float]) -> "Vector3":
        if len(v) != 3:
            raise ValueError("Vector3 needs exactly 3 components")
        return cls(v[0], v[1], v[2])

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Vector3":
        return cls(d["x"], d["y"], d["z"])

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z}


@dataclass(frozen=True, slots=True)
class AttitudeSample:
    """
    One reading from the attitude/inertial link (the rocket's LoRa downlink).

    Attributes:
        timestamp: ms since epoch on the source clock.
        euler_counter: on-board fusion counter.
        euler_angles, velocity, gravity: body-frame vectors.
        angular_acceleration, linear_acceleration: body-frame vectors.
        free_heap_size: flight computer free memory (bytes).
        servo_angle: actuator angle (deg).
    """
    timestamp: EpochMs
    euler_counter: int
    euler_angles: Vector3
    velocity: Vector3
    gravity: Vector3
    angular_acceleration: Vector3
    linear_acceleration: Vector3
    free_heap_size: int
    servo_angle: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", _as_int_ms(self.timestamp))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "eulerCounter": self.euler_counter,
            "eulerAngles": self.euler_angles.to_dict(),
            "velocity": self.velocity.to_dict(),
            "gravity": self.gravity.to_dict(),
            "angularAcceleration": self.angular_acceleration.to_dict(),
            "linearAcceleration": self.linear_acceleration.to_dict(),
            "freeHeapSize": self.free_heap_size,
            "servoMotorAngle": self.servo_angle,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "AttitudeSample":
        return cls(
            timestamp=d["timestamp"],
            euler_counter=int(d["eulerCounter"]),
            euler_angles=Vector3.from_dict(d["eulerAngles"]),
            velocity=Vector3.from_dict(d["velocity"]),
            gravity=Vector3.from_dict(d["gravity"]),
            angular_acceleration=Vector3.from_dict(d["angularAcceleration"]),
            linear_acceleration=Vector3.from_dict(d["linearAcceleration"]),
            free_heap_size=int(d["freeHeapSize"]),
            servo_angle=float(d["servoMotorAngle"]),
        )


@dataclass(frozen=True, slots=True)
class PositionSample:
    """One RTK GNSS reading: local position and orientation."""
    timestamp: EpochMs
    position: Vector3
    orientation: Vector3

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", _as_int_ms(self.timestamp))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "position": self.position.to_dict(),
            "orientation": self.orientation.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "PositionSample":
        return cls(
            timestamp=d["timestamp"],
            position=Vector3.from_dict(d["position"]),
            orientation=Vector3.from_dict(d["orientation"]),
        )


Sample = Union[AttitudeSample, PositionSample]


@dataclass(frozen=True, slots=True)
class CombinedRecord:
    """
    Fused view of the latest sample from each source.

    Either side may be absent (that source has said nothing yet), never both.
    """
    timestamp: EpochMs
    attitude: Optional[AttitudeSample] = None
    position: Optional[PositionSample] = None

    def __post_init__(self) -> None:
        if self.attitude is None and self.position is None:
            raise ValueError("CombinedRecord needs at least one sample")
        object.__setattr__(self, "timestamp", _as_int_ms(self.timestamp))

    @classmethod
    def merge(cls, attitude: Optional[AttitudeSample], position: Optional[PositionSample]) -> Optional["CombinedRecord"]:
        """Stamp with the newest present sample; None when both are absent."""
        stamps = [s.timestamp for s in (attitude, position) if s is not None]
        if not stamps:
            return None
        return cls(timestamp=max(stamps), attitude=attitude, position=position)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"timestamp": self.timestamp}
        if self.attitude is not None:
            d["lora"] = self.attitude.to_dict()
        if self.position is not None:
            d["rtk"] = self.position.to_dict()
        return d

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "CombinedRecord":
        lora = d.get("lora")
        rtk = d.get("rtk")
        return cls(
            timestamp=d["timestamp"],
            attitude=AttitudeSample.from_dict(lora) if lora is not None else None,
            position=PositionSample.from_dict(rtk) if rtk is not None else None,
        )


@dataclass(frozen=True)
class Log:
    """Immutable, timestamp-ordered sequence of CombinedRecords."""
    records: Tuple[CombinedRecord, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        recs = tuple(self.records)
        for prev, cur in zip(recs, recs[1:]):
            if cur.timestamp < prev.timestamp:
                raise ValueError(
                    f"log timestamps must be non-decreasing ({cur.timestamp} after {prev.timestamp})"
                )
        object.__setattr__(self, "records", recs)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[CombinedRecord]:
        return iter(self.records)

    @overload
    def __getitem__(self, i: int) -> CombinedRecord: ...
    @overload
    def __getitem__(self, i: slice) -> Tuple[CombinedRecord, ...]: ...
    def __getitem__(self, i):
        return self.records[i]

    @property
    def span_ms(self) -> int:
        if not self.records:
            return 0
        return self.records[-1].timestamp - self.records[0].timestamp


class Mode(str, Enum):
    LIVE = "live"
    PLAYBACK = "playback"
