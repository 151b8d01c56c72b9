from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


DEFAULT_CONFIG_PATH = "config/params.yaml"


@dataclass
class SourceConfig:
    endpoint: str
    interval_ms: int = 1000
    seed: Optional[int] = None


@dataclass
class PlaybackConfig:
    base_period_ms: int = 1000
    speed: float = 1.0
    stop_streams: bool = True  # stop adapter streams while in playback


@dataclass
class StationConfig:
    attitude: SourceConfig = field(default_factory=lambda: SourceConfig(endpoint="COM3"))
    position: SourceConfig = field(default_factory=lambda: SourceConfig(endpoint="COM4"))
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)
    log_dir: Optional[str] = None
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000
    base_url: str = "http://127.0.0.1:8000"


def _source(d: Dict[str, Any], default_endpoint: str) -> SourceConfig:
    seed = d.get("seed")
    return SourceConfig(
        endpoint=str(d.get("endpoint", default_endpoint)),
        interval_ms=int(d.get("interval_ms", 1000)),
        seed=None if seed is None else int(seed),
    )


def config_from_dict(P: Dict[str, Any]) -> StationConfig:
    src = P.get("sources", {}) or {}
    pb = P.get("playback", {}) or {}
    rec = P.get("recording", {}) or {}
    srv = P.get("server", {}) or {}
    log_dir = rec.get("log_dir")
    cfg = StationConfig(
        attitude=_source(src.get("attitude", {}) or {}, "COM3"),
        position=_source(src.get("position", {}) or {}, "COM4"),
        playback=PlaybackConfig(
            base_period_ms=int(pb.get("base_period_ms", 1000)),
            speed=float(pb.get("speed", 1.0)),
            stop_streams=bool(pb.get("stop_streams", True)),
        ),
        log_dir=str(log_dir) if log_dir else None,
        log_level=str((P.get("logging", {}) or {}).get("level", "INFO")),
        host=str(srv.get("host", "0.0.0.0")),
        port=int(srv.get("port", 8000)),
        base_url=str(srv.get("base_url", "http://127.0.0.1:8000")),
    )
    if cfg.playback.base_period_ms <= 0:
        raise ValueError("playback.base_period_ms must be > 0")
    if cfg.playback.speed <= 0:
        raise ValueError("playback.speed must be > 0")
    for s in (cfg.attitude, cfg.position):
        if s.interval_ms <= 0:
            raise ValueError("sources.*.interval_ms must be > 0")
    return cfg


def load_config(path: Optional[str] = None) -> StationConfig:
    """
    Read params.yaml. Path precedence: explicit arg, env GROUNDSTATION_CONFIG,
    config/params.yaml. A missing file yields the built-in defaults.
    """
    p = Path(path or os.environ.get("GROUNDSTATION_CONFIG") or DEFAULT_CONFIG_PATH)
    if not p.exists():
        return StationConfig()
    with open(p, "r") as f:
        return config_from_dict(yaml.safe_load(f) or {})
