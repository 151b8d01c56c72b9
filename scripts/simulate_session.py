#!/usr/bin/env python3
"""
Run the mock attitude/RTK sources on a virtual clock, record a session and
write the export to disk. Optionally replay the recording straight away.

Nothing sleeps: a 10-minute session at 1 Hz is produced instantly and is
reproducible for a given --seed.

Example:
  python scripts/simulate_session.py --duration 60 --format csv --out logs/demo.csv
  python scripts/simulate_session.py --duration 30 --rtk-interval 200 --replay --speed 4
"""
from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from common.config import load_config  # noqa: E402
from common.logging_setup import setup_logging  # noqa: E402
from common.timers import ManualClock  # noqa: E402
from common.types import Mode  # noqa: E402
from playback.scheduler import PlaybackState  # noqa: E402
from recording.codec import summarize  # noqa: E402
from station.station import GroundStation  # noqa: E402


def main() -> None:
    ap = argparse.ArgumentParser(description="Simulate and record a telemetry session")
    ap.add_argument("--config", default=None, help="Path to params.yaml")
    ap.add_argument("--duration", type=float, default=30.0, help="Session length (s)")
    ap.add_argument("--lora-interval", type=int, default=None, help="Attitude interval ms (overrides config)")
    ap.add_argument("--rtk-interval", type=int, default=None, help="RTK interval ms (overrides config)")
    ap.add_argument("--seed", type=int, default=1234, help="RNG seed for both sources")
    ap.add_argument("--start-ms", type=int, default=None, help="Virtual start time (default: now)")
    ap.add_argument("--format", choices=["json", "csv"], default="json")
    ap.add_argument("--out", default=None, help="Output file (default: <log_dir or logs>/<session id>)")
    ap.add_argument("--replay", action="store_true", help="Replay the recording after capture")
    ap.add_argument("--speed", type=float, default=1.0, help="Replay speed multiplier")
    args = ap.parse_args()

    cfg = load_config(args.config)
    setup_logging(cfg.log_level)
    if args.lora_interval:
        cfg.attitude.interval_ms = args.lora_interval
    if args.rtk_interval:
        cfg.position.interval_ms = args.rtk_interval
    cfg.attitude.seed = args.seed
    cfg.position.seed = args.seed + 1

    start_ms = args.start_ms if args.start_ms is not None else int(time.time() * 1000)
    clock = ManualClock(start_s=start_ms / 1000.0)
    gs = GroundStation(cfg, clock=clock)

    links = gs.init()
    if not all(links.values()):
        raise SystemExit(f"Source connection failed: {links}")

    gs.start_logging()
    clock.advance(args.duration)
    rec = gs.stop_logging()
    if rec is None:
        raise SystemExit("Logging was not active")
    print(f"Captured {len(rec)} records: {summarize(rec)}")

    ident = gs.recorder.log_path or "session.json"
    out = Path(args.out) if args.out else Path(cfg.log_dir or "logs") / Path(ident).with_suffix(f".{args.format}")
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(gs.export_log(args.format), encoding="utf-8")
    print(f"Wrote {args.format.upper()} export to {out}")

    if args.replay:
        seen = []
        gs.on_combined_record(seen.append)
        gs.set_mode(Mode.PLAYBACK)
        gs.set_speed(args.speed)
        gs.load_log(ident)
        gs.play()
        while gs.playback.state is PlaybackState.PLAYING:
            clock.advance(gs.playback.period_s())
        print(f"Replayed {len(seen)} records at {args.speed}x "
              f"({len(seen) * gs.playback.period_s():.1f} s of playback time)")

    gs.shutdown()


if __name__ == "__main__":
    main()
