from __future__ import annotations

import argparse
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from common.config import StationConfig, load_config
from common.errors import ExportError, InvalidStateError, LogNotFoundError, LogParseError
from common.logging_setup import get_logger, setup_logging
from common.types import Mode
from station.station import GroundStation


log = get_logger("server")

_MEDIA = {"json": "application/json", "csv": "text/csv"}


def create_app(station: Optional[GroundStation] = None, cfg: Optional[StationConfig] = None) -> FastAPI:
    """
    Build the API around one GroundStation.

    Handlers are `async def` so they run on the event-loop thread, the
    thread that fires the station's timers.
    """
    cfg = cfg or (station.cfg if station is not None else load_config())
    gs = station or GroundStation(cfg)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        setup_logging(cfg.log_level)
        gs.init()
        try:
            yield
        finally:
            gs.shutdown()

    app = FastAPI(title="Ground Station Telemetry API", version="1.0.0", lifespan=lifespan)
    app.state.station = gs

    # (Optional) CORS for local dashboards
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(InvalidStateError)
    async def invalid_state(_request, exc: InvalidStateError):
        log.info("Control refused", extra={"extra": {"error": exc.error, **exc.context}})
        return JSONResponse({"error": exc.error, **exc.context}, status_code=409)

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "mode": gs.mode.value,
            "sources": {s.kind: s.is_connected() for s in (gs.attitude, gs.position)},
        }

    @app.get("/status")
    async def status():
        return gs.status()

    @app.get("/record/current")
    async def current_record():
        record = gs.current_record
        if record is None:
            raise HTTPException(status_code=404, detail="no_current_record")
        return record.to_dict()

    @app.post("/mode")
    async def set_mode(mode: Mode = Query(...)):
        changed = gs.set_mode(mode)
        return {"mode": gs.mode.value, "changed": changed}

    @app.post("/logging/start")
    async def start_logging():
        if not gs.modes.is_live:
            raise InvalidStateError("recording_requires_live_mode", mode=gs.mode.value)
        started = gs.start_logging()
        return {"started": started, "log_path": gs.recorder.log_path}

    @app.post("/logging/stop")
    async def stop_logging():
        frozen = gs.stop_logging()
        return {
            "stopped": frozen is not None,
            "records": len(frozen) if frozen is not None else None,
            "log_path": gs.recorder.log_path,
        }

    @app.get("/logging/export")
    async def export_log(format: str = Query("json")):
        try:
            body = gs.export_log(format)
        except ExportError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return Response(content=body, media_type=_MEDIA.get(format.lower(), "text/plain"))

    @app.post("/logs/load")
    async def load_log(identifier: str = Query(...)):
        try:
            loaded = gs.load_log(identifier)
        except LogNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except LogParseError as e:
            raise HTTPException(status_code=422, detail=str(e))
        return {"identifier": identifier, "records": len(loaded), "state": gs.playback.state.value}

    @app.post("/playback/play")
    async def play():
        if not gs.play():
            raise InvalidStateError("cannot_play", mode=gs.mode.value, state=gs.playback.state.value)
        return {"state": gs.playback.state.value, "cursor": gs.playback.cursor}

    @app.post("/playback/pause")
    async def pause():
        paused = gs.pause()
        return {"paused": paused, "state": gs.playback.state.value, "cursor": gs.playback.cursor}

    @app.post("/playback/seek")
    async def seek(index: int = Query(...)):
        record = gs.seek(index)
        if record is None:
            raise InvalidStateError("no_log_loaded")
        return {"cursor": gs.playback.cursor, "record": record.to_dict()}

    @app.post("/playback/speed")
    async def set_speed(multiplier: float = Query(...)):
        if not gs.set_speed(multiplier):
            raise HTTPException(status_code=422, detail="speed_must_be_positive")
        return {"speed": gs.playback.speed}

    return app


# -------- local dev entrypoint --------
def main() -> None:
    ap = argparse.ArgumentParser(description="Ground station telemetry API")
    ap.add_argument("--config", default=None, help="Path to params.yaml")
    ap.add_argument("--host", default=None, help="Bind host (overrides config)")
    ap.add_argument("--port", type=int, default=None, help="Bind port (overrides config)")
    args = ap.parse_args()

    cfg = load_config(args.config)
    setup_logging(cfg.log_level)
    host = args.host or cfg.host
    port = int(args.port or cfg.port)
    log.info("Starting API", extra={"extra": {"host": host, "port": port}})
    uvicorn.run(create_app(cfg=cfg), host=host, port=port)


if __name__ == "__main__":
    main()
