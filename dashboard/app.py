"""
Ground Station Dashboard (Streamlit)

- Polls the ground-station API for the current combined record and status
- Shows live KPIs: mode, source link state, recording/playback state
- Tables the attitude and position vectors of the current record
- Sidebar controls map 1:1 to the API (mode, recording, load, play/pause,
  seek, speed)

Run:
    python -m server.app            # in one terminal
    streamlit run dashboard/app.py  # in another
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
import requests
import streamlit as st

# Allow `streamlit run dashboard/app.py` from the repo root
sys.path.append(str(Path(__file__).resolve().parents[1]))

from common.config import load_config  # noqa: E402
from common.utils import format_date, format_time  # noqa: E402


# -------------------------
# Config
# -------------------------
BASE_URL_DEFAULT = load_config().base_url
TIMEOUT_S = 2.0

ATTITUDE_VECTORS = [
    ("eulerAngles", "Euler angles"),
    ("velocity", "Velocity"),
    ("gravity", "Gravity"),
    ("angularAcceleration", "Angular accel"),
    ("linearAcceleration", "Linear accel"),
]
POSITION_VECTORS = [("position", "Position"), ("orientation", "Orientation")]


# -------------------------
# Helpers
# -------------------------
def api_get(base: str, path: str, **params: Any) -> Optional[Dict[str, Any]]:
    try:
        r = requests.get(f"{base}{path}", params=params, timeout=TIMEOUT_S)
    except requests.RequestException:
        return None
    if r.status_code != 200:
        return None
    return r.json()


def api_post(base: str, path: str, **params: Any) -> Optional[str]:
    """Returns an error message, or None on success."""
    try:
        r = requests.post(f"{base}{path}", params=params, timeout=TIMEOUT_S)
    except requests.RequestException as e:
        return str(e)
    if r.status_code != 200:
        return f"{r.status_code}: {r.text[:200]}"
    return None


def vectors_frame(sample: Optional[Dict[str, Any]], fields: List[tuple]) -> Optional[pd.DataFrame]:
    if not sample:
        return None
    rows = []
    for key, label in fields:
        v = sample.get(key) or {}
        rows.append({"vector": label, "x": v.get("x"), "y": v.get("y"), "z": v.get("z")})
    return pd.DataFrame(rows).set_index("vector")


# -------------------------
# UI
# -------------------------
st.set_page_config(page_title="Ground Station", layout="wide")
st.title("Ground Station: Rocket Telemetry")

with st.sidebar:
    st.subheader("Connection")
    base = st.text_input("API base URL", BASE_URL_DEFAULT).rstrip("/")
    status = api_get(base, "/status")
    if status is None:
        st.error("API unreachable. Start it with `python -m server.app`.")
        st.stop()

    live = status["mode"] == "live"
    err: Optional[str] = None

    st.subheader("Mode")
    if st.toggle("Live mode", value=live) != live:
        err = api_post(base, "/mode", mode="playback" if live else "live")

    if live:
        st.subheader("Recording")
        rec = status["recording"]
        if rec["state"] == "armed":
            st.caption(f"Recording to {rec['log_path']} ({rec['buffered']} records)")
            if st.button("Stop logging"):
                err = api_post(base, "/logging/stop")
        elif st.button("Start logging"):
            err = api_post(base, "/logging/start")
    else:
        st.subheader("Playback")
        pb = status["playback"]
        ident = st.text_input("Log file", status["recording"]["log_path"] or "")
        if st.button("Load log") and ident:
            err = api_post(base, "/logs/load", identifier=ident)
        if pb["length"] > 0:
            c1, c2 = st.columns(2)
            if c1.button("Play", disabled=pb["state"] == "playing"):
                err = api_post(base, "/playback/play")
            if c2.button("Pause", disabled=pb["state"] != "playing"):
                err = api_post(base, "/playback/pause")
            idx = st.slider("Position", 0, pb["length"] - 1, int(pb["cursor"] or 0))
            if idx != pb["cursor"]:
                err = api_post(base, "/playback/seek", index=idx)
            speed = st.select_slider("Speed", options=[0.25, 0.5, 1.0, 2.0, 4.0, 8.0], value=pb["speed"])
            if speed != pb["speed"]:
                err = api_post(base, "/playback/speed", multiplier=speed)
        else:
            st.caption("No log loaded.")

    if err:
        st.warning(err)
    st.button("Refresh now")

record = api_get(base, "/record/current")

# KPI row
k1, k2, k3, k4 = st.columns(4)
k1.metric("Mode", status["mode"].upper())
src = status["sources"]
k2.metric("Attitude link", "UP" if src["attitude"]["connected"] else "DOWN", f"{src['attitude']['rate_hz']:.2f} Hz")
k3.metric("RTK link", "UP" if src["position"]["connected"] else "DOWN", f"{src['position']['rate_hz']:.2f} Hz")
k4.metric("Record time", format_time(record["timestamp"]) if record else "-")

if record is None:
    st.info("No telemetry to display yet.")
    st.stop()

left, right = st.columns(2)
with left:
    st.subheader("Attitude (LoRa)")
    lora = record.get("lora")
    df = vectors_frame(lora, ATTITUDE_VECTORS)
    if df is None:
        st.caption("No attitude data this tick.")
    else:
        st.dataframe(df, use_container_width=True)
        st.caption(
            f"Euler counter {lora['eulerCounter']} · free heap {lora['freeHeapSize']} B · "
            f"servo {lora['servoMotorAngle']:.1f}°"
        )

with right:
    st.subheader("Position (RTK)")
    df = vectors_frame(record.get("rtk"), POSITION_VECTORS)
    if df is None:
        st.caption("No position data this tick.")
    else:
        st.dataframe(df, use_container_width=True)

pb = status["playback"]
st.caption(
    f"Source: {base} · Record: {format_date(record['timestamp'])} · "
    f"Playback {pb['state']} {pb['cursor'] if pb['cursor'] is not None else '-'}/{pb['length']}"
)
