"""
HTTP control surface for the ground station (FastAPI).

Run:
    python -m server.app --config config/params.yaml
"""
