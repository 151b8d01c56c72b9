"""
Ground Station Test Suite

Structure:
- unit/: Unit tests for individual components (types, timers, sources,
  fusion, recording, playback, mode control, config, logging)
- integration/: GroundStation wiring and the HTTP control surface
- factories.py: sample/record builders shared by both
"""
