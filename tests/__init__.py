"""Test package for Sequence Tap.

Engine tests drive the session controller with a fake clock or explicit
ticks, so they are fully deterministic. The pygame smoke tests use SDL's
dummy video driver to avoid opening real windows. Run ``pytest`` from the
project root.
"""
