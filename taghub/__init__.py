"""Sensor tag to cloud hub telemetry gateway."""

__version__ = "0.1.0"
