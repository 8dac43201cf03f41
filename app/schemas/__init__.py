"""
Schemas Module
==============

Pydantic models for inbound payload validation.
"""

from app.schemas.telemetry import TelemetryPayload, decode_reading

__all__ = ["TelemetryPayload", "decode_reading"]
