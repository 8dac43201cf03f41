"""
Service Organization
====================

**ingest_pipeline**
  Admission, validation, detection and quarantine for one reading.

**quarantine_manager**
  Time-boxed isolation of misbehaving devices.

**detection/**
  Stateless threshold rules and stateful per-device behavior analysis.

**mqtt_telemetry_service / telemetry_handler**
  Transport adapter feeding MQTT messages into the pipeline.

**container**
  ``ServiceContainer`` wiring every component for one process.
"""

from .ingest_pipeline import DeviceReport, IngestPipeline
from .quarantine_manager import QuarantineManager
from .telemetry_handler import TelemetryHandler

__all__ = [
    "DeviceReport",
    "IngestPipeline",
    "QuarantineManager",
    "TelemetryHandler",
]
