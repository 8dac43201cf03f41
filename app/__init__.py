"""
IoT Security Hub
================
Telemetry ingest, anomaly detection and device quarantine for IoT fleets.
"""

__version__ = "1.0.0"
