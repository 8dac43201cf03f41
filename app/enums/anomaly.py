"""
Anomaly Enumerations
====================

Anomaly classification shared by detectors, stores and notifiers.
"""

from enum import Enum


class AnomalyType(str, Enum):
    """
    Kind of anomaly raised for a device.
    Used by: ThresholdDetector, BehaviorAnalyzer, IngestPipeline, notifiers
    """
    TEMPERATURE = "temperature"
    BATTERY = "battery"
    ACCESS_ATTEMPTS = "access_attempts"
    SIGNAL_STRENGTH = "signal_strength"
    BEHAVIOR_PATTERN = "behavior_pattern"

    def __str__(self) -> str:
        return self.value


class AnomalySeverity(str, Enum):
    """
    Severity attached to an anomaly.

    Every detector currently emits MEDIUM; notifiers still render the
    three levels distinctly.
    """
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    def __str__(self) -> str:
        return self.value


class RateLimitPolicy(str, Enum):
    """Admission window strategy for the rate limiter."""
    SLIDING = "sliding"
    FIXED = "fixed"

    def __str__(self) -> str:
        return self.value
