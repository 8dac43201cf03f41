"""
Anomaly detectors: fixed thresholds and per-device behavior drift.
"""

from .behavior_analyzer import BehaviorAnalyzer, BehaviorResult
from .threshold_detector import ThresholdDetector

__all__ = ["BehaviorAnalyzer", "BehaviorResult", "ThresholdDetector"]
