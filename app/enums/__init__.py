"""
Enums Module
============

Enumeration types shared across the hub.
"""

from app.enums.anomaly import AnomalySeverity, AnomalyType, RateLimitPolicy

__all__ = [
    "AnomalySeverity",
    "AnomalyType",
    "RateLimitPolicy",
]
