"""Shared emoji and colour tables for alert rendering."""

from __future__ import annotations

from app.enums.anomaly import AnomalySeverity, AnomalyType

DEFAULT_EMOJI = "⚠️"

TYPE_EMOJI = {
    AnomalyType.TEMPERATURE: "🌡️",
    AnomalyType.BATTERY: "🔋",
    AnomalyType.ACCESS_ATTEMPTS: "🚪",
    AnomalyType.SIGNAL_STRENGTH: "📶",
    AnomalyType.BEHAVIOR_PATTERN: "🤖",
}

SEVERITY_EMOJI = {
    AnomalySeverity.HIGH: "🚨",
    AnomalySeverity.MEDIUM: "⚠️",
    AnomalySeverity.LOW: "ℹ️",
}

SEVERITY_COLOR = {
    AnomalySeverity.HIGH: "danger",
    AnomalySeverity.MEDIUM: "warning",
    AnomalySeverity.LOW: "good",
}


def type_emoji(anomaly_type: AnomalyType) -> str:
    return TYPE_EMOJI.get(anomaly_type, DEFAULT_EMOJI)


def severity_emoji(severity: AnomalySeverity) -> str:
    return SEVERITY_EMOJI.get(severity, DEFAULT_EMOJI)


def severity_color(severity: AnomalySeverity) -> str:
    return SEVERITY_COLOR.get(severity, "warning")
