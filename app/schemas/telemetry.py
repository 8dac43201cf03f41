"""
Telemetry Schemas
=================

Pydantic model for the inbound device payload (JSON object).

Only structure and types are checked here. Field ranges are validated by
the ingest pipeline after admission, because a range violation must
quarantine the device while a malformed payload is simply dropped.
"""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from app.domain.exceptions import DecodeError
from app.domain.reading import SensorReading


class TelemetryPayload(BaseModel):
    """Wire model for one device transmission."""

    # strict: a JSON value of the wrong type is malformed, never coerced
    model_config = ConfigDict(extra="ignore", strict=True)

    device_id: str = Field(..., description="Device identifier (1-50 chars, checked later)")
    device_type: Optional[str] = Field(default=None, description="Free-form device kind")
    timestamp: int = Field(..., description="POSIX seconds at the device")
    security_level: Optional[str] = None

    temperature: Optional[float] = Field(default=None, description="°C")
    humidity: Optional[float] = Field(default=None, description="%")
    battery_level: Optional[float] = Field(default=None, description="%")
    signal_strength: Optional[float] = Field(default=None, description="%")
    access_attempts: Optional[int] = Field(default=0)

    motion_detected: Optional[bool] = None
    recording: Optional[bool] = None
    locked: Optional[bool] = None

    def to_reading(self) -> SensorReading:
        """Build the immutable reading; absent numbers become 0."""
        return SensorReading(
            device_id=self.device_id,
            timestamp=self.timestamp,
            device_type=self.device_type or "",
            security_level=self.security_level or "",
            temperature=self.temperature or 0.0,
            humidity=self.humidity or 0.0,
            battery_level=self.battery_level or 0.0,
            signal_strength=self.signal_strength or 0.0,
            access_attempts=self.access_attempts or 0,
            motion_detected=self.motion_detected,
            recording=self.recording,
            locked=self.locked,
        )


def decode_reading(payload: Union[bytes, str]) -> SensorReading:
    """
    Decode a raw transport payload into a SensorReading.

    Raises:
        DecodeError: payload is not a JSON object matching TelemetryPayload
    """
    try:
        model = TelemetryPayload.model_validate_json(payload)
    except PydanticValidationError as exc:
        fields = sorted({".".join(str(p) for p in err.get("loc", ())) or "<root>" for err in exc.errors()})
        raise DecodeError(
            f"malformed telemetry payload ({', '.join(fields)})",
            detail={"errors": exc.errors(include_url=False, include_input=False)},
        ) from exc
    return model.to_reading()
