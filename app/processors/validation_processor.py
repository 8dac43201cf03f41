"""
Validation Processor
====================
Validates decoded sensor readings using configurable rules.
"""
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from app.domain.exceptions import ValidationError
from app.domain.reading import SensorReading

logger = logging.getLogger(__name__)

MAX_DEVICE_ID_LENGTH = 50
DEFAULT_TIMESTAMP_SKEW_SECONDS = 3600


class ValidationType(str, Enum):
    """Types of validation rules"""
    RANGE_CHECK = "range_check"
    LENGTH_CHECK = "length_check"
    TIME_WINDOW = "time_window"
    CUSTOM = "custom"


@dataclass
class ValidationRule:
    """
    A single validation rule.
    """
    name: str
    validation_type: ValidationType
    params: Dict[str, Any]
    error_message: str
    is_critical: bool = True  # If False, log warning instead of raising error


@dataclass
class ValidationResult:
    """Result of validation"""
    is_valid: bool
    errors: List[str]
    warnings: List[str]


class ReadingValidator:
    """
    Validates sensor readings using a chain of validation rules.

    Supports:
    - Range validation (min/max), optionally skipping zero ("not reported")
    - String length validation
    - Timestamp freshness relative to the processing clock
    - Custom validation functions
    """

    def __init__(
        self,
        timestamp_skew_seconds: int = DEFAULT_TIMESTAMP_SKEW_SECONDS,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize validation processor.

        Args:
            timestamp_skew_seconds: Allowed distance between device and hub clocks
            clock: Returns current POSIX seconds (defaults to time.time)
        """
        self.timestamp_skew_seconds = timestamp_skew_seconds
        self._clock = clock or time.time
        self.rules: List[ValidationRule] = []
        self._setup_default_rules()

    def _setup_default_rules(self):
        """Setup default validation rules for device telemetry"""
        self.add_rule(ValidationRule(
            name="device_id_length",
            validation_type=ValidationType.LENGTH_CHECK,
            params={'field': 'device_id', 'min': 1, 'max': MAX_DEVICE_ID_LENGTH},
            error_message=f"device_id must be 1-{MAX_DEVICE_ID_LENGTH} characters",
        ))

        self.add_rule(ValidationRule(
            name="timestamp_window",
            validation_type=ValidationType.TIME_WINDOW,
            params={'field': 'timestamp', 'skew': self.timestamp_skew_seconds},
            error_message=f"timestamp outside allowed window (±{self.timestamp_skew_seconds}s)",
        ))

        self.add_range_rule('temperature', -50.0, 100.0, "temperature out of valid range (-50°C to 100°C)")
        self.add_range_rule('humidity', 0.0, 100.0, "humidity out of valid range (0% to 100%)")
        self.add_range_rule('battery_level', 0.0, 100.0, "battery_level out of valid range (0% to 100%)")
        self.add_range_rule('signal_strength', 0.0, 100.0, "signal_strength out of valid range (0% to 100%)")
        self.add_range_rule(
            'access_attempts', 0, 1000, "access_attempts out of valid range (0 to 1000)", skip_zero=False
        )

    def add_range_rule(
        self, field: str, min_value: float, max_value: float, message: str, *, skip_zero: bool = True
    ):
        """Add a min/max rule; zero counts as "not reported" unless skip_zero is False"""
        self.add_rule(ValidationRule(
            name=f"{field}_range",
            validation_type=ValidationType.RANGE_CHECK,
            params={'field': field, 'min': min_value, 'max': max_value, 'skip_zero': skip_zero},
            error_message=message,
        ))

    def add_rule(self, rule: ValidationRule):
        """Add a validation rule to the chain"""
        self.rules.append(rule)

    def check(self, reading: SensorReading) -> ValidationResult:
        """Run every rule and collect the outcome without raising."""
        errors = []
        warnings = []

        for rule in self.rules:
            try:
                passed = self._apply_rule(rule, reading)
            except (TypeError, ValueError) as e:
                logger.error("Validation rule '%s' failed: %s", rule.name, e)
                passed = False
            if not passed:
                message = self._describe_failure(rule, reading)
                if rule.is_critical:
                    errors.append(message)
                else:
                    warnings.append(message)

        return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)

    def validate(self, reading: SensorReading) -> SensorReading:
        """
        Validate a decoded reading.

        Args:
            reading: Reading decoded from the transport payload

        Returns:
            The same reading if valid

        Raises:
            ValidationError: If a critical rule fails; the message lists every violation
        """
        result = self.check(reading)

        for warning in result.warnings:
            logger.warning("Validation warning for %s: %s", reading.device_id, warning)

        if result.errors:
            raise ValidationError(
                f"Validation failed: {'; '.join(result.errors)}",
                errors=result.errors,
                device_id=reading.device_id,
            )

        return reading

    def _apply_rule(self, rule: ValidationRule, reading: SensorReading) -> bool:
        """
        Apply a single validation rule.

        Args:
            rule: Validation rule
            reading: Reading to validate

        Returns:
            True if validation passes
        """
        if rule.validation_type == ValidationType.CUSTOM:
            func = rule.params.get('function')
            return bool(func(reading)) if func else True

        value = getattr(reading, rule.params['field'])

        if rule.validation_type == ValidationType.RANGE_CHECK:
            if rule.params.get('skip_zero') and value == 0:
                return True
            return rule.params['min'] <= value <= rule.params['max']

        if rule.validation_type == ValidationType.LENGTH_CHECK:
            return rule.params['min'] <= len(value) <= rule.params['max']

        if rule.validation_type == ValidationType.TIME_WINDOW:
            now = int(self._clock())
            skew = rule.params['skew']
            return now - skew <= value <= now + skew

        return True

    def _describe_failure(self, rule: ValidationRule, reading: SensorReading) -> str:
        field = rule.params.get('field')
        if field is None:
            return rule.error_message
        return f"{rule.error_message}: got {getattr(reading, field)!r}"
