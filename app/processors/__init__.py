"""
Reading processors.
"""

from .validation_processor import ReadingValidator, ValidationResult, ValidationRule, ValidationType

__all__ = ["ReadingValidator", "ValidationResult", "ValidationRule", "ValidationType"]
