"""
app/validators package marker.
"""

from app.validators.mapping_validator import MappingErrorDetail, MappingValidationError, MappingValidator

__all__ = [
    "MappingErrorDetail",
    "MappingValidationError",
    "MappingValidator",
]
