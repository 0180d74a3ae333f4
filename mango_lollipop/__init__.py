"""Mango Lollipop — lifecycle messaging scaffolding and document generation."""
from .config import PROJECT_VERSION as __version__
from .schema import ValidationResult, validate_analysis, validate_message

__all__ = ["__version__", "ValidationResult", "validate_analysis", "validate_message"]
