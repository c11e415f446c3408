"""Form validation package."""

from src.validation.form_validator import FormValidator, parse_decimal

__all__ = ["FormValidator", "parse_decimal"]
