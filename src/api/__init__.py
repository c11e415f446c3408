"""HTTP handlers package."""

from src.api.email_handlers import create_email_app

__all__ = ["create_email_app"]
