"""Infrastructure services shared across the application."""

from .postgres import DATABASE_ERRORS, PostgresDatabase, acquire, ensure_datetime

__all__ = ["DATABASE_ERRORS", "PostgresDatabase", "acquire", "ensure_datetime"]
