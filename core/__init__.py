"""
Core utilities and configuration for the Mafia Insight importer.

This package provides foundational components used throughout the pipeline:

Modules:
    config: Application configuration and environment variable management
    database: Database connection and session management
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration and utilities

Usage:
    from core.config import settings
    from core.database import async_session_maker
    from core.exceptions import NetworkError, SessionLostError
    from core.logging import setup_logging
"""

__all__ = [
    "settings",
    "async_session_maker",
    "setup_logging",
    # Exceptions
    "PipelineError",
    "ExtractionError",
    "PageLoadError",
    "ParseError",
    "TransformationError",
    "ValidationError",
    "SchemaValidationError",
    "LoadError",
    "UpsertError",
    "CheckpointError",
    "ImportConflictError",
    "ImportCancelledError",
    "RetryableError",
    "NonRetryableError",
    "FatalImportError",
    "NetworkError",
    "RateLimitError",
    "AuthenticationError",
    "ResourceNotFoundError",
    "SessionLostError",
    "StorageUnavailableError",
    "ImportTimeoutError",
]
