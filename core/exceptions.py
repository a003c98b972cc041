"""
Custom exceptions for the import pipeline with structured error context.

This module provides the exception hierarchy used by scrapers, phases,
loaders and the orchestrator. Each exception carries context information
so failures can be logged and stored on the sync log without stack traces.

Exception Hierarchy:
    PipelineError (base)
    ├── ExtractionError
    │   ├── PageLoadError
    │   └── ParseError
    ├── TransformationError
    │   ├── ValidationError
    │   └── SchemaValidationError
    ├── LoadError
    │   └── UpsertError
    ├── CheckpointError
    ├── ImportConflictError
    ├── ImportCancelledError
    └── RetryableError / NonRetryableError / FatalImportError (mixins)
"""

from typing import Optional, Dict, Any
from datetime import datetime


class PipelineError(Exception):
    """
    Base exception for all import pipeline errors.
    
    Attributes:
        message: Human-readable error message
        context: Additional context information (phase, url, entity id, etc.)
        original_exception: The original exception that was caught (if any)
    """
    
    code = "PIPELINE_ERROR"
    
    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.utcnow()
        
        self.context["error_timestamp"] = self.timestamp.isoformat()
        
        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception
    
    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"
        
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"
        
        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"
        
        return base_msg
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(PipelineError):
    """Base exception for failures while pulling pages from the source site."""
    code = "EXTRACTION_ERROR"


class PageLoadError(ExtractionError):
    """
    Exception raised when a page cannot be loaded.
    
    Context should include:
        - url: The page that failed
        - status_code: HTTP status code (if applicable)
    """
    code = "PAGE_LOAD_ERROR"


class ParseError(ExtractionError):
    """
    Exception raised when a page does not have the expected structure.
    
    Context should include:
        - url: The page being parsed
        - selector: The selector or field that could not be read
    """
    code = "PARSE_ERROR"


# ============================================================================
# Transformation Errors
# ============================================================================

class TransformationError(PipelineError):
    """Base exception for record transformation failures."""
    code = "TRANSFORMATION_ERROR"


class ValidationError(TransformationError):
    """
    Exception raised when a raw record fails validation.
    
    Context should include:
        - entity: Entity family (players, games, ...)
        - gomafia_id: External identifier of the record
        - field_errors: Field-level messages
    """
    code = "VALIDATION_ERROR"


class SchemaValidationError(TransformationError):
    """Raised when a raw record does not have a shape a schema can read."""
    code = "SCHEMA_VALIDATION_ERROR"


# ============================================================================
# Load Errors
# ============================================================================

class LoadError(PipelineError):
    """Base exception for storage failures."""
    code = "LOAD_ERROR"


class UpsertError(LoadError):
    """
    Exception raised when an upsert operation fails.
    
    Context should include:
        - table_name: Target table
        - rows: Number of rows in the failed statement batch
    """
    code = "UPSERT_ERROR"


# ============================================================================
# Run Lifecycle Errors
# ============================================================================

class CheckpointError(PipelineError):
    """
    Exception raised when checkpoint persistence fails.
    
    Context should include:
        - phase: Phase whose checkpoint failed
        - operation: Operation that failed (save, load, clear)
    """
    code = "CHECKPOINT_ERROR"


class ImportConflictError(PipelineError):
    """Raised when a run is requested while another run is active."""
    code = "IMPORT_CONFLICT"


class ImportCancelledError(PipelineError):
    """Raised at a safe point after cancel() was requested."""
    code = "IMPORT_CANCELLED"


# ============================================================================
# Retry Strategy Mixins
# ============================================================================

class RetryableError(PipelineError):
    """
    Mixin for errors that should trigger retry logic.
    
    Use this for transient errors like:
    - Network timeouts
    - Rate limiting (HTTP 429)
    - Service unavailable (HTTP 5xx)
    """
    
    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        max_retries: int = 3,
        retry_delay: float = 1.0
    ):
        super().__init__(message, context, original_exception)
        self.max_retries = max_retries
        self.retry_delay = retry_delay


class NonRetryableError(PipelineError):
    """
    Mixin for errors that should NOT trigger retry logic.
    
    Use this for permanent errors like:
    - Authentication failures (HTTP 401, 403)
    - Resource not found (HTTP 404)
    """
    pass


class FatalImportError(NonRetryableError):
    """
    Mixin for errors that abort the whole run.
    
    The orchestrator marks the sync log FAILED and stops at once.
    """
    pass


# ============================================================================
# Specific Retryable Errors
# ============================================================================

class NetworkError(RetryableError, PageLoadError):
    """Network, timeout and 5xx errors that should be retried."""
    code = "NETWORK_ERROR"


class RateLimitError(RetryableError, PageLoadError):
    """Rate limiting errors (HTTP 429) that should be retried with backoff."""
    
    code = "RATE_LIMITED"
    
    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        retry_after: Optional[int] = None
    ):
        super().__init__(message, context, original_exception)
        self.retry_after = retry_after
        if retry_after:
            self.context["retry_after"] = retry_after


# ============================================================================
# Specific Non-Retryable Errors
# ============================================================================

class AuthenticationError(NonRetryableError, PageLoadError):
    """Authentication failures (HTTP 401, 403) that should not be retried."""
    code = "AUTHENTICATION_ERROR"


class ResourceNotFoundError(NonRetryableError, PageLoadError):
    """Resource not found errors (HTTP 404) that should not be retried."""
    code = "NOT_FOUND"


# ============================================================================
# Fatal Errors
# ============================================================================

class SessionLostError(FatalImportError, ExtractionError):
    """The shared browser session is closed or unusable."""
    code = "SESSION_LOST"


class StorageUnavailableError(FatalImportError, LoadError):
    """The database cannot be reached."""
    code = "STORAGE_UNAVAILABLE"


class ImportTimeoutError(FatalImportError):
    """The run exceeded its maximum allowed duration."""
    code = "IMPORT_TIMEOUT"
