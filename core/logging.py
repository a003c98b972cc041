"""
Logging configuration
"""

import logging
import sys
from core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


CONTEXT_KEYS = ("url", "item_id", "status_code", "retry_after")


class ErrorContextFormatter(logging.Formatter):
    """
    Appends the page and item details of records logged with
    extra={"error_context": {...}} (an orchestrator error entry or
    PipelineError.to_dict()).
    """
    
    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        entry = getattr(record, "error_context", None)
        if not isinstance(entry, dict):
            return message
        
        context = entry.get("context") or {}
        details = [f"{key}={context[key]}" for key in CONTEXT_KEYS if context.get(key) is not None]
        if entry.get("will_retry"):
            details.append("will_retry")
        return f"{message} [{' '.join(details)}]" if details else message


def setup_logging():
    """Configure application logging"""
    
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ErrorContextFormatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    
    logging.basicConfig(level=log_level, handlers=[handler])
    
    # Library loggers are chatty at INFO
    for name in ("sqlalchemy.engine", "sqlalchemy.pool", "httpx", "apscheduler"):
        logging.getLogger(name).setLevel(logging.WARNING)
    
    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured at {settings.LOG_LEVEL} level")
