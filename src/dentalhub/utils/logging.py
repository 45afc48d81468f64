"""Logging configuration for DentalHub."""

import logging
import sys
from typing import Any, Dict, Optional

import structlog
from structlog.stdlib import BoundLogger, LoggerFactory

from dentalhub.config import Settings, get_settings


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Configure structured logging for the application."""
    settings = settings or get_settings()

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper()),
    )

    # Configure structlog
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            render_processor(settings),
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def render_processor(settings: Settings) -> Any:
    """Choose renderer based on environment."""
    if settings.log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def get_logger(name: str) -> BoundLogger:
    """Get a configured logger instance."""
    bound_logger: BoundLogger = structlog.get_logger(name)
    return bound_logger


class SecurityEventLogger:
    """Mirrors audit trail and action log entries to the log stream."""

    def __init__(self) -> None:
        """Initialize security event logger."""
        self.logger = get_logger("audit")

    def log_audit_entry(self, entry: Dict[str, Any]) -> None:
        """Log an actor-on-target audit entry."""
        self.logger.info(
            "audit_entry_recorded",
            action=entry.get("action"),
            actor_id=entry.get("actor_id"),
            target_id=entry.get("target_id"),
            details=entry.get("details"),
        )

    def log_action(self, entry: Dict[str, Any]) -> None:
        """Log a clinic-scoped operational event."""
        self.logger.info(
            "action_recorded",
            clinic_id=entry.get("clinic_id"),
            user_id=entry.get("user_id"),
            action=entry.get("action"),
            entity=entry.get("entity"),
            entity_id=entry.get("entity_id"),
            ip_address=entry.get("ip"),
        )

    def log_authentication(
        self,
        username: str,
        action: str,
        success: bool,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log authentication events."""
        self.logger.info(
            "authentication_event",
            username=username,
            action=action,
            success=success,
            details=details or {},
        )


# Global logger instances
logger = get_logger(__name__)
security_event_logger = SecurityEventLogger()
