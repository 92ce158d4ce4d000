"""
Exception hierarchy for the template validator.

Only hard failures are raised: a template file that cannot be read, text that
is not JSON, input that does not match the template schema, and unusable
configuration. Rule findings are reported as diagnostics and never raised.
"""

import uuid
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from enum import Enum


class ErrorSeverity(Enum):
    """Error severity levels, mapped onto log levels by ``log_error``."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Stage at which a template could not be checked."""
    SOURCE_ERROR = "source_error"
    SYNTAX_ERROR = "syntax_error"
    STRUCTURE_ERROR = "structure_error"
    CONFIGURATION_ERROR = "configuration_error"


_LOG_LEVELS = {
    ErrorSeverity.LOW: logging.INFO,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.HIGH: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


class TemplateGuardError(Exception):
    """
    Base class for failures that stop a template from being checked.

    Subclasses fix the category and a default severity. Each instance gets a
    correlation id so a failure shown to the user can be matched with its log
    line.
    """

    category = ErrorCategory.STRUCTURE_ERROR
    default_severity = ErrorSeverity.MEDIUM

    def __init__(
        self,
        message: str,
        severity: Optional[ErrorSeverity] = None,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        correlation_id: Optional[str] = None
    ):
        super().__init__(message)

        self.message = message
        self.severity = severity or self.default_severity
        self.context = dict(context or {})
        self.original_exception = original_exception
        self.correlation_id = correlation_id or str(uuid.uuid4())
        self.timestamp = datetime.now(timezone.utc)

        if original_exception is not None:
            self.context['original_error'] = {
                'type': type(original_exception).__name__,
                'message': str(original_exception)
            }

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging."""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'correlation_id': self.correlation_id,
            'category': self.category.value,
            'severity': self.severity.value,
            'context': self.context,
            'timestamp': self.timestamp.isoformat(),
        }

    def log_error(self, logger: logging.Logger, extra_context: Optional[Dict[str, Any]] = None):
        """Log at the level matching the severity, with the context attached."""
        context = dict(self.context)
        if extra_context:
            context.update(extra_context)

        logger.log(
            _LOG_LEVELS[self.severity],
            f"{self.category.value}: {self.message}",
            extra={
                'correlation_id': self.correlation_id,
                'error_category': self.category.value,
                'error_severity': self.severity.value,
                'context': context
            }
        )


class TemplateSourceError(TemplateGuardError):
    """Raised when a template file cannot be read."""

    category = ErrorCategory.SOURCE_ERROR
    default_severity = ErrorSeverity.HIGH

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.path = path
        if path is not None:
            self.context['path'] = path


class TemplateSyntaxError(TemplateGuardError):
    """Raised when template text is not well-formed JSON."""

    category = ErrorCategory.SYNTAX_ERROR

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.line = line
        self.column = column
        if line is not None:
            self.context.update({'line': line, 'column': column})


class TemplateStructureError(TemplateGuardError):
    """Raised when a document does not match the template schema."""

    category = ErrorCategory.STRUCTURE_ERROR

    def __init__(self, message: str, field: str, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        self.context['field'] = field


class ConfigurationError(TemplateGuardError):
    """Raised when validator settings cannot be loaded."""

    category = ErrorCategory.CONFIGURATION_ERROR
    default_severity = ErrorSeverity.HIGH


__all__ = [
    'ErrorSeverity',
    'ErrorCategory',
    'TemplateGuardError',
    'TemplateSourceError',
    'TemplateSyntaxError',
    'TemplateStructureError',
    'ConfigurationError'
]
