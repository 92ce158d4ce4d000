"""
Diagnostics and validation reports

A ``Diagnostic`` is one finding of the rule engine. A ``ValidationReport``
partitions a run's diagnostics by severity while keeping their order.
Both are immutable values.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple


class Severity(str, Enum):
    """Diagnostic severity levels"""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class Diagnostic:
    """A single reported issue"""
    field: str
    message: str
    suggestion: Optional[str] = None
    severity: Severity = Severity.ERROR
    code: str = ""

    @classmethod
    def error(cls, field: str, message: str, suggestion: Optional[str] = None, code: str = "") -> 'Diagnostic':
        return cls(field, message, suggestion, Severity.ERROR, code)

    @classmethod
    def warning(cls, field: str, message: str, suggestion: Optional[str] = None, code: str = "") -> 'Diagnostic':
        return cls(field, message, suggestion, Severity.WARNING, code)

    @classmethod
    def info(cls, field: str, message: str, suggestion: Optional[str] = None, code: str = "") -> 'Diagnostic':
        return cls(field, message, suggestion, Severity.INFO, code)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        data = {
            'field': self.field,
            'message': self.message,
            'severity': self.severity.value,
        }
        if self.suggestion is not None:
            data['suggestion'] = self.suggestion
        if self.code:
            data['code'] = self.code
        return data

    def __str__(self) -> str:
        return f"[{self.severity.value.upper()}] {self.field}: {self.message}"


@dataclass(frozen=True)
class ValidationReport:
    """
    Outcome of validating one template.

    ``is_valid`` holds exactly when there are no error diagnostics; warnings
    and info never affect it.
    """
    errors: Tuple[Diagnostic, ...] = ()
    warnings: Tuple[Diagnostic, ...] = ()
    info: Tuple[Diagnostic, ...] = ()

    @classmethod
    def from_diagnostics(cls, diagnostics: Iterable[Diagnostic]) -> 'ValidationReport':
        """Partition diagnostics by severity, preserving their order."""
        buckets = {severity: [] for severity in Severity}
        for diagnostic in diagnostics:
            buckets[diagnostic.severity].append(diagnostic)
        return cls(
            errors=tuple(buckets[Severity.ERROR]),
            warnings=tuple(buckets[Severity.WARNING]),
            info=tuple(buckets[Severity.INFO]),
        )

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    def counts(self) -> Dict[str, int]:
        return {
            Severity.ERROR.value: len(self.errors),
            Severity.WARNING.value: len(self.warnings),
            Severity.INFO.value: len(self.info),
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON report shape"""
        return {
            'isValid': self.is_valid,
            'errors': [d.to_dict() for d in self.errors],
            'warnings': [d.to_dict() for d in self.warnings],
            'info': [d.to_dict() for d in self.info],
        }
