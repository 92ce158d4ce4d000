"""
Local validation of message templates before they are submitted for approval.

    result = parse_json(text)
    if result.success:
        report = validate_template(result.data)
"""

from template_guard.models import Diagnostic, Severity, Template, ValidationReport
from template_guard.parsers.template_parser import (
    ParseResult,
    TemplateParser,
    TemplateStats,
    get_template_stats,
    parse_json,
)
from template_guard.validators.rule_engine import TemplateRuleEngine, validate_template

__version__ = "1.0.0"

__all__ = [
    'Diagnostic',
    'Severity',
    'Template',
    'ValidationReport',
    'ParseResult',
    'TemplateParser',
    'TemplateStats',
    'TemplateRuleEngine',
    'get_template_stats',
    'parse_json',
    'validate_template'
]
