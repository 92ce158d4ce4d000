"""
Human and machine readable renderings of validation reports.
"""

import json
from typing import Optional

from template_guard.models.diagnostics import Severity, ValidationReport
from template_guard.parsers.template_parser import ParseResult, TemplateStats

_SEVERITY_MARKERS = {
    Severity.ERROR: "❌",
    Severity.WARNING: "⚠️",
    Severity.INFO: "ℹ️",
}


def generate_validation_report(
    report: ValidationReport,
    format: str = "text",
    template_name: Optional[str] = None,
    stats: Optional[TemplateStats] = None
) -> str:
    """
    Generate a validation report.

    Args:
        report: Report produced by the rule engine
        format: Report format ("text" or "json")
        template_name: Name shown in the text header
        stats: Optional statistics to include

    Returns:
        Formatted validation report
    """
    if format == "json":
        data = report.to_dict()
        if stats is not None:
            data['stats'] = stats.to_dict()
        return json.dumps(data, indent=2, ensure_ascii=False)

    return _generate_text_report(report, template_name, stats)


def _generate_text_report(
    report: ValidationReport,
    template_name: Optional[str],
    stats: Optional[TemplateStats]
) -> str:
    title = f"Template Validation Report: {template_name}" if template_name else "Template Validation Report"
    lines = [title, "=" * 40, ""]

    status = "✅ Ready for submission" if report.is_valid else "❌ Not ready for submission"
    if report.is_valid and (report.warnings or report.info):
        status += " (review suggestions below)"
    lines.append(status)

    counts = report.counts()
    lines.append(f"Errors: {counts['error']}")
    lines.append(f"Warnings: {counts['warning']}")
    lines.append(f"Info: {counts['info']}")
    lines.append("")

    if stats is not None:
        lines.append(f"Characters: {stats.total_characters} ({stats.size_class.value})")
        lines.append(f"Variables: {stats.variable_count}")
        lines.append(f"Buttons: {stats.button_count}")
        lines.append("")

    sections = (
        (Severity.ERROR, report.errors),
        (Severity.WARNING, report.warnings),
        (Severity.INFO, report.info),
    )
    for severity, diagnostics in sections:
        if not diagnostics:
            continue

        lines.append(f"{_SEVERITY_MARKERS[severity]} {severity.value.upper()} ({len(diagnostics)})")
        lines.append("-" * 30)
        for diagnostic in diagnostics:
            lines.append(f"• {diagnostic.field}: {diagnostic.message}")
            if diagnostic.suggestion:
                lines.append(f"  💡 {diagnostic.suggestion}")
        lines.append("")

    return "\n".join(lines)


def format_parse_failure(result: ParseResult, source: Optional[str] = None, format: str = "text") -> str:
    """Render a syntax or schema failure"""
    if format == "json":
        return json.dumps(result.to_dict(), indent=2, ensure_ascii=False)

    prefix = f"{source}: " if source else ""
    if result.line is not None:
        return f"{prefix}{result.error} (line {result.line}, column {result.column})"
    return f"{prefix}{result.error}"
