"""
Command line interface for template validation.

    template-guard validate order_confirm.json --format json
    template-guard stats order_confirm.json
    template-guard schema
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from template_guard.config.settings import get_settings
from template_guard.exceptions import ConfigurationError
from template_guard.models.template_models import Template
from template_guard.parsers.template_parser import TemplateParser
from template_guard.utils.logger import Logger
from template_guard.utils.reporting import format_parse_failure, generate_validation_report
from template_guard.validators.rule_engine import TemplateRuleEngine

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_UNPARSEABLE = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="template-guard",
        description="Validate message templates before submitting them for approval"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate_parser = subparsers.add_parser("validate", help="Validate template files")
    validate_parser.add_argument("files", nargs="+", help="Template JSON files")
    validate_parser.add_argument("--format", choices=["text", "json"], default="text", help="Report format")
    validate_parser.add_argument("--stats", action="store_true", help="Include template statistics")
    validate_parser.add_argument("--strict", action="store_true", default=None,
                                 help="Fail when a template has warnings")
    validate_parser.add_argument("--output", help="Write the report to a file")

    stats_parser = subparsers.add_parser("stats", help="Show template statistics")
    stats_parser.add_argument("file", help="Template JSON file")

    subparsers.add_parser("schema", help="Print the JSON Schema of the template model")

    return parser


def _validate_files(args, settings) -> int:
    engine = TemplateRuleEngine.from_settings(settings)
    strict = settings.strict if args.strict is None else args.strict
    exit_code = EXIT_OK
    outputs = []

    for path in args.files:
        result = TemplateParser.parse_file(path)
        if not result.success:
            result.to_exception().log_error(logger, {'source': path})
            outputs.append(format_parse_failure(result, source=path, format=args.format))
            exit_code = max(exit_code, EXIT_UNPARSEABLE)
            continue

        template = result.data
        report = engine.validate(template)
        Logger.log_validation_summary(template.name, report, source=path)

        stats = TemplateParser.get_template_stats(template) if args.stats else None
        outputs.append(generate_validation_report(
            report, format=args.format, template_name=template.name, stats=stats
        ))

        if not report.is_valid or (strict and report.has_warnings):
            exit_code = max(exit_code, EXIT_INVALID)

    output = "\n".join(outputs)
    if args.output:
        Path(args.output).write_text(output, encoding='utf-8')
        print(f"Report saved to {args.output}")
    else:
        print(output)

    return exit_code


def _show_stats(args) -> int:
    result = TemplateParser.parse_file(args.file)
    if not result.success:
        result.to_exception().log_error(logger, {'source': args.file})
        print(format_parse_failure(result, source=args.file))
        return EXIT_UNPARSEABLE

    stats = TemplateParser.get_template_stats(result.data)
    print(json.dumps(stats.to_dict(), indent=2))
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Command line entry point"""
    args = _build_parser().parse_args(argv)

    try:
        settings = get_settings()
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return EXIT_UNPARSEABLE

    Logger.setup_logger("template_guard", settings.log_level.value)

    if args.command == "validate":
        return _validate_files(args, settings)
    if args.command == "stats":
        return _show_stats(args)

    print(json.dumps(Template.model_json_schema(by_alias=True), indent=2))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
