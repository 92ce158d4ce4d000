"""
Template parsing, statistics and helpers

``TemplateParser.parse_json`` turns raw text into a validated ``Template``.
It fails in one of two ways: text that is not JSON, reported with a line and
column, or a document that does not match the schema, reported with the
path of the first field in violation. ``parse_file`` adds a third: a file
that cannot be read.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from template_guard.exceptions import (
    TemplateGuardError,
    TemplateSourceError,
    TemplateStructureError,
    TemplateSyntaxError,
)
from template_guard.models.template_models import (
    NAME_MAX_LENGTH,
    NAME_PATTERN,
    BodyComponent,
    ButtonType,
    ButtonsComponent,
    ComponentType,
    FooterComponent,
    HeaderComponent,
    HeaderFormat,
    Template,
    UrlButton,
    button_text,
)
from template_guard.validators.placeholders import VARIABLE_PATTERN, count_variables

logger = logging.getLogger(__name__)

# Discriminator tags pydantic inserts into error locations
_UNION_TAGS = {t.value for t in ComponentType} | {t.value for t in ButtonType}

SOURCE_FAILURE = "source"
SYNTAX_FAILURE = "syntax"
STRUCTURE_FAILURE = "structure"


@dataclass
class ParseResult:
    """Outcome of parsing template text"""
    success: bool
    data: Optional[Template] = None
    error: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    field: Optional[str] = None
    kind: Optional[str] = None
    source: Optional[str] = None

    def to_exception(self) -> TemplateGuardError:
        """Build the exception describing this failure"""
        if self.success:
            raise ValueError("A successful parse has no failure to describe")
        if self.kind == SOURCE_FAILURE:
            return TemplateSourceError(self.error, path=self.source)
        if self.kind == SYNTAX_FAILURE:
            return TemplateSyntaxError(self.error, line=self.line, column=self.column)
        return TemplateStructureError(self.error, field=self.field)

    def unwrap(self) -> Template:
        """Return the template or raise the matching exception"""
        if self.success:
            return self.data
        raise self.to_exception()

    def to_dict(self) -> Dict[str, Any]:
        result = {'success': self.success}
        if self.success:
            result['data'] = self.data.to_dict()
            return result
        result['error'] = self.error
        if self.line is not None:
            result['line'] = self.line
            result['column'] = self.column
        if self.field is not None:
            result['field'] = self.field
        return result


class SizeClass(str, Enum):
    """Message size buckets by total character count"""
    SMALL = "Small"
    MEDIUM = "Medium"
    LARGE = "Large"
    VERY_LARGE = "VeryLarge"

    @classmethod
    def for_characters(cls, characters: int) -> 'SizeClass':
        if characters < 100:
            return cls.SMALL
        if characters < 500:
            return cls.MEDIUM
        if characters < 1000:
            return cls.LARGE
        return cls.VERY_LARGE


@dataclass
class TemplateStats:
    """Read-only figures about a template"""
    total_characters: int = 0
    component_counts: Dict[str, int] = field(
        default_factory=lambda: {"header": 0, "body": 0, "footer": 0, "buttons": 0}
    )
    variable_count: int = 0
    button_count: int = 0
    size_class: SizeClass = SizeClass.SMALL

    def to_dict(self) -> Dict[str, Any]:
        return {
            'totalCharacters': self.total_characters,
            'componentCounts': dict(self.component_counts),
            'variableCount': self.variable_count,
            'buttonCount': self.button_count,
            'sizeClass': self.size_class.value,
        }


@dataclass(frozen=True)
class VariableOccurrence:
    """One ``{{n}}`` found in a template"""
    component: str
    variable: str
    position: int

    @property
    def number(self) -> int:
        return int(self.variable[2:-2])


@dataclass(frozen=True)
class NameCheck:
    """Result of checking a template name on its own"""
    valid: bool
    error: Optional[str] = None
    suggestion: Optional[str] = None


def get_line_and_column(text: str, position: int) -> Tuple[int, int]:
    """
    Convert a character offset into a 1-based line and column.

    The column counts characters since the last newline before ``position``.
    """
    lines = text[:max(position, 0)].split("\n")
    return len(lines), len(lines[-1]) + 1


def format_error_location(location: Tuple[Any, ...]) -> str:
    """
    Render a pydantic error location as a field path.

    ``('components', 1, 'BUTTONS', 'buttons', 0, 'URL', 'url')`` becomes
    ``components[1].buttons[0].url``.
    """
    path = ""
    for part in location:
        if isinstance(part, int):
            path += f"[{part}]"
        elif part in _UNION_TAGS:
            continue
        else:
            path += f".{part}" if path else str(part)
    return path or "<root>"


class TemplateParser:
    """Parse and inspect templates"""

    @staticmethod
    def parse_json(json_string: str) -> ParseResult:
        """
        Parse JSON text into a validated template.

        Args:
            json_string: Raw template document

        Returns:
            ParseResult holding the template, or the first failure
        """
        try:
            raw_data = json.loads(json_string)
        except json.JSONDecodeError as e:
            line, column = get_line_and_column(json_string, e.pos)
            logger.debug(f"JSON syntax error at line {line}, column {column}: {e.msg}")
            return ParseResult(
                success=False,
                error=f"JSON syntax error: {e.msg}",
                line=line,
                column=column,
                kind=SYNTAX_FAILURE,
            )
        except (RecursionError, ValueError) as e:
            # No offset is available, e.g. nesting deeper than the decoder supports
            logger.debug(f"JSON could not be decoded: {e}")
            return ParseResult(
                success=False,
                error=f"JSON syntax error: {e}",
                kind=SYNTAX_FAILURE,
            )

        return TemplateParser.parse_data(raw_data)

    @staticmethod
    def parse_data(raw_data: Any) -> ParseResult:
        """Validate an already decoded document against the schema"""
        try:
            template = Template.model_validate(raw_data)
        except PydanticValidationError as e:
            first_error = e.errors()[0]
            field_path = format_error_location(first_error['loc'])
            message = first_error['msg']
            if message.startswith("Value error, "):
                message = message[len("Value error, "):]
            logger.debug(f"Schema violation at {field_path}: {message}")
            return ParseResult(
                success=False,
                error=f"Validation error: {message} at {field_path}",
                field=field_path,
                kind=STRUCTURE_FAILURE,
            )

        return ParseResult(success=True, data=template)

    @staticmethod
    def parse_file(path: str) -> ParseResult:
        """Read a UTF-8 template file and parse it"""
        try:
            with open(path, 'r', encoding='utf-8') as f:
                text = f.read()
        except FileNotFoundError:
            logger.debug(f"Template file not found: {path}")
            return ParseResult(success=False, error="File not found", kind=SOURCE_FAILURE, source=path)
        except UnicodeDecodeError as e:
            logger.debug(f"Template file is not UTF-8: {path}: {e}")
            return ParseResult(
                success=False,
                error=f"File is not valid UTF-8 (byte offset {e.start})",
                kind=SOURCE_FAILURE,
                source=path,
            )
        except OSError as e:
            logger.debug(f"Template file could not be read: {path}: {e}")
            return ParseResult(
                success=False,
                error=f"File could not be read: {e.strerror or e}",
                kind=SOURCE_FAILURE,
                source=path,
            )

        result = TemplateParser.parse_json(text)
        result.source = path
        return result

    @staticmethod
    def load(json_string: str) -> Template:
        """Parse JSON text, raising on failure"""
        return TemplateParser.parse_json(json_string).unwrap()

    @staticmethod
    def get_template_stats(template: Template) -> TemplateStats:
        """Count characters, components, variables and buttons"""
        stats = TemplateStats()

        for component in template.components:
            if isinstance(component, HeaderComponent):
                stats.component_counts["header"] += 1
                if component.format == HeaderFormat.TEXT and component.text:
                    stats.total_characters += len(component.text)
                    stats.variable_count += count_variables(component.text)
            elif isinstance(component, BodyComponent):
                stats.component_counts["body"] += 1
                stats.total_characters += len(component.text)
                stats.variable_count += count_variables(component.text)
            elif isinstance(component, FooterComponent):
                stats.component_counts["footer"] += 1
                stats.total_characters += len(component.text)
            elif isinstance(component, ButtonsComponent):
                stats.component_counts["buttons"] += 1
                stats.button_count = len(component.buttons)
                for button in component.buttons:
                    text = button_text(button)
                    if text:
                        stats.total_characters += len(text)
                    if isinstance(button, UrlButton):
                        stats.variable_count += count_variables(button.url)
            else:
                raise TemplateStructureError(
                    f"Unsupported component type: {type(component).__name__}", field="components"
                )

        stats.size_class = SizeClass.for_characters(stats.total_characters)
        return stats

    @staticmethod
    def extract_variables(template: Template) -> List[VariableOccurrence]:
        """List every placeholder, ordered by number then appearance"""
        variables: List[VariableOccurrence] = []

        def extract_from_text(text: str, component_name: str) -> None:
            for match in VARIABLE_PATTERN.finditer(text):
                variables.append(VariableOccurrence(component_name, match.group(0), match.start()))

        for index, component in enumerate(template.components):
            component_name = f"{component.type.lower()}[{index}]"
            if isinstance(component, HeaderComponent):
                if component.format == HeaderFormat.TEXT and component.text:
                    extract_from_text(component.text, component_name)
            elif isinstance(component, BodyComponent):
                extract_from_text(component.text, component_name)
            elif isinstance(component, ButtonsComponent):
                for button_index, button in enumerate(component.buttons):
                    if isinstance(button, UrlButton):
                        extract_from_text(button.url, f"{component_name}.buttons[{button_index}].url")

        # sorted() is stable, so equal numbers keep their appearance order
        return sorted(variables, key=lambda occurrence: occurrence.number)

    @staticmethod
    def validate_template_name(name: str) -> NameCheck:
        """Check a template name and suggest improvements"""
        if not name:
            return NameCheck(
                valid=False,
                error="Template name is required",
                suggestion="Enter a template name using lowercase letters, numbers, and underscores",
            )

        if len(name) > NAME_MAX_LENGTH:
            return NameCheck(
                valid=False,
                error=f"Template name cannot exceed {NAME_MAX_LENGTH} characters",
                suggestion=f"Reduce name by {len(name) - NAME_MAX_LENGTH} characters",
            )

        if not NAME_PATTERN.fullmatch(name):
            return NameCheck(
                valid=False,
                error="Template name can only contain lowercase letters, numbers, and underscores",
                suggestion="Use only a-z, 0-9, and _ characters. Example: my_template_name",
            )

        if len(name) < 3:
            return NameCheck(
                valid=True,
                error="Template name is very short",
                suggestion="Consider using a more descriptive name (3+ characters)",
            )

        if "__" in name:
            return NameCheck(
                valid=True,
                error="Template name contains consecutive underscores",
                suggestion="Use single underscores to separate words",
            )

        return NameCheck(valid=True)

    @staticmethod
    def format_for_display(template: Template) -> str:
        """Indented JSON with the original field names"""
        return json.dumps(template.to_dict(), indent=2, ensure_ascii=False)

    @staticmethod
    def minify(template: Template) -> str:
        return json.dumps(template.to_dict(), separators=(",", ":"), ensure_ascii=False)


parse_json = TemplateParser.parse_json
get_template_stats = TemplateParser.get_template_stats
extract_variables = TemplateParser.extract_variables
validate_template_name = TemplateParser.validate_template_name
