"""
Unit tests for template parsing, statistics and helpers
"""

import json

import pytest

from template_guard.exceptions import TemplateSourceError, TemplateStructureError, TemplateSyntaxError
from template_guard.models.template_models import Template
from template_guard.parsers.template_parser import (
    ParseResult,
    SizeClass,
    TemplateParser,
    extract_variables,
    format_error_location,
    get_line_and_column,
    get_template_stats,
    parse_json,
    validate_template_name,
)


class TestLineAndColumn:
    """Test offset to position mapping"""

    def test_start_of_text(self):
        assert get_line_and_column("abc", 0) == (1, 1)

    def test_same_line(self):
        assert get_line_and_column("abc", 2) == (1, 3)

    def test_after_newline(self):
        """Test the column restarts after each newline"""
        assert get_line_and_column("ab\ncd\nef", 7) == (3, 2)

    def test_position_on_newline(self):
        assert get_line_and_column("ab\ncd", 2) == (1, 3)


class TestFormatErrorLocation:
    """Test rendering of pydantic error locations"""

    def test_nested_path_drops_union_tags(self):
        loc = ("components", 1, "BUTTONS", "buttons", 0, "URL", "url")
        assert format_error_location(loc) == "components[1].buttons[0].url"

    def test_top_level_field(self):
        assert format_error_location(("name",)) == "name"

    def test_empty_location(self):
        assert format_error_location(()) == "<root>"


class TestParseJson:
    """Test parsing raw text"""

    def test_valid_template(self, marketing_json):
        """Test a valid document parses into a Template"""
        result = parse_json(marketing_json)

        assert result.success
        assert isinstance(result.data, Template)
        assert result.error is None

    def test_syntax_error_position(self):
        """Test a missing value is located by line and column"""
        text = '{\n  "name": \n}'

        result = parse_json(text)

        assert not result.success
        assert result.kind == "syntax"
        assert result.error.startswith("JSON syntax error:")
        assert result.line == 3
        assert result.column == 1

    def test_empty_text(self):
        """Test empty input is a syntax failure"""
        result = parse_json("")

        assert not result.success
        assert (result.line, result.column) == (1, 1)

    def test_structure_error_names_field(self, utility_data):
        """Test a schema violation carries the first failing field"""
        utility_data["name"] = "x!"

        result = parse_json(json.dumps(utility_data))

        assert not result.success
        assert result.kind == "structure"
        assert result.field == "name"
        assert result.line is None
        assert result.error == (
            "Validation error: Template name can only contain lowercase letters, "
            "numbers, and underscores at name"
        )

    def test_structure_error_in_component(self, utility_data):
        """Test component errors use an indexed path"""
        utility_data["components"][0]["text"] = "Hi {{1}}, {{3}}"

        result = parse_json(json.dumps(utility_data))

        assert result.field == "components[0].text"
        assert "sequential" in result.error

    def test_structure_error_in_button(self, marketing_data):
        """Test button errors skip the union tags"""
        marketing_data["components"][3]["buttons"][0]["url"] = "not a url"

        result = parse_json(json.dumps(marketing_data))

        assert result.field == "components[3].buttons[0].url"

    def test_not_an_object(self):
        """Test a JSON array is a structure failure"""
        result = parse_json("[]")

        assert not result.success
        assert result.kind == "structure"
        assert result.field == "<root>"

    def test_multi_byte_text(self, utility_data):
        """Test non-ASCII text survives parsing"""
        utility_data["components"][0]["text"] = "คำสั่งซื้อ {{1}} ได้รับการยืนยัน ✅"
        result = parse_json(json.dumps(utility_data, ensure_ascii=False))

        assert result.success
        assert result.data.body.text.endswith("✅")

    def test_nesting_too_deep_is_a_syntax_failure(self):
        """Test input deeper than the decoder supports is reported, not raised"""
        result = parse_json("[" * 200000 + "]" * 200000)

        assert not result.success
        assert result.kind == "syntax"
        assert result.error.startswith("JSON syntax error:")
        assert result.line is None


class TestParseFile:
    """Test parsing template files"""

    def test_valid_file(self, template_file, utility_data):
        path = template_file(utility_data)

        result = TemplateParser.parse_file(path)

        assert result.success
        assert result.source == path
        assert result.data.name == "order_confirm"

    def test_missing_file(self, tmp_path):
        """Test a missing file is a source failure"""
        path = str(tmp_path / "missing.json")

        result = TemplateParser.parse_file(path)

        assert not result.success
        assert result.kind == "source"
        assert result.error == "File not found"
        assert result.source == path

    def test_file_not_utf8(self, tmp_path):
        """Test undecodable bytes are a source failure"""
        path = tmp_path / "latin1.json"
        path.write_bytes(b'{"name": "caf\xff"}')

        result = TemplateParser.parse_file(str(path))

        assert result.kind == "source"
        assert "not valid UTF-8" in result.error

    def test_directory_is_a_source_failure(self, tmp_path):
        result = TemplateParser.parse_file(str(tmp_path))

        assert result.kind == "source"

    def test_syntax_failure_keeps_path(self, template_file):
        path = template_file("{")

        result = TemplateParser.parse_file(path)

        assert result.kind == "syntax"
        assert result.source == path


class TestParseResult:
    """Test ParseResult helpers"""

    def test_unwrap_success(self, marketing_json):
        assert TemplateParser.load(marketing_json).name == "example_marketing_template"

    def test_unwrap_syntax_failure(self):
        """Test syntax failures raise with their position"""
        with pytest.raises(TemplateSyntaxError) as exc_info:
            TemplateParser.load("{")

        assert exc_info.value.line == 1
        assert exc_info.value.context["column"] == exc_info.value.column

    def test_unwrap_structure_failure(self):
        """Test structure failures raise with their field"""
        with pytest.raises(TemplateStructureError) as exc_info:
            TemplateParser.load('{"name": "ok", "language": "en", "category": "UTILITY", "components": []}')

        assert exc_info.value.field == "components"

    def test_source_failure_exception(self, tmp_path):
        """Test unreadable files map to TemplateSourceError"""
        path = str(tmp_path / "missing.json")

        error = TemplateParser.parse_file(path).to_exception()

        assert isinstance(error, TemplateSourceError)
        assert error.path == path
        assert error.context["path"] == path

    def test_success_has_no_exception(self, marketing_json):
        with pytest.raises(ValueError):
            parse_json(marketing_json).to_exception()

    def test_to_dict(self):
        """Test failure serialization"""
        result = ParseResult(success=False, error="JSON syntax error: boom", line=2, column=5, kind="syntax")
        assert result.to_dict() == {
            'success': False,
            'error': "JSON syntax error: boom",
            'line': 2,
            'column': 5,
        }


class TestTemplateStats:
    """Test statistics projection"""

    def test_marketing_stats(self, marketing_template):
        """Test counts for a template with every component"""
        stats = get_template_stats(marketing_template)

        body = marketing_template.body.text
        expected_characters = len(body) + len("Limited time offer") + len("Shop Now") + len("Learn More")
        assert stats.total_characters == expected_characters
        assert stats.component_counts == {"header": 1, "body": 1, "footer": 1, "buttons": 1}
        assert stats.variable_count == 2
        assert stats.button_count == 2
        assert stats.size_class == SizeClass.MEDIUM

    def test_url_variables_are_counted(self, marketing_data):
        """Test URL placeholders count as variables"""
        marketing_data["components"][3]["buttons"][0]["url"] = "https://example.com/shop/{{1}}"
        stats = get_template_stats(Template.model_validate(marketing_data))

        assert stats.variable_count == 3

    def test_repeated_variables_are_counted(self, utility_data):
        """Test every occurrence counts"""
        utility_data["components"][0]["text"] = "{{1}} {{1}}"
        stats = get_template_stats(Template.model_validate(utility_data))

        assert stats.variable_count == 2

    def test_to_dict(self, utility_template):
        """Test the JSON form of statistics"""
        assert get_template_stats(utility_template).to_dict() == {
            'totalCharacters': len("Order {{1}} confirmed."),
            'componentCounts': {"header": 0, "body": 1, "footer": 0, "buttons": 0},
            'variableCount': 1,
            'buttonCount': 0,
            'sizeClass': "Small",
        }

    @pytest.mark.parametrize("characters,expected", [
        (0, SizeClass.SMALL),
        (99, SizeClass.SMALL),
        (100, SizeClass.MEDIUM),
        (499, SizeClass.MEDIUM),
        (500, SizeClass.LARGE),
        (999, SizeClass.LARGE),
        (1000, SizeClass.VERY_LARGE),
    ])
    def test_size_class_boundaries(self, characters, expected):
        assert SizeClass.for_characters(characters) == expected


class TestExtractVariables:
    """Test placeholder listing"""

    def test_sorted_by_number_then_appearance(self, marketing_data):
        """Test occurrences across components"""
        marketing_data["components"][1]["text"] = "{{2}} then {{1}} then {{2}}"
        marketing_data["components"][3]["buttons"][0]["url"] = "https://example.com/{{1}}"
        template = Template.model_validate(marketing_data)

        occurrences = extract_variables(template)

        assert [(o.component, o.variable) for o in occurrences] == [
            ("body[1]", "{{1}}"),
            ("buttons[3].buttons[0].url", "{{1}}"),
            ("body[1]", "{{2}}"),
            ("body[1]", "{{2}}"),
        ]
        assert occurrences[0].position == 11
        assert occurrences[0].number == 1

    def test_no_variables(self, authentication_data):
        authentication_data["components"][0]["text"] = "Your code is below."
        assert extract_variables(Template.model_validate(authentication_data)) == []


class TestValidateTemplateName:
    """Test standalone name checks"""

    def test_good_name(self):
        check = validate_template_name("order_update")
        assert check.valid
        assert check.error is None

    def test_empty_name(self):
        check = validate_template_name("")
        assert not check.valid
        assert check.error == "Template name is required"

    def test_invalid_characters(self):
        check = validate_template_name("Order-Update")
        assert not check.valid
        assert "my_template_name" in check.suggestion

    def test_trailing_newline(self):
        """Test a newline after a valid name is rejected"""
        assert not validate_template_name("order_update\n").valid

    def test_too_long(self):
        check = validate_template_name("a" * 520)
        assert not check.valid
        assert check.suggestion == "Reduce name by 8 characters"

    def test_short_name_is_valid_with_advice(self):
        """Test short names pass with a suggestion"""
        check = validate_template_name("ab")
        assert check.valid
        assert check.error == "Template name is very short"

    def test_consecutive_underscores(self):
        check = validate_template_name("order__update")
        assert check.valid
        assert check.suggestion == "Use single underscores to separate words"


class TestFormatting:
    """Test display and compact renderings"""

    def test_format_for_display(self, authentication_template):
        text = TemplateParser.format_for_display(authentication_template)

        assert text.startswith("{\n  ")
        assert '"messageSendTtlSeconds": 600' in text
        assert Template.model_validate(json.loads(text)) == authentication_template

    def test_minify(self, authentication_template):
        text = TemplateParser.minify(authentication_template)

        assert "\n" not in text
        assert json.loads(text) == authentication_template.to_dict()
