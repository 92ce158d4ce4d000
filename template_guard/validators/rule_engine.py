"""
Semantic rule engine for message templates

The structural schema stops at the first problem. The rule engine takes a
template that already passed it and runs every business rule, so one call
reports everything that would get the template rejected.

Each pass is a generator of ``Diagnostic`` values that only reads the
template. Passes never stop each other, and their output is concatenated in
pass order, so the report is the same whether passes run sequentially or on a
thread pool.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterator, List, Optional, Tuple

from template_guard.config.settings import ValidatorSettings, get_settings
from template_guard.exceptions import TemplateStructureError
from template_guard.models.diagnostics import Diagnostic, ValidationReport
from template_guard.models.template_models import (
    BODY_TEXT_MAX_LENGTH,
    BUTTON_TEXT_MAX_LENGTH,
    CANONICAL_COMPONENT_ORDER,
    FOOTER_TEXT_MAX_LENGTH,
    HEADER_TEXT_MAX_LENGTH,
    TTL_MAX_SECONDS,
    TTL_MIN_SECONDS,
    BodyComponent,
    ButtonsComponent,
    ButtonType,
    FooterComponent,
    HeaderComponent,
    HeaderFormat,
    OTPType,
    OtpButton,
    Template,
    TemplateCategory,
    TemplateSubCategory,
    UrlButton,
    button_text,
    count_button_types,
    header_requirement_issue,
    quick_replies_grouped,
)
from template_guard.validators.placeholders import (
    find_duplicates,
    find_variables,
    format_variables,
    is_sequential,
)

logger = logging.getLogger(__name__)

Rule = Callable[[Template], Iterator[Diagnostic]]

# Inclusive TTL windows per category, in seconds
CATEGORY_TTL_WINDOWS = {
    TemplateCategory.AUTHENTICATION: (30, 900),
    TemplateCategory.UTILITY: (30, 43_200),
    TemplateCategory.MARKETING: (43_200, TTL_MAX_SECONDS),
}

MEDIA_EXTENSIONS = {
    HeaderFormat.IMAGE: ('.jpg', '.jpeg', '.png'),
    HeaderFormat.VIDEO: ('.mp4',),
    HeaderFormat.DOCUMENT: ('.pdf',),
}

_MEDIA_EXTENSION_MESSAGES = {
    HeaderFormat.IMAGE: ("Image header URL must end with .jpg, .jpeg, or .png",
                         "Use a valid image file extension"),
    HeaderFormat.VIDEO: ("Video header URL must end with .mp4",
                         "Use a valid MP4 video file"),
    HeaderFormat.DOCUMENT: ("Document header URL must end with .pdf",
                            "Use a valid PDF document file"),
}

_BUTTON_LIMIT_MESSAGES = (
    (ButtonType.PHONE_NUMBER, 1, "TOO_MANY_PHONE_BUTTONS",
     "Maximum 1 phone number button allowed", "Remove extra phone number buttons"),
    (ButtonType.URL, 2, "TOO_MANY_URL_BUTTONS",
     "Maximum 2 URL buttons allowed", "Remove extra URL buttons"),
    (ButtonType.COPY_CODE, 1, "TOO_MANY_COPY_CODE_BUTTONS",
     "Maximum 1 copy code button allowed", "Remove extra copy code buttons"),
)


class TemplateRuleEngine:
    """
    Runs the semantic rule passes over a structurally valid template.

    The engine holds configuration only; every ``validate`` call builds a
    fresh report and keeps no reference to the template afterwards.
    """

    def __init__(
        self,
        near_limit_ratio: float = 0.9,
        parallel: bool = False,
        max_workers: int = 8
    ):
        """
        Initialize the rule engine.

        Args:
            near_limit_ratio: Fraction of a character limit above which a
                proximity warning is raised
            parallel: Run passes on a thread pool
            max_workers: Thread pool size when ``parallel`` is set
        """
        self.near_limit_ratio = near_limit_ratio
        self.parallel = parallel
        self.max_workers = max_workers

        # Order here is the order diagnostics appear in the report
        self.rules: List[Tuple[str, Rule]] = [
            ("basic_structure", self._check_basic_structure),
            ("category_policy", self._check_category_policy),
            ("component_combinations", self._check_component_combinations),
            ("variable_usage", self._check_variable_usage),
            ("character_limits", self._check_character_limits),
            ("button_combinations", self._check_button_combinations),
            ("media_requirements", self._check_media_requirements),
            ("ttl_settings", self._check_ttl_settings),
        ]

    @classmethod
    def from_settings(cls, settings: Optional[ValidatorSettings] = None) -> 'TemplateRuleEngine':
        """Create an engine configured from validator settings"""
        settings = settings or get_settings()
        return cls(
            near_limit_ratio=settings.near_limit_ratio,
            parallel=settings.parallel_passes,
            max_workers=settings.max_workers
        )

    @property
    def rule_names(self) -> List[str]:
        return [name for name, _ in self.rules]

    def run_rule(self, name: str, template: Template) -> Tuple[Diagnostic, ...]:
        """Run a single pass by name"""
        for rule_name, rule in self.rules:
            if rule_name == name:
                return tuple(rule(template))
        raise KeyError(f"Unknown rule: {name}")

    def validate(self, template: Template) -> ValidationReport:
        """
        Run every pass and aggregate the diagnostics.

        Args:
            template: A template that passed structural validation

        Returns:
            ValidationReport with diagnostics in pass order
        """
        if self.parallel:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                # map() yields results in submission order
                batches = list(executor.map(lambda rule: tuple(rule[1](template)), self.rules))
        else:
            batches = [tuple(rule(template)) for _, rule in self.rules]

        diagnostics = [diagnostic for batch in batches for diagnostic in batch]
        for diagnostic in diagnostics:
            logger.debug(str(diagnostic))

        report = ValidationReport.from_diagnostics(diagnostics)
        logger.info(
            f"Validated template '{template.name}': {len(report.errors)} errors, "
            f"{len(report.warnings)} warnings, {len(report.info)} info"
        )
        return report

    # Pass 1

    def _check_basic_structure(self, template: Template) -> Iterator[Diagnostic]:
        """Require a BODY and recommend the canonical component order"""
        if template.body is None:
            yield Diagnostic.error(
                "components",
                "Template must have a BODY component",
                "Add a BODY component with your message text",
                code="MISSING_BODY"
            )

        order = [component_type.value for component_type in CANONICAL_COMPONENT_ORDER]
        last_index = -1
        for index, component in enumerate(template.components):
            position = order.index(component.type)
            if position < last_index:
                yield Diagnostic.warning(
                    f"components[{index}]",
                    f"Component {component.type} should come before previous components",
                    f"Reorder components: {' → '.join(order)}",
                    code="COMPONENT_ORDER"
                )
            last_index = max(last_index, position)

    # Pass 2

    def _check_category_policy(self, template: Template) -> Iterator[Diagnostic]:
        """Dispatch to the rules of the template's category"""
        category = TemplateCategory(template.category)
        if category == TemplateCategory.AUTHENTICATION:
            yield from self._check_authentication(template)
        elif category == TemplateCategory.UTILITY:
            yield from self._check_utility(template)
        elif category == TemplateCategory.MARKETING:
            yield from self._check_marketing(template)
        else:
            raise TemplateStructureError(f"Unsupported template category: {category}", field="category")

    def _category_ttl(self, template: Template, category: TemplateCategory, label: str,
                      window_text: str) -> Iterator[Diagnostic]:
        ttl = template.message_send_ttl_seconds
        low, high = CATEGORY_TTL_WINDOWS[category]
        if ttl is not None and not (low <= ttl <= high):
            yield Diagnostic.error(
                "messageSendTtlSeconds",
                f"{label} templates TTL must be between {window_text}",
                f"Set TTL between {low} and {high} seconds",
                code="CATEGORY_TTL_RANGE"
            )

    def _check_authentication(self, template: Template) -> Iterator[Diagnostic]:
        buttons = template.buttons
        if buttons is not None:
            if not any(button.type == ButtonType.OTP.value for button in buttons.buttons):
                yield Diagnostic.warning(
                    "buttons",
                    "Authentication templates typically use OTP buttons for better user experience",
                    "Consider adding an OTP button (COPY_CODE, ONE_TAP, or ZERO_TAP)",
                    code="AUTH_NO_OTP_BUTTON"
                )

        yield from self._category_ttl(
            template, TemplateCategory.AUTHENTICATION, "Authentication",
            "30 seconds and 15 minutes (900 seconds)"
        )

        body = template.body
        if body is not None and not body.add_security_recommendation:
            yield Diagnostic.info(
                "body.add_security_recommendation",
                "Consider adding security recommendation for authentication templates",
                "Set add_security_recommendation to true",
                code="AUTH_SECURITY_RECOMMENDATION"
            )

    def _check_utility(self, template: Template) -> Iterator[Diagnostic]:
        yield from self._category_ttl(
            template, TemplateCategory.UTILITY, "Utility",
            "30 seconds and 12 hours (43200 seconds)"
        )

        if template.sub_category == TemplateSubCategory.ORDER_STATUS and template.buttons is not None:
            yield Diagnostic.warning(
                "buttons",
                "Order status templates typically don't need buttons",
                "Consider removing buttons for order status updates",
                code="ORDER_STATUS_BUTTONS"
            )

    def _check_marketing(self, template: Template) -> Iterator[Diagnostic]:
        yield from self._category_ttl(
            template, TemplateCategory.MARKETING, "Marketing",
            "12 hours (43200 seconds) and 30 days (2592000 seconds)"
        )

        if template.header is None:
            yield Diagnostic.info(
                "header",
                "Marketing templates perform better with media headers",
                "Consider adding an IMAGE, VIDEO, or DOCUMENT header",
                code="MARKETING_NO_HEADER"
            )

        if template.buttons is None:
            yield Diagnostic.info(
                "buttons",
                "Marketing templates benefit from call-to-action buttons",
                "Consider adding URL or QUICK_REPLY buttons",
                code="MARKETING_NO_BUTTONS"
            )

    # Pass 3

    def _check_component_combinations(self, template: Template) -> Iterator[Diagnostic]:
        """Header format requirements and OTP conditional fields"""
        header = template.header
        if header is not None:
            issue = header_requirement_issue(header)
            if issue is not None:
                field_path, message = issue
                suggestion = ("Add text or change format" if field_path == "header.text"
                              else "Add example URL for media header")
                yield Diagnostic.error(field_path, message, suggestion, code="HEADER_REQUIREMENT")

        buttons = template.buttons
        if buttons is None:
            return
        for index, button in enumerate(buttons.buttons):
            if not isinstance(button, OtpButton):
                continue
            if button.otp_type == OTPType.ONE_TAP and not button.package_name:
                yield Diagnostic.error(
                    f"buttons[{index}].package_name",
                    "ONE_TAP OTP buttons require package_name",
                    "Add your Android app's package name",
                    code="OTP_PACKAGE_NAME_REQUIRED"
                )
            if button.otp_type == OTPType.ZERO_TAP and not button.zero_tap_terms_accepted:
                yield Diagnostic.error(
                    f"buttons[{index}].zero_tap_terms_accepted",
                    "ZERO_TAP OTP buttons require terms acceptance",
                    "Set zero_tap_terms_accepted to true",
                    code="OTP_TERMS_REQUIRED"
                )

    # Pass 4

    def _check_variable_usage(self, template: Template) -> Iterator[Diagnostic]:
        """Sequential numbering and duplicates in placeholder-bearing fields"""
        for component in template.components:
            if isinstance(component, BodyComponent):
                yield from self._check_variables_in_text(component.text, "body.text")
            elif isinstance(component, HeaderComponent):
                if component.format == HeaderFormat.TEXT and component.text:
                    yield from self._check_variables_in_text(component.text, "header.text")
            elif isinstance(component, ButtonsComponent):
                for index, button in enumerate(component.buttons):
                    if isinstance(button, UrlButton) and button.url:
                        yield from self._check_variables_in_text(button.url, f"buttons[{index}].url")
            elif not isinstance(component, FooterComponent):
                raise TemplateStructureError(
                    f"Unsupported component type: {type(component).__name__}", field="components"
                )

    def _check_variables_in_text(self, text: str, field_path: str) -> Iterator[Diagnostic]:
        numbers = find_variables(text)
        if not numbers:
            return

        if not is_sequential(numbers):
            yield Diagnostic.error(
                field_path,
                f"Variables must be sequential starting from {{{{1}}}}. Found: {format_variables(numbers)}",
                "Use variables {{1}}, {{2}}, {{3}}, etc. in sequence",
                code="VARIABLES_NOT_SEQUENTIAL"
            )

        duplicates = find_duplicates(numbers)
        if duplicates:
            yield Diagnostic.warning(
                field_path,
                f"Duplicate variables found: {format_variables(duplicates)}",
                "Each variable should be used only once per component",
                code="DUPLICATE_VARIABLES"
            )

    # Pass 5

    def _check_character_limits(self, template: Template) -> Iterator[Diagnostic]:
        """Hard limits plus a warning when text nears its limit"""
        for component in template.components:
            if isinstance(component, HeaderComponent):
                if component.format == HeaderFormat.TEXT and component.text:
                    yield from self._check_text_length(component.text, HEADER_TEXT_MAX_LENGTH, "header.text")
            elif isinstance(component, BodyComponent):
                yield from self._check_text_length(component.text, BODY_TEXT_MAX_LENGTH, "body.text")
            elif isinstance(component, FooterComponent):
                yield from self._check_text_length(component.text, FOOTER_TEXT_MAX_LENGTH, "footer.text")
            elif isinstance(component, ButtonsComponent):
                for index, button in enumerate(component.buttons):
                    text = button_text(button)
                    if text:
                        yield from self._check_text_length(text, BUTTON_TEXT_MAX_LENGTH, f"buttons[{index}].text")
            else:
                raise TemplateStructureError(
                    f"Unsupported component type: {type(component).__name__}", field="components"
                )

    def _check_text_length(self, text: str, max_length: int, field_path: str) -> Iterator[Diagnostic]:
        length = len(text)
        if length > max_length:
            yield Diagnostic.error(
                field_path,
                f"Text exceeds {max_length} character limit (current: {length})",
                f"Reduce text by {length - max_length} characters",
                code="TEXT_TOO_LONG"
            )

        if length > max_length * self.near_limit_ratio:
            yield Diagnostic.warning(
                field_path,
                f"Text is close to {max_length} character limit (current: {length})",
                "Consider shortening the text to avoid future issues",
                code="TEXT_NEAR_LIMIT"
            )

    # Pass 6

    def _check_button_combinations(self, template: Template) -> Iterator[Diagnostic]:
        """Per-type button caps and quick reply grouping"""
        buttons = template.buttons
        if buttons is None or not buttons.buttons:
            return

        counts = count_button_types(buttons.buttons)
        for button_type, limit, code, message, suggestion in _BUTTON_LIMIT_MESSAGES:
            if counts[button_type] > limit:
                yield Diagnostic.error("buttons", message, suggestion, code=code)

        # Adjacency is judged on the order the buttons were given in
        if not quick_replies_grouped(buttons.buttons):
            yield Diagnostic.error(
                "buttons",
                "Quick reply buttons must be grouped together",
                "Move all quick reply buttons to the beginning or end of the button list",
                code="QUICK_REPLY_NOT_GROUPED"
            )

    # Pass 7

    def _check_media_requirements(self, template: Template) -> Iterator[Diagnostic]:
        """Example URL presence and file extension for media headers"""
        header = template.header
        if header is None or header.format is None:
            return
        header_format = HeaderFormat(header.format)
        if header_format not in MEDIA_EXTENSIONS:
            # TEXT and LOCATION carry no media
            return

        url = header.example_url
        if not url:
            yield Diagnostic.error(
                "header.example.header_url",
                f"{header_format.value} header requires example URL",
                "Add a valid example URL for the media",
                code="MEDIA_URL_REQUIRED"
            )
            return

        if not url.lower().endswith(MEDIA_EXTENSIONS[header_format]):
            message, suggestion = _MEDIA_EXTENSION_MESSAGES[header_format]
            yield Diagnostic.error(
                "header.example.header_url", message, suggestion, code="INVALID_MEDIA_EXTENSION"
            )

    # Pass 8

    def _check_ttl_settings(self, template: Template) -> Iterator[Diagnostic]:
        """Suggest a TTL when missing and enforce the absolute bounds"""
        ttl = template.message_send_ttl_seconds
        if ttl is None:
            yield Diagnostic.info(
                "messageSendTtlSeconds",
                "Consider setting a TTL (time-to-live) for your template",
                "Add messageSendTtlSeconds based on your template category",
                code="TTL_NOT_SET"
            )
            return

        if ttl < TTL_MIN_SECONDS:
            yield Diagnostic.error(
                "messageSendTtlSeconds",
                f"TTL cannot be less than {TTL_MIN_SECONDS} seconds",
                f"Set TTL to at least {TTL_MIN_SECONDS} seconds",
                code="TTL_TOO_SHORT"
            )

        if ttl > TTL_MAX_SECONDS:
            yield Diagnostic.error(
                "messageSendTtlSeconds",
                f"TTL cannot exceed 30 days ({TTL_MAX_SECONDS} seconds)",
                f"Set TTL to maximum {TTL_MAX_SECONDS} seconds",
                code="TTL_TOO_LONG"
            )


def validate_template(template: Template, settings: Optional[ValidatorSettings] = None) -> ValidationReport:
    """Validate a template with an engine configured from settings"""
    return TemplateRuleEngine.from_settings(settings).validate(template)
