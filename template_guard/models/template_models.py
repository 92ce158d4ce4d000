"""
Structural schema for message templates

This module defines the template, component and button models. Each
component and button variant is its own pydantic model and the variants
are combined into discriminated unions keyed on ``type``, so an unknown
``type`` fails validation instead of being ignored.

Only shape is checked here. Cross-field policy that needs to report every
problem at once lives in the rule engine.
"""

import logging
import re
from collections import Counter
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Sequence, Tuple, Union

from pydantic import (
    AfterValidator,
    AnyUrl,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

from template_guard.validators.placeholders import (
    find_malformed_placeholders,
    find_variables,
    is_sequential,
)

logger = logging.getLogger(__name__)


HEADER_TEXT_MAX_LENGTH = 60
BODY_TEXT_MAX_LENGTH = 1024
FOOTER_TEXT_MAX_LENGTH = 60
BUTTON_TEXT_MAX_LENGTH = 25
URL_MAX_LENGTH = 2000
NAME_MAX_LENGTH = 512
MAX_BUTTONS = 10

TTL_MIN_SECONDS = 30
TTL_MAX_SECONDS = 2_592_000

NAME_PATTERN = re.compile(r"[a-z0-9_]+")
LANGUAGE_PATTERN = re.compile(r"[a-z]{2}(_[A-Z]{2})?")
PHONE_NUMBER_PATTERN = re.compile(r"\+[1-9][0-9]{1,14}")


class TemplateCategory(str, Enum):
    """Template approval categories"""
    MARKETING = "MARKETING"
    UTILITY = "UTILITY"
    AUTHENTICATION = "AUTHENTICATION"


class TemplateSubCategory(str, Enum):
    """Template sub-categories"""
    ORDER_STATUS = "ORDER_STATUS"


class HeaderFormat(str, Enum):
    """Header content formats"""
    TEXT = "TEXT"
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    DOCUMENT = "DOCUMENT"
    LOCATION = "LOCATION"


class ButtonType(str, Enum):
    """Button variants"""
    QUICK_REPLY = "QUICK_REPLY"
    URL = "URL"
    PHONE_NUMBER = "PHONE_NUMBER"
    COPY_CODE = "COPY_CODE"
    OTP = "OTP"
    CATALOG = "CATALOG"
    MPM = "MPM"
    FLOW = "FLOW"
    ORDER_DETAILS = "ORDER_DETAILS"
    VOICE_CALL = "VOICE_CALL"


class OTPType(str, Enum):
    """One-time-passcode delivery modes"""
    COPY_CODE = "COPY_CODE"
    ONE_TAP = "ONE_TAP"
    ZERO_TAP = "ZERO_TAP"


class ComponentType(str, Enum):
    """Component variants"""
    HEADER = "HEADER"
    BODY = "BODY"
    FOOTER = "FOOTER"
    BUTTONS = "BUTTONS"


# Formats that need a sample media URL; LOCATION carries no media
MEDIA_FORMATS = (HeaderFormat.IMAGE, HeaderFormat.VIDEO, HeaderFormat.DOCUMENT)

BUTTON_TYPE_LIMITS = {
    ButtonType.PHONE_NUMBER: 1,
    ButtonType.URL: 2,
    ButtonType.COPY_CODE: 1,
}

CANONICAL_COMPONENT_ORDER = (
    ComponentType.HEADER,
    ComponentType.BODY,
    ComponentType.FOOTER,
    ComponentType.BUTTONS,
)


def _text_rule(max_length: int, allow_variables: bool = True) -> AfterValidator:
    """Build the shared length and placeholder checks for a text field."""

    def check(value: str) -> str:
        if not value:
            raise ValueError("Text cannot be empty")
        if len(value) > max_length:
            raise ValueError(f"Text cannot exceed {max_length} characters")

        malformed = find_malformed_placeholders(value)
        if malformed:
            raise ValueError(
                f"Variables must be in format {{{{1}}}}, {{{{2}}}}, etc. Found: {', '.join(malformed)}"
            )

        numbers = find_variables(value)
        if numbers and not allow_variables:
            raise ValueError("Variables are not supported in this field")
        if not is_sequential(numbers):
            raise ValueError("Variables must be sequential starting from {{1}}")
        return value

    return AfterValidator(check)


_url_adapter = TypeAdapter(AnyUrl)


def _check_url(value: str) -> str:
    # AnyUrl only validates; the original string is kept so placeholders survive
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        raise ValueError(f"Invalid URL: {value}") from None
    return value


def _check_phone_number(value: str) -> str:
    if not PHONE_NUMBER_PATTERN.fullmatch(value):
        raise ValueError("Invalid phone number format")
    return value


HeaderText = Annotated[str, _text_rule(HEADER_TEXT_MAX_LENGTH)]
BodyText = Annotated[str, _text_rule(BODY_TEXT_MAX_LENGTH)]
FooterText = Annotated[str, _text_rule(FOOTER_TEXT_MAX_LENGTH, allow_variables=False)]
ButtonText = Annotated[str, _text_rule(BUTTON_TEXT_MAX_LENGTH)]
ExampleUrl = Annotated[str, AfterValidator(_check_url)]
ButtonUrl = Annotated[str, Field(max_length=URL_MAX_LENGTH), AfterValidator(_check_url)]
PhoneNumber = Annotated[str, AfterValidator(_check_phone_number)]


class _TemplateModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class TemplateExample(_TemplateModel):
    """Sample values shown to reviewers"""
    header_text: Optional[List[str]] = None
    header_url: Optional[List[ExampleUrl]] = None
    body_text: Optional[List[List[str]]] = None


# Buttons

class QuickReplyButton(_TemplateModel):
    type: Literal["QUICK_REPLY"] = "QUICK_REPLY"
    text: ButtonText


class UrlButton(_TemplateModel):
    type: Literal["URL"] = "URL"
    text: ButtonText
    url: ButtonUrl
    example: Optional[List[ExampleUrl]] = None


class PhoneNumberButton(_TemplateModel):
    type: Literal["PHONE_NUMBER"] = "PHONE_NUMBER"
    text: ButtonText
    phone_number: PhoneNumber


class CopyCodeButton(_TemplateModel):
    type: Literal["COPY_CODE"] = "COPY_CODE"
    example: Optional[List[str]] = None


class OtpButton(_TemplateModel):
    """
    One-time-passcode button.

    ``package_name`` and ``zero_tap_terms_accepted`` are conditionally
    required depending on ``otp_type``; the rule engine reports those.
    """
    type: Literal["OTP"] = "OTP"
    otp_type: OTPType
    text: Optional[ButtonText] = None
    autofill_text: Optional[ButtonText] = None
    package_name: Optional[str] = None
    signature_hash: Optional[str] = None
    zero_tap_terms_accepted: Optional[StrictBool] = None


class CatalogButton(_TemplateModel):
    type: Literal["CATALOG"] = "CATALOG"
    text: Literal["View catalog"]


class MpmButton(_TemplateModel):
    type: Literal["MPM"] = "MPM"
    text: Literal["View items"]


class FlowButton(_TemplateModel):
    type: Literal["FLOW"] = "FLOW"
    text: ButtonText
    flow_id: str
    navigate_screen: Optional[str] = None
    flow_action: Optional[Literal["navigate", "data_exchange"]] = None


class OrderDetailsButton(_TemplateModel):
    type: Literal["ORDER_DETAILS"] = "ORDER_DETAILS"
    text: Literal["Review and Pay"]


class VoiceCallButton(_TemplateModel):
    type: Literal["VOICE_CALL"] = "VOICE_CALL"
    text: ButtonText


Button = Annotated[
    Union[
        QuickReplyButton,
        UrlButton,
        PhoneNumberButton,
        CopyCodeButton,
        OtpButton,
        CatalogButton,
        MpmButton,
        FlowButton,
        OrderDetailsButton,
        VoiceCallButton,
    ],
    Field(discriminator="type"),
]

_LABELLED_BUTTONS = (
    QuickReplyButton,
    UrlButton,
    PhoneNumberButton,
    OtpButton,
    CatalogButton,
    MpmButton,
    FlowButton,
    OrderDetailsButton,
    VoiceCallButton,
)


def button_text(button: Any) -> Optional[str]:
    """Return the visible label of a button, or None for label-less buttons."""
    if isinstance(button, CopyCodeButton):
        return None
    if isinstance(button, _LABELLED_BUTTONS):
        return button.text
    raise TypeError(f"Unsupported button type: {type(button).__name__}")


def count_button_types(buttons: Sequence[Any]) -> Counter:
    """Count buttons per ``ButtonType``."""
    return Counter(ButtonType(button.type) for button in buttons)


def quick_replies_grouped(buttons: Sequence[Any]) -> bool:
    """True when every QUICK_REPLY button sits in one contiguous run."""
    indices = [i for i, button in enumerate(buttons) if button.type == ButtonType.QUICK_REPLY.value]
    return all(index == indices[i - 1] + 1 for i, index in enumerate(indices) if i > 0)


def exceeded_button_limits(buttons: Sequence[Any]) -> List[ButtonType]:
    """Button types whose count goes over the per-type cap."""
    counts = count_button_types(buttons)
    return [button_type for button_type, limit in BUTTON_TYPE_LIMITS.items() if counts[button_type] > limit]


# Components

class HeaderComponent(_TemplateModel):
    type: Literal["HEADER"] = "HEADER"
    format: Optional[HeaderFormat] = None
    text: Optional[HeaderText] = None
    example: Optional[TemplateExample] = None

    @model_validator(mode='after')
    def validate_format_requirements(self):
        issue = header_requirement_issue(self)
        if issue is not None:
            raise ValueError(issue[1])
        return self

    @property
    def example_url(self) -> Optional[str]:
        """First sample media URL, if any"""
        if self.example and self.example.header_url:
            return self.example.header_url[0]
        return None


class BodyComponent(_TemplateModel):
    type: Literal["BODY"] = "BODY"
    text: BodyText
    add_security_recommendation: Optional[StrictBool] = None
    example: Optional[TemplateExample] = None


class FooterComponent(_TemplateModel):
    type: Literal["FOOTER"] = "FOOTER"
    text: FooterText
    code_expiration_minutes: Optional[StrictInt] = Field(default=None, ge=1, le=60)


class ButtonsComponent(_TemplateModel):
    type: Literal["BUTTONS"] = "BUTTONS"
    buttons: List[Button] = Field(..., min_length=1, max_length=MAX_BUTTONS)

    @field_validator('buttons')
    @classmethod
    def validate_button_combinations(cls, buttons):
        if not quick_replies_grouped(buttons):
            raise ValueError("Quick reply buttons must be grouped together")
        if exceeded_button_limits(buttons):
            raise ValueError(
                "Button type limits exceeded: max 1 phone, 2 URL, 1 copy code button"
            )
        return buttons


Component = Annotated[
    Union[HeaderComponent, BodyComponent, FooterComponent, ButtonsComponent],
    Field(discriminator="type"),
]


def header_requirement_issue(header: HeaderComponent) -> Optional[Tuple[str, str]]:
    """
    Check the header format against its text and example.

    Returns:
        ``(field_path, message)`` for the first unmet requirement, else None
    """
    if header.format == HeaderFormat.TEXT and not header.text:
        return "header.text", "TEXT header format requires text content"
    if header.format in MEDIA_FORMATS and not (header.example and header.example.header_url):
        return (
            "header.example.header_url",
            f"{header.format.value} header format requires example URL",
        )
    return None


class Template(_TemplateModel):
    """
    A message template as submitted for approval.

    Field names follow Python conventions; the JSON spellings
    (``subCategory``, ``messageSendTtlSeconds``, ``wabaId``) are accepted
    as aliases and used when serializing.
    """
    waba_id: Optional[str] = Field(default=None, alias="wabaId")
    name: str = Field(..., description="Lowercase identifier of the template")
    language: str = Field(..., description="Locale code such as en or en_US")
    category: TemplateCategory
    sub_category: Optional[TemplateSubCategory] = Field(default=None, alias="subCategory")
    message_send_ttl_seconds: Optional[StrictInt] = Field(
        default=None,
        alias="messageSendTtlSeconds",
        ge=TTL_MIN_SECONDS,
        le=TTL_MAX_SECONDS,
        description="Seconds before an undelivered message expires"
    )
    components: List[Component] = Field(..., min_length=1)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v:
            raise ValueError("Template name is required")
        if len(v) > NAME_MAX_LENGTH:
            raise ValueError(f"Template name cannot exceed {NAME_MAX_LENGTH} characters")
        if not NAME_PATTERN.fullmatch(v):
            raise ValueError(
                "Template name can only contain lowercase letters, numbers, and underscores"
            )
        return v

    @field_validator('language')
    @classmethod
    def validate_language(cls, v):
        if len(v) < 2:
            raise ValueError("Language code is required")
        if not LANGUAGE_PATTERN.fullmatch(v):
            raise ValueError("Invalid language code format (e.g., en_US, es, fr)")
        return v

    @field_validator('components')
    @classmethod
    def validate_component_counts(cls, components):
        counts = Counter(component.type for component in components)
        if counts[ComponentType.BODY.value] != 1:
            raise ValueError("Template must have exactly one BODY component")
        for component_type in (ComponentType.HEADER, ComponentType.FOOTER, ComponentType.BUTTONS):
            if counts[component_type.value] > 1:
                raise ValueError(
                    "Template can have at most one HEADER, FOOTER, and BUTTONS component each"
                )
        return components

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Template':
        """Validate a decoded JSON document into a Template"""
        return cls.model_validate(data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with JSON field names, omitting unset optionals"""
        return self.model_dump(mode='json', by_alias=True, exclude_none=True)

    def _first(self, component_type: ComponentType):
        return next((c for c in self.components if c.type == component_type.value), None)

    @property
    def header(self) -> Optional[HeaderComponent]:
        return self._first(ComponentType.HEADER)

    @property
    def body(self) -> Optional[BodyComponent]:
        return self._first(ComponentType.BODY)

    @property
    def footer(self) -> Optional[FooterComponent]:
        return self._first(ComponentType.FOOTER)

    @property
    def buttons(self) -> Optional[ButtonsComponent]:
        return self._first(ComponentType.BUTTONS)
