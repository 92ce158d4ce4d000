"""
Template data models, diagnostics and reports
"""

from .template_models import (
    Template,
    TemplateCategory,
    TemplateSubCategory,
    TemplateExample,
    HeaderFormat,
    ButtonType,
    OTPType,
    ComponentType,
    Component,
    HeaderComponent,
    BodyComponent,
    FooterComponent,
    ButtonsComponent,
    Button,
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
)
from .diagnostics import Diagnostic, Severity, ValidationReport

__all__ = [
    'Template',
    'TemplateCategory',
    'TemplateSubCategory',
    'TemplateExample',
    'HeaderFormat',
    'ButtonType',
    'OTPType',
    'ComponentType',
    'Component',
    'HeaderComponent',
    'BodyComponent',
    'FooterComponent',
    'ButtonsComponent',
    'Button',
    'QuickReplyButton',
    'UrlButton',
    'PhoneNumberButton',
    'CopyCodeButton',
    'OtpButton',
    'CatalogButton',
    'MpmButton',
    'FlowButton',
    'OrderDetailsButton',
    'VoiceCallButton',
    'Diagnostic',
    'Severity',
    'ValidationReport'
]
