"""
Pytest configuration and shared fixtures for template validator tests
"""
import copy
import json
import logging
import os

import pytest

from template_guard.config import settings as settings_module
from template_guard.models.template_models import Template
from template_guard.validators.rule_engine import TemplateRuleEngine


AUTHENTICATION_TEMPLATE = {
    "name": "example_authentication_template",
    "language": "en_US",
    "category": "AUTHENTICATION",
    "messageSendTtlSeconds": 600,
    "components": [
        {
            "type": "BODY",
            "text": "{{1}} is your verification code. For your security, do not share this code.",
            "add_security_recommendation": True,
            "example": {"body_text": [["123456"]]}
        },
        {
            "type": "FOOTER",
            "text": "This code expires in 5 minutes.",
            "code_expiration_minutes": 5
        },
        {
            "type": "BUTTONS",
            "buttons": [
                {"type": "OTP", "otp_type": "COPY_CODE", "text": "Copy Code"}
            ]
        }
    ]
}

UTILITY_TEMPLATE = {
    "name": "order_confirm",
    "language": "en_US",
    "category": "UTILITY",
    "components": [
        {"type": "BODY", "text": "Order {{1}} confirmed."}
    ]
}

MARKETING_TEMPLATE = {
    "name": "example_marketing_template",
    "language": "en_US",
    "category": "MARKETING",
    "messageSendTtlSeconds": 86400,
    "components": [
        {
            "type": "HEADER",
            "format": "IMAGE",
            "example": {"header_url": ["https://example.com/image.jpg"]}
        },
        {
            "type": "BODY",
            "text": "Hi {{1}}, check out our amazing deals! Get {{2}} off your next purchase.",
            "example": {"body_text": [["John", "20%"]]}
        },
        {"type": "FOOTER", "text": "Limited time offer"},
        {
            "type": "BUTTONS",
            "buttons": [
                {"type": "URL", "text": "Shop Now", "url": "https://example.com/shop"},
                {"type": "QUICK_REPLY", "text": "Learn More"}
            ]
        }
    ]
}


@pytest.fixture
def authentication_data():
    """Valid authentication template document"""
    return copy.deepcopy(AUTHENTICATION_TEMPLATE)


@pytest.fixture
def utility_data():
    """Minimal valid utility template document"""
    return copy.deepcopy(UTILITY_TEMPLATE)


@pytest.fixture
def marketing_data():
    """Valid marketing template document with every component"""
    return copy.deepcopy(MARKETING_TEMPLATE)


@pytest.fixture
def authentication_template(authentication_data):
    return Template.model_validate(authentication_data)


@pytest.fixture
def utility_template(utility_data):
    return Template.model_validate(utility_data)


@pytest.fixture
def marketing_template(marketing_data):
    return Template.model_validate(marketing_data)


@pytest.fixture
def marketing_json(marketing_data):
    """Marketing template as pretty-printed JSON text"""
    return json.dumps(marketing_data, indent=2)


@pytest.fixture
def rule_engine():
    """Sequential rule engine with default thresholds"""
    return TemplateRuleEngine()


@pytest.fixture
def template_file(tmp_path):
    """Write a document to a temporary JSON file and return its path"""
    def _write(data, name="template.json"):
        path = tmp_path / name
        if isinstance(data, str):
            path.write_text(data, encoding="utf-8")
        else:
            path.write_text(json.dumps(data), encoding="utf-8")
        return str(path)
    return _write


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Isolate tests from TEMPLATE_GUARD_* variables, cached settings and CLI log handlers"""
    for var in list(os.environ):
        if var.startswith("TEMPLATE_GUARD_"):
            monkeypatch.delenv(var, raising=False)

    settings_module.reset_settings()
    yield
    settings_module.reset_settings()
    logging.getLogger("template_guard").handlers.clear()
