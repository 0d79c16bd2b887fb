#!/usr/bin/env python3
"""
Test Email Copy Generation
Claude replies, text fallbacks and offline templates, with a fake HTTP session
"""

import json

import requests

from email_flow_analyzer.config import AnalysisConfig
from email_flow_analyzer.email_copy_generator import (DEFAULT_BODY, DEFAULT_SUBJECT, EmailCopyGenerator,
                                                      build_copy_prompt, parse_copy_response)
from email_flow_analyzer.fusion import fuse_opportunity
from email_flow_analyzer.heuristic_classifier import classify_screen
from email_flow_analyzer.interfaces import Screen


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text or json.dumps(body)

    def json(self):
        if self._body is None:
            raise ValueError("No JSON body")
        return self._body


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def post(self, url, headers=None, json=None, timeout=None):
        self.requests.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


def claude_body(text):
    return {"content": [{"type": "text", "text": text}]}


CLAUDE_CONFIG = AnalysisConfig(api_key="test-key", provider="claude", text_model="claude-test")
SIGNUP = fuse_opportunity(Screen(screen_id="1", name="Sign Up"), classify_screen("Sign Up"))
CHECKOUT = fuse_opportunity(Screen(screen_id="2", name="Checkout"), classify_screen("Checkout"))


def test_prompt_mentions_voice_action_and_variables():
    prompt = build_copy_prompt(CHECKOUT, "playful")

    assert "order confirmation email" in prompt
    assert "a user who placed_order" in prompt
    assert "Brand voice: playful" in prompt
    assert "{{order_number}}" in prompt


def test_claude_json_reply():
    reply = json.dumps({"subject": "Thanks for your order", "body": "Hi {{customer_name}}",
                        "suggestedVariables": ["customer_name"]})
    session = FakeSession(FakeResponse(body=claude_body(reply)))
    copy = EmailCopyGenerator(CLAUDE_CONFIG, session=session).generate(CHECKOUT)

    assert copy.subject == "Thanks for your order"
    assert copy.body == "Hi {{customer_name}}"
    assert copy.suggested_variables == ["customer_name"]
    assert copy.source == "ai"

    sent = session.requests[0]
    assert sent["headers"]["x-api-key"] == "test-key"
    assert sent["json"]["model"] == "claude-test"


def test_plain_text_reply_scans_for_subject():
    copy = parse_copy_response("Subject: Welcome aboard!\n\nHi there,\nGlad you joined.")
    assert copy.subject == "Welcome aboard!"
    assert copy.body == "Hi there,\nGlad you joined."

    copy = parse_copy_response("Just a body without a subject line")
    assert copy.subject == DEFAULT_SUBJECT
    assert copy.body == "Just a body without a subject line"


def test_json_defaults():
    copy = parse_copy_response('{"subject": ""}')
    assert copy.subject == DEFAULT_SUBJECT
    assert copy.body == DEFAULT_BODY


def test_failures_fall_back_to_templates():
    error_session = FakeSession(FakeResponse(status_code=529, text="overloaded"))
    copy = EmailCopyGenerator(CLAUDE_CONFIG, session=error_session).generate(SIGNUP)
    assert copy.source == "template"
    assert copy.subject.startswith("Welcome to")

    broken_session = FakeSession(error=requests.exceptions.ConnectionError("offline"))
    copy = EmailCopyGenerator(CLAUDE_CONFIG, session=broken_session).generate(CHECKOUT)
    assert copy.source == "template"
    assert "{{order_number}}" in copy.subject


def test_unexpected_body_shapes_fall_back_to_templates():
    bodies = [
        ["not", "a", "dict"],
        {"content": ["not a block", 42]},
        {"content": "text"},
        {"content": [{"type": "text", "text": 123}]},
    ]
    for body in bodies:
        session = FakeSession(FakeResponse(body=body))
        copy = EmailCopyGenerator(CLAUDE_CONFIG, session=session).generate(SIGNUP)
        assert copy.source == "template"
        assert copy.subject.startswith("Welcome to")


def test_offline_without_claude_key():
    session = FakeSession()
    for config in (AnalysisConfig(), AnalysisConfig(api_key="g-key", provider="gemini")):
        generator = EmailCopyGenerator(config, session=session)
        copy = generator.generate(SIGNUP)
        assert copy.source == "template"
        assert "{{user_name}}" in copy.body
        assert copy.suggested_variables == ["user_name", "email", "verify_link"]
    assert session.requests == []

    generic = fuse_opportunity(Screen(screen_id="3", name="About"))
    copy = EmailCopyGenerator(AnalysisConfig(), session=session).generate(generic)
    assert copy.subject == "Action required: [Action Name]"
    assert copy.to_wire() == {"subject": copy.subject, "body": copy.body}


if __name__ == "__main__":
    print("🧪 TESTING EMAIL COPY GENERATION")
    print("=" * 60)
    test_prompt_mentions_voice_action_and_variables()
    test_claude_json_reply()
    test_plain_text_reply_scans_for_subject()
    test_json_defaults()
    test_failures_fall_back_to_templates()
    test_unexpected_body_shapes_fall_back_to_templates()
    test_offline_without_claude_key()
    print("✅ All email copy generation tests passed")
