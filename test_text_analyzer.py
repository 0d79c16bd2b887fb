#!/usr/bin/env python3
"""
Test Text Analysis Channel
Prompt construction, id-based joining and whole-batch fallback
"""

import asyncio
import json

from email_flow_analyzer.errors import NetworkError
from email_flow_analyzer.interfaces import (ChildNode, Dimensions, EmailCategory, Screen,
                                            ScreenContent)
from email_flow_analyzer.text_analyzer import (TextAnalysisChannel, build_text_analysis_prompt,
                                               parse_text_analysis_response)


class FakeLLMClient:
    """Stands in for the network client; records every prompt it receives"""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.prompts = []

    async def complete(self, prompt, image=None):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response


def make_screen(screen_id, name, texts=(), children=()):
    content = ScreenContent(
        text_content=tuple(texts),
        child_nodes=tuple(ChildNode(name=c, type="FRAME") for c in children),
        dimensions=Dimensions(width=375, height=812),
    )
    return Screen(screen_id=screen_id, name=name, content=content)


SCREENS = [
    make_screen("1:1", "Sign Up", ["Create account"]),
    make_screen("2:1", "Checkout", ["Pay now"]),
    make_screen("3:1", "Reset Password", ["Send link"]),
]


def test_prompt_truncates_text_and_children():
    screen = make_screen(
        "9:9", "Long Screen",
        texts=[f"text-{i:02d}" for i in range(1, 13)],
        children=[f"child-{i}" for i in range(1, 8)],
    )
    prompt = build_text_analysis_prompt([screen])

    assert "text-10" in prompt
    assert "text-11" not in prompt
    assert "text-10..." in prompt
    assert "child-5..." in prompt
    assert "child-6" not in prompt
    assert "- ID: 9:9" in prompt
    assert "Dimensions: 375x812" in prompt
    for category in EmailCategory:
        assert category.value in prompt


def test_prompt_without_truncation_has_no_marker():
    prompt = build_text_analysis_prompt([make_screen("1", "Tiny", ["a", "b"], ["x"])])
    assert "[a, b]" in prompt
    assert "[x]" in prompt


def test_join_by_id_not_position():
    raw = json.dumps([
        {"frameId": "3:1", "detectedPurpose": "Password recovery", "suggestedEmailType": "password_reset",
         "suggestedEmailName": "Reset Email", "confidence": 0.85, "suggestedVariables": ["reset_link"]},
        {"frameId": "1:1", "detectedPurpose": "Registration", "suggestedEmailType": "welcome_email",
         "confidence": 0.9},
        {"frameId": "1:1", "detectedPurpose": "Duplicate", "confidence": 0.1},
        {"frameId": "unknown", "detectedPurpose": "Ghost"},
        "not an object",
    ])
    results = parse_text_analysis_response("Here you go:\n" + raw, SCREENS)

    assert list(results) == ["1:1", "3:1"]
    assert results["1:1"].detected_purpose == "Registration"
    assert results["1:1"].screen_name == "Sign Up"
    assert results["3:1"].category == EmailCategory.PASSWORD_RESET
    assert results["3:1"].suggested_variables == ["reset_link"]
    assert not results["3:1"].fallback


def test_missing_fields_use_defaults():
    raw = json.dumps([{"frameId": "2:1", "confidence": "high", "suggestedEmailType": "newsletter",
                       "suggestedVariables": "order_id"}])
    analysis = parse_text_analysis_response(raw, SCREENS)["2:1"]

    assert analysis.detected_purpose == "Unknown purpose"
    assert analysis.suggested_name == "Transactional Email"
    assert analysis.confidence == 0.5
    assert analysis.category == EmailCategory.GENERIC_TRANSACTIONAL
    assert analysis.suggested_variables == []
    assert analysis.reasoning == ""


def test_confidence_is_clamped():
    raw = json.dumps([{"frameId": "1:1", "confidence": 4.2}, {"frameId": "2:1", "confidence": -1}])
    results = parse_text_analysis_response(raw, SCREENS)
    assert results["1:1"].confidence == 1.0
    assert results["2:1"].confidence == 0.0


def test_oversized_confidence_only_affects_its_field():
    raw = ('[{"frameId": "1:1", "suggestedEmailType": "welcome_email", "confidence": 0.8},'
           ' {"frameId": "2:1", "suggestedEmailType": "order_confirmation", "confidence": 1' + "0" * 400 + '}]')
    results = asyncio.run(TextAnalysisChannel(FakeLLMClient(response=raw)).analyze(SCREENS))

    assert list(results) == ["1:1", "2:1"]
    assert not any(r.fallback for r in results.values())
    assert results["1:1"].confidence == 0.8
    assert results["2:1"].confidence == 1.0
    assert results["2:1"].category == EmailCategory.ORDER_CONFIRMATION


def test_numeric_frame_ids_are_matched():
    screens = [make_screen("1", "Sign Up"), make_screen("2", "Checkout")]
    raw = json.dumps([{"frameId": 2, "suggestedEmailType": "order_confirmation", "confidence": 0.9},
                      {"frameId": True, "suggestedEmailType": "welcome_email"}])
    results = parse_text_analysis_response(raw, screens)

    assert list(results) == ["2"]
    assert results["2"].category == EmailCategory.ORDER_CONFIRMATION


def test_single_request_for_whole_batch():
    client = FakeLLMClient(response=json.dumps([{"frameId": "2:1", "suggestedEmailType": "order_confirmation"}]))
    channel = TextAnalysisChannel(client)

    results = asyncio.run(channel.analyze(SCREENS))

    assert len(client.prompts) == 1
    assert list(results) == ["2:1"]


def test_garbage_response_gives_stub_for_every_screen():
    channel = TextAnalysisChannel(FakeLLMClient(response="<html>502 Bad Gateway</html>"))
    results = asyncio.run(channel.analyze(SCREENS))

    assert list(results) == ["1:1", "2:1", "3:1"]
    for analysis in results.values():
        assert analysis.fallback
        assert analysis.confidence == 0.3
        assert analysis.category == EmailCategory.GENERIC_TRANSACTIONAL
        assert analysis.reasoning == "analysis failed"


def test_network_failure_and_missing_client_never_raise():
    failing = TextAnalysisChannel(FakeLLMClient(error=NetworkError("timeout")))
    results = asyncio.run(failing.analyze(SCREENS))
    assert all(r.fallback for r in results.values())

    broken = TextAnalysisChannel(FakeLLMClient(error=RuntimeError("boom")))
    results = asyncio.run(broken.analyze(SCREENS))
    assert len(results) == 3 and all(r.fallback for r in results.values())

    unconfigured = TextAnalysisChannel(None)
    assert not unconfigured.available
    results = asyncio.run(unconfigured.analyze(SCREENS))
    assert all(r.fallback for r in results.values())


def test_empty_batch_makes_no_call():
    client = FakeLLMClient(response="[]")
    assert asyncio.run(TextAnalysisChannel(client).analyze([])) == {}
    assert client.prompts == []


if __name__ == "__main__":
    print("🧪 TESTING TEXT ANALYSIS CHANNEL")
    print("=" * 60)
    test_prompt_truncates_text_and_children()
    test_prompt_without_truncation_has_no_marker()
    test_join_by_id_not_position()
    test_missing_fields_use_defaults()
    test_confidence_is_clamped()
    test_oversized_confidence_only_affects_its_field()
    test_numeric_frame_ids_are_matched()
    test_single_request_for_whole_batch()
    test_garbage_response_gives_stub_for_every_screen()
    test_network_failure_and_missing_client_never_raise()
    test_empty_batch_makes_no_call()
    print("✅ All text analysis tests passed")
