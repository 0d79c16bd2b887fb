#!/usr/bin/env python3
"""
Test Heuristic Classifier
Checks name pattern priority, button label fallback and determinism
"""

from email_flow_analyzer.heuristic_classifier import (NAME_PATTERN_GROUPS, classify_screen,
                                                      classify_screens)
from email_flow_analyzer.interfaces import EmailCategory, Screen


def test_signup_patterns_always_welcome():
    signup_group = NAME_PATTERN_GROUPS[0]
    for pattern in signup_group.patterns:
        for name in (pattern, pattern.title(), pattern.upper()):
            match = classify_screen(name)
            assert match is not None, name
            assert match.category == EmailCategory.WELCOME_EMAIL
            assert match.confidence == 0.9


def test_scenario_a_categories_and_confidences():
    names = ["Sign Up", "Checkout", "Reset Password"]
    matches = [classify_screen(name) for name in names]

    assert [m.category for m in matches] == [
        EmailCategory.WELCOME_EMAIL,
        EmailCategory.ORDER_CONFIRMATION,
        EmailCategory.PASSWORD_RESET,
    ]
    assert [m.confidence for m in matches] == [0.9, 0.95, 0.92]


def test_first_matching_group_wins():
    # Matches both the checkout and the verification group
    match = classify_screen("Checkout - Verify Email")
    assert match.category == EmailCategory.ORDER_CONFIRMATION

    match = classify_screen("Sign up then forgot password")
    assert match.category == EmailCategory.WELCOME_EMAIL


def test_verification_and_context():
    match = classify_screen("Verify Email")
    assert match.category == EmailCategory.EMAIL_VERIFICATION
    assert match.confidence == 0.88
    assert match.context.user_action == "needs_email_verification"
    assert "verification_link" in match.context.detected_variables

    order = classify_screen("Cart")
    assert order.context.product_type == "e-commerce"
    assert order.suggested_name == "Order Confirmation"


def test_button_labels_give_generic_match():
    match = classify_screen("Step 3", ["Back", "Submit details"])
    assert match is not None
    assert match.category == EmailCategory.GENERIC_TRANSACTIONAL
    assert match.confidence == 0.7
    assert match.context.user_action == "submitted_form"

    # Name patterns take priority over labels
    match = classify_screen("Register", ["Send"])
    assert match.category == EmailCategory.WELCOME_EMAIL


def test_no_match_returns_none():
    assert classify_screen("Home Feed") is None
    assert classify_screen("Settings", ["Cancel", "Close"]) is None
    assert classify_screen("") is None


def test_classification_is_deterministic():
    screens = [Screen(screen_id=str(i), name=name, button_labels=labels)
               for i, (name, labels) in enumerate([("Sign Up", []), ("Profile", ["confirm"]), ("About", [])])]

    first = classify_screens(screens)
    second = classify_screens(screens)
    assert first == second
    assert first[2] is None


if __name__ == "__main__":
    print("🧪 TESTING HEURISTIC CLASSIFIER")
    print("=" * 60)
    test_signup_patterns_always_welcome()
    test_scenario_a_categories_and_confidences()
    test_first_matching_group_wins()
    test_verification_and_context()
    test_button_labels_give_generic_match()
    test_no_match_returns_none()
    test_classification_is_deterministic()
    print("✅ All heuristic classifier tests passed")
