"""
Local Heuristic Screen Classifier

Classifies a screen from its name (and, failing that, its button labels) into
a transactional email category without any network access. Pattern groups
are tested in a fixed order and the first matching group wins, so a name
that matches two groups always resolves to the earlier one.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .interfaces import EmailCategory, HeuristicMatch, OpportunityContext


@dataclass(frozen=True)
class PatternGroup:
    """One keyword group and the opportunity it produces"""
    category: EmailCategory
    patterns: Tuple[str, ...]
    confidence: float
    user_action: str
    purpose: str
    variables: Tuple[str, ...] = ()
    product_type: Optional[str] = None


# Evaluation order is the priority order
NAME_PATTERN_GROUPS: Tuple[PatternGroup, ...] = (
    PatternGroup(
        category=EmailCategory.WELCOME_EMAIL,
        patterns=("signup", "sign up", "register", "registration",
                  "create account", "new account", "join", "get started"),
        confidence=0.9,
        user_action="signed_up",
        purpose="User registration/signup flow",
        variables=("user_name", "email", "verify_link"),
    ),
    PatternGroup(
        category=EmailCategory.ORDER_CONFIRMATION,
        patterns=("checkout", "place order", "buy", "purchase",
                  "payment", "cart", "order", "confirm order"),
        confidence=0.95,
        user_action="placed_order",
        purpose="E-commerce checkout/order flow",
        variables=("order_number", "customer_name", "total", "items", "shipping_address"),
        product_type="e-commerce",
    ),
    PatternGroup(
        category=EmailCategory.PASSWORD_RESET,
        patterns=("forgot password", "reset password", "password reset", "forgot"),
        confidence=0.92,
        user_action="requested_password_reset",
        purpose="Password reset/recovery flow",
        variables=("user_name", "reset_link", "expiry_time"),
    ),
    PatternGroup(
        category=EmailCategory.EMAIL_VERIFICATION,
        patterns=("verify email", "email verification", "confirm email", "verify account"),
        confidence=0.88,
        user_action="needs_email_verification",
        purpose="Email verification flow",
        variables=("user_name", "verification_link", "verification_code"),
    ),
)

ACTION_VERBS: Tuple[str, ...] = ("submit", "confirm", "send")

FORM_SUBMISSION = PatternGroup(
    category=EmailCategory.GENERIC_TRANSACTIONAL,
    patterns=ACTION_VERBS,
    confidence=0.7,
    user_action="submitted_form",
    purpose="Form submission screen",
)


def _to_match(group: PatternGroup) -> HeuristicMatch:
    return HeuristicMatch(
        category=group.category,
        confidence=group.confidence,
        context=OpportunityContext(
            product_type=group.product_type,
            user_action=group.user_action,
            detected_variables=list(group.variables),
        ),
        purpose=group.purpose,
        suggested_name=group.category.display_name,
    )


def match_name(name: str) -> Optional[PatternGroup]:
    """Return the first pattern group whose keywords occur in the name"""
    lowered = (name or "").lower()
    for group in NAME_PATTERN_GROUPS:
        if any(pattern in lowered for pattern in group.patterns):
            return group
    return None


def classify_screen(name: str, button_labels: Optional[Sequence[str]] = None) -> Optional[HeuristicMatch]:
    """
    Classify a screen using name patterns, then button labels.

    Args:
        name: Screen name as it appears in the document
        button_labels: Labels of interactive elements found on the screen

    Returns:
        HeuristicMatch, or None when nothing matches
    """
    group = match_name(name)
    if group:
        return _to_match(group)

    for label in button_labels or []:
        lowered = str(label).lower()
        if any(verb in lowered for verb in ACTION_VERBS):
            return _to_match(FORM_SUBMISSION)

    return None


def classify_screens(screens) -> List[Optional[HeuristicMatch]]:
    """Classify a batch of screens, preserving order"""
    return [classify_screen(screen.name, screen.button_labels) for screen in screens]
