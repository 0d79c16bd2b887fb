#!/usr/bin/env python3
"""
Analyzer Data Model
Defines the records exchanged between the extractor, the analysis channels,
the fusion engine and the flow synthesizer
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class EmailCategory(str, Enum):
    """Closed set of transactional email categories shared by every channel"""
    WELCOME_EMAIL = "welcome_email"
    ORDER_CONFIRMATION = "order_confirmation"
    SHIPPING_NOTIFICATION = "shipping_notification"
    PASSWORD_RESET = "password_reset"
    EMAIL_VERIFICATION = "email_verification"
    PAYMENT_FAILED = "payment_failed"
    SUBSCRIPTION_RENEWAL = "subscription_renewal"
    ACCOUNT_DELETED = "account_deleted"
    INVOICE = "invoice"
    APPOINTMENT_CONFIRMATION = "appointment_confirmation"
    FEEDBACK_REQUEST = "feedback_request"
    ABANDONED_CART = "abandoned_cart"
    GENERIC_TRANSACTIONAL = "generic_transactional"

    @classmethod
    def coerce(cls, value: Any) -> "EmailCategory":
        """Map any value onto the closed set, falling back to the generic member"""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        logger.debug(f"Unknown email category {value!r}, using generic_transactional")
        return cls.GENERIC_TRANSACTIONAL

    @property
    def display_name(self) -> str:
        return " ".join(word.capitalize() for word in self.value.split("_"))


# One-line descriptions used in prompts and offline copy
CATEGORY_DESCRIPTIONS = {
    EmailCategory.WELCOME_EMAIL: "User just signed up",
    EmailCategory.ORDER_CONFIRMATION: "User completed a purchase",
    EmailCategory.SHIPPING_NOTIFICATION: "Order has shipped",
    EmailCategory.PASSWORD_RESET: "User requested password reset",
    EmailCategory.EMAIL_VERIFICATION: "User needs to verify email",
    EmailCategory.PAYMENT_FAILED: "Payment was declined",
    EmailCategory.SUBSCRIPTION_RENEWAL: "Subscription is renewing",
    EmailCategory.ACCOUNT_DELETED: "Account was deleted",
    EmailCategory.INVOICE: "Billing/invoice email",
    EmailCategory.APPOINTMENT_CONFIRMATION: "Booking/appointment made",
    EmailCategory.FEEDBACK_REQUEST: "Ask for user feedback",
    EmailCategory.ABANDONED_CART: "User left items in cart",
    EmailCategory.GENERIC_TRANSACTIONAL: "Other transactional email",
}


@dataclass(frozen=True)
class ChildNode:
    name: str
    type: str


@dataclass(frozen=True)
class Dimensions:
    width: float = 0
    height: float = 0


@dataclass(frozen=True)
class ScreenContent:
    """Content record produced once per screen by the extractor"""
    text_content: tuple = ()
    child_nodes: tuple = ()
    dimensions: Dimensions = field(default_factory=Dimensions)

    def to_wire(self) -> Dict[str, Any]:
        return {
            "textContent": list(self.text_content),
            "childNodes": [{"name": n.name, "type": n.type} for n in self.child_nodes],
            "dimensions": {"width": self.dimensions.width, "height": self.dimensions.height},
        }


@dataclass
class Screen:
    """One screen of the design document, in document scan order"""
    screen_id: str
    name: str
    content: ScreenContent = field(default_factory=ScreenContent)
    button_labels: List[str] = field(default_factory=list)
    image: Optional[Any] = None


@dataclass
class OpportunityContext:
    """Contextual data attached to an opportunity; every field is explicit"""
    product_type: Optional[str] = None
    user_action: Optional[str] = None
    detected_variables: List[str] = field(default_factory=list)


@dataclass
class HeuristicMatch:
    """Result from the local pattern classifier"""
    category: EmailCategory
    confidence: float
    context: OpportunityContext
    purpose: str
    suggested_name: str


@dataclass
class AIAnalysis:
    """Result from the text analysis channel for one screen"""
    screen_id: str
    detected_purpose: str
    category: EmailCategory
    suggested_name: str
    confidence: float
    reasoning: str = ""
    suggested_variables: List[str] = field(default_factory=list)
    screen_name: str = ""
    fallback: bool = False

    def to_wire(self) -> Dict[str, Any]:
        return {
            "frameId": self.screen_id,
            "frameName": self.screen_name,
            "detectedPurpose": self.detected_purpose,
            "suggestedEmailType": self.category.value,
            "suggestedEmailName": self.suggested_name,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
            "suggestedVariables": list(self.suggested_variables),
        }


@dataclass
class VisualAnalysis:
    """Result from the vision analysis channel for one screen"""
    screen_id: str
    design_summary: str
    user_flow_purpose: str
    category: EmailCategory
    suggested_name: str
    confidence: float
    key_elements: List[str] = field(default_factory=list)
    email_context: str = ""
    screen_name: str = ""
    image: Optional[str] = None
    fallback: bool = False

    def to_wire(self) -> Dict[str, Any]:
        return {
            "frameId": self.screen_id,
            "frameName": self.screen_name,
            "designSummary": self.design_summary,
            "userFlowPurpose": self.user_flow_purpose,
            "keyElements": list(self.key_elements),
            "suggestedEmailType": self.category.value,
            "suggestedEmailName": self.suggested_name,
            "emailContext": self.email_context,
            "confidence": self.confidence,
        }


@dataclass
class EmailOpportunity:
    """Fused record for one screen"""
    id: str
    category: EmailCategory
    screen_name: str
    screen_id: str
    confidence: float
    context: OpportunityContext = field(default_factory=OpportunityContext)
    suggested_name: str = ""
    purpose: str = ""
    context_text: str = ""
    content: Optional[ScreenContent] = None
    text_analysis: Optional[AIAnalysis] = None
    visual_analysis: Optional[VisualAnalysis] = None


@dataclass
class FlowStep:
    index: int
    screen_name: str
    purpose: str
    thumbnail: Optional[str] = None


@dataclass
class SuggestedEmail:
    category: EmailCategory
    name: str
    context: str


@dataclass
class FlowSummary:
    """Cross-screen narrative derived from the full opportunity set"""
    product_type: str
    narrative: str
    screen_count: int
    steps: List[FlowStep] = field(default_factory=list)
    suggested_emails: List[SuggestedEmail] = field(default_factory=list)
    aggregate_confidence: float = 0.0


@dataclass
class DetectionResult:
    """Everything the presentation layer receives for one detection pass"""
    pass_id: int
    opportunities: List[EmailOpportunity]
    summary: FlowSummary
    brand_colors: Dict[str, str] = field(default_factory=dict)
    used_text: bool = False
    used_vision: bool = False
    local_only: bool = False
