#!/usr/bin/env python3
"""
Email copy generation for detected opportunities.
Produces a subject line and body text with Claude, or from offline templates
when no API key is configured. Only text is produced; placing it into the
design document is left to the caller.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from .config import AnalysisConfig, DEFAULT_CLAUDE_MODEL
from .errors import ParseError
from .interfaces import EmailCategory, EmailOpportunity
from .llm_client import ANTHROPIC_URL, ANTHROPIC_VERSION
from .response_parsing import coerce_str, coerce_str_list, parse_json_object

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT = "Your action was completed"
DEFAULT_BODY = "Thank you for using our service."

COPY_DESCRIPTIONS = {
    EmailCategory.WELCOME_EMAIL: "a welcome email sent when a user signs up",
    EmailCategory.ORDER_CONFIRMATION: "an order confirmation email sent after purchase",
    EmailCategory.SHIPPING_NOTIFICATION: "a shipping notification with tracking info",
    EmailCategory.PASSWORD_RESET: "a password reset email with secure link",
    EmailCategory.EMAIL_VERIFICATION: "an email verification message with link or code",
    EmailCategory.PAYMENT_FAILED: "a payment failure notification",
    EmailCategory.SUBSCRIPTION_RENEWAL: "a subscription renewal reminder",
    EmailCategory.ACCOUNT_DELETED: "an account deletion confirmation",
    EmailCategory.INVOICE: "an invoice email with the billed amount and due date",
    EmailCategory.APPOINTMENT_CONFIRMATION: "an appointment confirmation with date, time and location",
    EmailCategory.FEEDBACK_REQUEST: "a feedback request asking about the user's experience",
    EmailCategory.ABANDONED_CART: "a reminder about items left in the cart",
    EmailCategory.GENERIC_TRANSACTIONAL: "a transactional notification email",
}

OFFLINE_TEMPLATES = {
    EmailCategory.WELCOME_EMAIL: (
        "Welcome to [Product Name]! 🎉",
        "Hi {{user_name}},\n\n"
        "Welcome aboard! We're thrilled to have you join [Product Name].\n\n"
        "Here's what to do next:\n\n"
        "1. Verify your email\n"
        "   Click the link below to confirm your account:\n"
        "   {{verify_link}}\n\n"
        "2. Complete your profile\n"
        "   Add your details to get personalized recommendations\n\n"
        "3. Explore features\n"
        "   Check out our getting started guide\n\n"
        "Need help? Just reply to this email and we'll get back to you.\n\n"
        "Best regards,\n"
        "The [Product Name] Team",
    ),
    EmailCategory.ORDER_CONFIRMATION: (
        "Order #{{order_number}} confirmed! 📦",
        "Hi {{customer_name}},\n\n"
        "Great news! Your order is confirmed.\n\n"
        "Order Details:\n"
        "Order #: {{order_number}}\n"
        "Total: {{total}}\n"
        "Expected Delivery: {{delivery_date}}\n\n"
        "Items:\n"
        "{{items}}\n\n"
        "Shipping Address:\n"
        "{{shipping_address}}\n\n"
        "Questions? We're here to help - just reply to this email.\n\n"
        "Thanks for your order!\n"
        "The [Product Name] Team",
    ),
    EmailCategory.PASSWORD_RESET: (
        "Reset your password",
        "Hi {{user_name}},\n\n"
        "We received a request to reset your password.\n\n"
        "Click the link below to create a new password:\n"
        "{{reset_link}}\n\n"
        "This link expires in {{expiry_time}}.\n\n"
        "If you didn't request this, you can safely ignore this email.\n\n"
        "Best regards,\n"
        "The [Product Name] Team",
    ),
    EmailCategory.EMAIL_VERIFICATION: (
        "Please verify your email address",
        "Hi {{user_name}},\n\n"
        "Thanks for signing up! Please verify your email address to get started.\n\n"
        "Click here to verify:\n"
        "{{verification_link}}\n\n"
        "Or use this code: {{verification_code}}\n\n"
        "This verification link expires in 24 hours.\n\n"
        "If you didn't create an account, you can ignore this email.\n\n"
        "Best regards,\n"
        "The [Product Name] Team",
    ),
    EmailCategory.GENERIC_TRANSACTIONAL: (
        "Action required: [Action Name]",
        "Hi there,\n\n"
        "We wanted to let you know that your action was received.\n\n"
        "[Customize this email based on your specific use case]\n\n"
        "Next steps:\n"
        "• [Step 1]\n"
        "• [Step 2]\n"
        "• [Step 3]\n\n"
        "Questions? Reply to this email.\n\n"
        "Best regards,\n"
        "The Team",
    ),
}


@dataclass
class EmailCopy:
    subject: str
    body: str
    suggested_variables: List[str] = field(default_factory=list)
    source: str = "template"

    def to_wire(self) -> Dict[str, str]:
        return {"subject": self.subject, "body": self.body}


def build_copy_prompt(opportunity: EmailOpportunity, brand_voice: str) -> str:
    """Create the AI prompt for subject and body generation"""
    description = COPY_DESCRIPTIONS.get(opportunity.category, "a transactional email")
    variables = opportunity.context.detected_variables
    user_action = opportunity.context.user_action or "took an action"
    if user_action == "unknown":
        user_action = "took an action"

    variable_line = ""
    if variables:
        variable_line = "Available variables: " + ", ".join(f"{{{{{v}}}}}" for v in variables)

    return f"""You are an expert email copywriter specializing in transactional emails.

Generate {description} for a user who {user_action}.

Requirements:
- Brand voice: {brand_voice}
- Keep it concise and clear (150-250 words)
- Use a warm, helpful tone
- Include all necessary information
- Add a clear call-to-action if appropriate

{variable_line}

Please respond with a JSON object containing:
{{
  "subject": "email subject line (max 50 characters)",
  "body": "email body text with proper formatting and line breaks",
  "suggestedVariables": ["array", "of", "variables", "used"]
}}

Make the subject line engaging but professional. Format the body with clear paragraphs and spacing."""


def parse_copy_response(raw_content: str) -> EmailCopy:
    """Parse the model reply; plain text falls back to a 'Subject:' line scan"""
    try:
        parsed = parse_json_object(raw_content)
        return EmailCopy(
            subject=coerce_str(parsed.get("subject"), DEFAULT_SUBJECT),
            body=coerce_str(parsed.get("body"), DEFAULT_BODY),
            suggested_variables=coerce_str_list(parsed.get("suggestedVariables")),
            source="ai",
        )
    except ParseError as e:
        logger.debug(f"Copy response is not JSON, scanning for subject line: {e}")

    text = raw_content or ""
    lines = text.split("\n")
    subject = DEFAULT_SUBJECT
    body = text

    for i, line in enumerate(lines):
        if "subject:" in line.lower():
            candidate = line.split(":", 1)[1].strip()
            subject = candidate or subject
            body = "\n".join(lines[i + 1:]).strip()
            break

    return EmailCopy(subject=subject, body=body or DEFAULT_BODY, source="ai_text")


def offline_copy(opportunity: EmailOpportunity) -> EmailCopy:
    subject, body = OFFLINE_TEMPLATES.get(
        opportunity.category, OFFLINE_TEMPLATES[EmailCategory.GENERIC_TRANSACTIONAL]
    )
    return EmailCopy(
        subject=subject,
        body=body,
        suggested_variables=list(opportunity.context.detected_variables),
        source="template",
    )


def _response_text(result: Any) -> str:
    """First text block of a Messages API body; ValueError on any other shape"""
    if not isinstance(result, dict) or not isinstance(result.get("content", []), list):
        raise ValueError(f"Unexpected Claude response body: {type(result).__name__}")
    for block in result.get("content", []):
        if isinstance(block, dict) and block.get("type") == "text":
            text = block.get("text", "")
            if not isinstance(text, str):
                raise ValueError("Claude text block is not a string")
            return text
    return ""


class EmailCopyGenerator:
    """Generates subject/body text for one opportunity at a time"""

    def __init__(self, config: Optional[AnalysisConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or AnalysisConfig.from_env()
        self.session = session or requests.Session()

        # Only Claude is wired for copy generation
        self.use_ai = self.config.ai_configured and self.config.provider == "claude"
        if not self.use_ai:
            logger.info("⚠️ No Claude API key configured - using offline email templates")

    def generate(self, opportunity: EmailOpportunity, brand_voice: Optional[str] = None) -> EmailCopy:
        """
        Generate copy for an opportunity.

        Never raises: request failures fall back to the offline template.
        """
        if not self.use_ai:
            return offline_copy(opportunity)

        prompt = build_copy_prompt(opportunity, brand_voice or self.config.brand_voice)

        try:
            headers = {
                "Content-Type": "application/json",
                "x-api-key": self.config.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
            }
            payload = {
                "model": self.config.text_model or DEFAULT_CLAUDE_MODEL,
                "max_tokens": 1000,
                "messages": [{"role": "user", "content": prompt}],
            }
            response = self.session.post(ANTHROPIC_URL, headers=headers, json=payload,
                                         timeout=self.config.timeout)

            if response.status_code != 200:
                logger.warning(f"⚠️ Claude API error: {response.status_code} - {response.text[:200]}")
                return offline_copy(opportunity)

            return parse_copy_response(_response_text(response.json()))

        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"⚠️ Copy generation failed for {opportunity.id}: {e}")
            return offline_copy(opportunity)
