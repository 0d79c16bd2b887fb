#!/usr/bin/env python3
"""
Flow Synthesis
Builds the cross-screen summary: product type, ordered steps, one suggested
email per category and the aggregate confidence
"""

import logging
from typing import List, Optional, Sequence, Set

from .fusion import BASELINE_PURPOSE
from .interfaces import (EmailCategory, EmailOpportunity, FlowStep, FlowSummary,
                         SuggestedEmail)

logger = logging.getLogger(__name__)

# Evaluation order is the priority order
PRODUCT_TYPE_PATTERNS = {
    "e-commerce": ["cart", "checkout", "order", "purchase", "shop", "product", "payment"],
    "saas": ["dashboard", "workspace", "analytics", "subscription", "plan", "billing", "settings"],
    "booking": ["book", "appointment", "schedule", "reservation", "calendar"],
    "authentication": ["login", "log in", "sign in", "sign up", "signup", "register", "password", "verify"],
}

PRODUCT_TYPE_DESCRIPTIONS = {
    "e-commerce": "an e-commerce purchase journey",
    "saas": "a SaaS product and dashboard experience",
    "booking": "a booking and scheduling flow",
    "authentication": "an authentication and onboarding flow",
    "general": "a general product flow",
}


def _purpose_texts(opportunity: EmailOpportunity) -> List[str]:
    texts = [opportunity.purpose]
    vision = opportunity.visual_analysis
    if vision is not None and not vision.fallback:
        texts.extend([vision.user_flow_purpose, vision.design_summary])
    text = opportunity.text_analysis
    if text is not None and not text.fallback:
        texts.append(text.detected_purpose)
    return texts


def classify_product_type(opportunities: Sequence[EmailOpportunity]) -> str:
    """First keyword group found in the combined purpose and screen text wins"""
    parts: List[str] = []
    for opportunity in opportunities:
        parts.extend(_purpose_texts(opportunity))
        if opportunity.content is not None:
            parts.extend(str(t) for t in opportunity.content.text_content)
    combined = " ".join(p for p in parts if p).lower()

    for product_type, keywords in PRODUCT_TYPE_PATTERNS.items():
        if any(keyword in combined for keyword in keywords):
            return product_type
    return "general"


def best_purpose(opportunity: EmailOpportunity) -> str:
    """Vision purpose, then text purpose, then the heuristic purpose"""
    vision = opportunity.visual_analysis
    if vision is not None and not vision.fallback and vision.user_flow_purpose:
        return vision.user_flow_purpose
    text = opportunity.text_analysis
    if text is not None and not text.fallback and text.detected_purpose:
        return text.detected_purpose
    return opportunity.purpose or BASELINE_PURPOSE


def _thumbnail(opportunity: EmailOpportunity) -> Optional[str]:
    vision = opportunity.visual_analysis
    return vision.image if vision is not None else None


def build_steps(opportunities: Sequence[EmailOpportunity]) -> List[FlowStep]:
    return [
        FlowStep(
            index=i + 1,
            screen_name=opportunity.screen_name,
            purpose=best_purpose(opportunity),
            thumbnail=_thumbnail(opportunity),
        )
        for i, opportunity in enumerate(opportunities)
    ]


def dedupe_suggestions(opportunities: Sequence[EmailOpportunity]) -> List[SuggestedEmail]:
    """One suggestion per category, taken from the first screen in scan order"""
    seen: Set[EmailCategory] = set()
    suggestions: List[SuggestedEmail] = []

    for opportunity in opportunities:
        if opportunity.category in seen:
            continue
        seen.add(opportunity.category)
        suggestions.append(SuggestedEmail(
            category=opportunity.category,
            name=opportunity.suggested_name or opportunity.category.display_name,
            context=opportunity.context_text,
        ))

    return suggestions


def synthesize_flow(opportunities: Sequence[EmailOpportunity]) -> FlowSummary:
    """
    Derive the flow summary from the full, ordered opportunity set.

    Always computed from scratch; callers replace the previous summary.
    """
    opportunities = list(opportunities)
    product_type = classify_product_type(opportunities)
    screen_count = len(opportunities)

    if screen_count:
        aggregate = sum(o.confidence for o in opportunities) / screen_count
    else:
        aggregate = 0.0

    narrative = f"This {screen_count}-screen flow looks like {PRODUCT_TYPE_DESCRIPTIONS[product_type]}."

    summary = FlowSummary(
        product_type=product_type,
        narrative=narrative,
        screen_count=screen_count,
        steps=build_steps(opportunities),
        suggested_emails=dedupe_suggestions(opportunities),
        aggregate_confidence=aggregate,
    )
    logger.info(f"🧭 Flow summary: {product_type}, {screen_count} screens, "
                f"{len(summary.suggested_emails)} suggested emails")
    return summary
