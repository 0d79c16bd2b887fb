"""
Channel fusion

Merges the heuristic, text and vision signals for one screen into a single
EmailOpportunity. Precedence is fixed: vision over text over heuristic. A
channel's fallback stub is attached to the record for display but never
outranks a real signal from a lower channel.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from .interfaces import (AIAnalysis, EmailCategory, EmailOpportunity, HeuristicMatch,
                         OpportunityContext, Screen, VisualAnalysis)
from .response_parsing import clamp_confidence

BASELINE_CONFIDENCE = 0.5
BASELINE_USER_ACTION = "unknown"
BASELINE_PURPOSE = "general screen"


def opportunity_id(screen_id: str) -> str:
    return f"opp_{screen_id}"


def _ordered_union(lists: Iterable[Sequence[str]]) -> List[str]:
    seen = set()
    merged: List[str] = []
    for values in lists:
        for value in values:
            if value not in seen:
                seen.add(value)
                merged.append(value)
    return merged


def fuse_opportunity(screen: Screen,
                     heuristic: Optional[HeuristicMatch] = None,
                     text: Optional[AIAnalysis] = None,
                     vision: Optional[VisualAnalysis] = None) -> EmailOpportunity:
    """
    Build the fused record for one screen.

    Only which inputs are present matters, never the order in which the
    channels completed.
    """
    real_vision = vision if vision is not None and not vision.fallback else None
    real_text = text if text is not None and not text.fallback else None

    if real_vision is not None:
        category = real_vision.category
        confidence = real_vision.confidence
        suggested_name = real_vision.suggested_name
        purpose = real_vision.user_flow_purpose
    elif real_text is not None:
        category = real_text.category
        confidence = real_text.confidence
        suggested_name = real_text.suggested_name
        purpose = real_text.detected_purpose
    elif heuristic is not None:
        category = heuristic.category
        confidence = heuristic.confidence
        suggested_name = heuristic.suggested_name
        purpose = heuristic.purpose
    else:
        category = EmailCategory.GENERIC_TRANSACTIONAL
        fallbacks = [r.confidence for r in (vision, text) if r is not None]
        confidence = fallbacks[0] if fallbacks else BASELINE_CONFIDENCE
        suggested_name = category.display_name
        purpose = BASELINE_PURPOSE

    variable_sources: List[Sequence[str]] = []
    if real_text is not None:
        variable_sources.append(real_text.suggested_variables)
    if heuristic is not None:
        variable_sources.append(heuristic.context.detected_variables)

    context = OpportunityContext(
        product_type=heuristic.context.product_type if heuristic else None,
        user_action=heuristic.context.user_action if heuristic else BASELINE_USER_ACTION,
        detected_variables=_ordered_union(variable_sources),
    )

    if real_vision is not None and real_vision.email_context:
        context_text = real_vision.email_context
    elif real_text is not None:
        context_text = real_text.detected_purpose
    elif heuristic is not None:
        context_text = heuristic.purpose
    else:
        context_text = ""

    return EmailOpportunity(
        id=opportunity_id(screen.screen_id),
        category=category,
        screen_name=screen.name,
        screen_id=screen.screen_id,
        confidence=clamp_confidence(confidence),
        context=context,
        suggested_name=suggested_name,
        purpose=purpose,
        context_text=context_text,
        content=screen.content,
        text_analysis=text,
        visual_analysis=vision,
    )


@dataclass
class ResultTable:
    """
    Per-pass channel results keyed by screen id.

    Owned by a single detection pass; a new pass always starts from a new table.
    """
    pass_id: int
    heuristic: Dict[str, Optional[HeuristicMatch]] = field(default_factory=dict)
    text: Dict[str, AIAnalysis] = field(default_factory=dict)
    vision: Dict[str, VisualAnalysis] = field(default_factory=dict)

    def record_text(self, results: Dict[str, AIAnalysis]) -> None:
        self.text.update(results)

    def record_vision(self, results: Dict[str, VisualAnalysis]) -> None:
        self.vision.update(results)


def fuse_all(screens: Sequence[Screen], table: ResultTable) -> List[EmailOpportunity]:
    """Fuse every screen in scan order"""
    return [
        fuse_opportunity(
            screen,
            heuristic=table.heuristic.get(screen.screen_id),
            text=table.text.get(screen.screen_id),
            vision=table.vision.get(screen.screen_id),
        )
        for screen in screens
    ]
