#!/usr/bin/env python3
"""
AI-powered text analysis of design screens.
Sends one batched prompt for all screens and joins the JSON array response
back to the requested screens by id.
"""

import logging
from typing import Dict, List, Optional, Sequence

from .errors import NetworkError, ParseError
from .interfaces import AIAnalysis, CATEGORY_DESCRIPTIONS, EmailCategory, Screen
from .llm_client import LLMClient
from .response_parsing import (coerce_category, coerce_confidence, coerce_str,
                               coerce_str_list, parse_json_array)

logger = logging.getLogger(__name__)

MAX_TEXT_EXCERPTS = 10
MAX_CHILD_NAMES = 5
TRUNCATION_MARKER = "..."

DEFAULT_PURPOSE = "Unknown purpose"
DEFAULT_EMAIL_NAME = "Transactional Email"
DEFAULT_CONFIDENCE = 0.5
FALLBACK_CONFIDENCE = 0.3


def _sample(items: Sequence[str], limit: int) -> str:
    sample = ", ".join(items[:limit])
    if len(items) > limit:
        sample += TRUNCATION_MARKER
    return sample


def _describe_screen(index: int, screen: Screen) -> str:
    content = screen.content
    text_sample = _sample([str(t) for t in content.text_content], MAX_TEXT_EXCERPTS)
    child_sample = _sample([n.name for n in content.child_nodes], MAX_CHILD_NAMES)
    width = content.dimensions.width
    height = content.dimensions.height
    return (
        f"Frame {index + 1}:\n"
        f"- Name: \"{screen.name}\"\n"
        f"- ID: {screen.screen_id}\n"
        f"- Dimensions: {width:g}x{height:g}\n"
        f"- Text content found: [{text_sample}]\n"
        f"- Child elements: [{child_sample}]\n"
    )


def build_text_analysis_prompt(screens: Sequence[Screen]) -> str:
    """Create the single batched prompt covering every screen"""
    frame_descriptions = "\n".join(_describe_screen(i, s) for i, s in enumerate(screens))
    email_types = "\n".join(
        f"- {category.value}: {CATEGORY_DESCRIPTIONS[category]}" for category in EmailCategory
    )

    return f"""You are an expert product designer and UX analyst. Analyze these design frames and identify what product flow or user journey each frame represents.

For each frame, determine:
1. The purpose of this screen in a product flow
2. What transactional email would be triggered by this flow
3. What variables/data would be relevant for that email

Available email types:
{email_types}

Frames to analyze:
{frame_descriptions}
Respond with a JSON array of analysis objects:
[
  {{
    "frameId": "the frame ID",
    "frameName": "the frame name",
    "detectedPurpose": "Brief description of what this screen is for (e.g., 'User registration form', 'Checkout payment page')",
    "suggestedEmailType": "one of the email types above",
    "suggestedEmailName": "Human readable name (e.g., 'Welcome Email', 'Order Confirmation')",
    "confidence": 0.0 to 1.0,
    "reasoning": "Why you identified it this way",
    "suggestedVariables": ["user_name", "order_id", "etc"]
  }}
]

If a frame doesn't seem to be related to any email-triggering flow, still include it but with confidence < 0.5 and suggestedEmailType: "generic_transactional".

Return ONLY the JSON array, no other text."""


def fallback_text_analysis(screen: Screen) -> AIAnalysis:
    """Uniform low-confidence stub used when the whole channel fails"""
    return AIAnalysis(
        screen_id=screen.screen_id,
        screen_name=screen.name,
        detected_purpose="Could not analyze",
        category=EmailCategory.GENERIC_TRANSACTIONAL,
        suggested_name=DEFAULT_EMAIL_NAME,
        confidence=FALLBACK_CONFIDENCE,
        reasoning="analysis failed",
        suggested_variables=[],
        fallback=True,
    )


def _analysis_from_item(item: dict, screen: Screen) -> AIAnalysis:
    return AIAnalysis(
        screen_id=screen.screen_id,
        screen_name=coerce_str(item.get("frameName"), screen.name),
        detected_purpose=coerce_str(item.get("detectedPurpose"), DEFAULT_PURPOSE),
        category=coerce_category(item.get("suggestedEmailType")),
        suggested_name=coerce_str(item.get("suggestedEmailName"), DEFAULT_EMAIL_NAME),
        confidence=coerce_confidence(item.get("confidence"), DEFAULT_CONFIDENCE),
        reasoning=coerce_str(item.get("reasoning"), ""),
        suggested_variables=coerce_str_list(item.get("suggestedVariables")),
    )


def parse_text_analysis_response(raw_content: str, screens: Sequence[Screen]) -> Dict[str, AIAnalysis]:
    """
    Parse the model's JSON array and join entries to screens by frame id.

    Entries with unknown ids are dropped, duplicate ids keep their first entry
    and screens the model skipped are simply absent from the result.

    Raises:
        ParseError: when no JSON array can be recovered from the response
    """
    items = parse_json_array(raw_content)
    by_id = {screen.screen_id: screen for screen in screens}
    matched: Dict[str, AIAnalysis] = {}

    for item in items:
        if not isinstance(item, dict):
            logger.debug(f"Ignoring non-object analysis entry: {item!r}")
            continue
        frame_id = item.get("frameId")
        if isinstance(frame_id, int) and not isinstance(frame_id, bool):
            frame_id = str(frame_id)
        if not isinstance(frame_id, str) or frame_id not in by_id:
            logger.debug(f"Ignoring analysis for unknown frame {frame_id!r}")
            continue
        if frame_id in matched:
            logger.debug(f"Ignoring duplicate analysis for frame {frame_id}")
            continue
        matched[frame_id] = _analysis_from_item(item, by_id[frame_id])

    # Keep request order
    return {s.screen_id: matched[s.screen_id] for s in screens if s.screen_id in matched}


class TextAnalysisChannel:
    """Batched text analysis over one LLM call"""

    def __init__(self, client: Optional[LLMClient]):
        self.client = client

    @property
    def available(self) -> bool:
        return self.client is not None

    async def analyze(self, screens: Sequence[Screen]) -> Dict[str, AIAnalysis]:
        """
        Analyze a batch of screens with a single request.

        Args:
            screens: Screens in document scan order

        Returns:
            Mapping screen_id -> AIAnalysis. Never raises: a failed call or an
            unparseable response yields the fallback stub for every screen.
        """
        screens = list(screens)
        if not screens:
            return {}

        if self.client is None:
            logger.warning("⚠️ Text analysis requested without a configured model")
            return {s.screen_id: fallback_text_analysis(s) for s in screens}

        prompt = build_text_analysis_prompt(screens)
        logger.info(f"🧠 Text analysis: sending {len(screens)} screens in one request")

        try:
            raw_content = await self.client.complete(prompt)
            results = parse_text_analysis_response(raw_content, screens)
        except (NetworkError, ParseError) as e:
            logger.warning(f"⚠️ Text analysis failed, using fallback for all screens: {e}")
            return {s.screen_id: fallback_text_analysis(s) for s in screens}
        except Exception as e:
            logger.exception(f"❌ Unexpected text analysis error: {e}")
            return {s.screen_id: fallback_text_analysis(s) for s in screens}

        missing = len(screens) - len(results)
        if missing:
            logger.info(f"   Text analysis returned no entry for {missing} screen(s)")
        logger.info(f"✅ Text analysis completed for {len(results)} screens")
        return results


def analyses_to_wire(analyses: List[AIAnalysis]) -> List[dict]:
    return [analysis.to_wire() for analysis in analyses]
