#!/usr/bin/env python3
"""
Vision Analyzer using Claude/Gemini APIs
Analyzes rendered design screens one at a time with an LLM vision model
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence

from .errors import NetworkError, ParseError
from .interfaces import EmailCategory, VisualAnalysis
from .llm_client import LLMClient, encode_image
from .response_parsing import (coerce_category, coerce_confidence, coerce_str,
                               coerce_str_list, parse_json_object)

logger = logging.getLogger(__name__)

DEFAULT_EMAIL_NAME = "Transactional Email"
DEFAULT_CONFIDENCE = 0.5
FALLBACK_CONFIDENCE = 0.3

VISION_EMAIL_TYPES = ", ".join(category.value for category in EmailCategory)


@dataclass
class VisionRequest:
    """One screen to analyze: id, display name and a renderable image"""
    screen_id: str
    name: str
    image: Any = None


def build_vision_prompt(screen_name: str) -> str:
    return f"""Analyze this UI/UX design screenshot and provide insights.

Frame name: "{screen_name}"

Please analyze the design and respond with a JSON object:
{{
  "designSummary": "A 2-3 sentence summary of what this screen shows and its purpose",
  "userFlowPurpose": "What step in the user journey this represents (e.g., 'User registration step 2 - email verification', 'Checkout - payment details')",
  "keyElements": ["array", "of", "key", "UI", "elements", "visible"],
  "suggestedEmailType": "One of: {VISION_EMAIL_TYPES}",
  "suggestedEmailName": "Human-readable email name (e.g., 'Welcome Email', 'Order Confirmation')",
  "emailContext": "What context/data from this screen should be included in the email",
  "confidence": 0.0 to 1.0
}}

Focus on understanding what action the user is taking and what transactional email would be triggered.
Return ONLY the JSON object, no other text."""


def fallback_visual_analysis(request: VisionRequest, image: Optional[str] = None) -> VisualAnalysis:
    """Fixed per-screen fallback used when one screen's call or parse fails"""
    return VisualAnalysis(
        screen_id=request.screen_id,
        screen_name=request.name,
        design_summary="Analysis failed",
        user_flow_purpose="Unknown",
        key_elements=[],
        category=EmailCategory.GENERIC_TRANSACTIONAL,
        suggested_name=DEFAULT_EMAIL_NAME,
        email_context="",
        confidence=FALLBACK_CONFIDENCE,
        image=image,
        fallback=True,
    )


def parse_vision_response(raw_content: str, request: VisionRequest,
                          image: Optional[str] = None) -> VisualAnalysis:
    """
    Parse one JSON object response into a VisualAnalysis.

    Raises:
        ParseError: when no JSON object can be recovered
    """
    parsed = parse_json_object(raw_content)
    return VisualAnalysis(
        screen_id=request.screen_id,
        screen_name=request.name,
        design_summary=coerce_str(parsed.get("designSummary"), "No summary available"),
        user_flow_purpose=coerce_str(parsed.get("userFlowPurpose"), "Unknown purpose"),
        key_elements=coerce_str_list(parsed.get("keyElements")),
        category=coerce_category(parsed.get("suggestedEmailType")),
        suggested_name=coerce_str(parsed.get("suggestedEmailName"), DEFAULT_EMAIL_NAME),
        email_context=coerce_str(parsed.get("emailContext"), ""),
        confidence=coerce_confidence(parsed.get("confidence"), DEFAULT_CONFIDENCE),
        image=image,
    )


class VisionAnalysisChannel:
    """
    Per-screen vision analysis.

    Calls are issued strictly one after another in the given order, so a slow
    or failing screen can only ever affect its own result.
    """

    def __init__(self, client: Optional[LLMClient]):
        self.client = client

    @property
    def available(self) -> bool:
        return self.client is not None

    async def analyze_one(self, request: VisionRequest) -> VisualAnalysis:
        """Analyze a single screen; failures become that screen's fallback"""
        image_url = None
        try:
            if self.client is None:
                raise NetworkError("No vision model configured")
            if request.image is None:
                raise ValueError("No image available for screen")
            payload = encode_image(request.image)
            image_url = payload.data_url
            raw_content = await self.client.complete(build_vision_prompt(request.name), image=payload)
            return parse_vision_response(raw_content, request, image=image_url)
        except (NetworkError, ParseError, ValueError, OSError) as e:
            logger.warning(f"⚠️ Vision analysis failed for '{request.name}': {e}")
            return fallback_visual_analysis(request, image=image_url)
        except Exception as e:
            logger.exception(f"❌ Unexpected vision error for '{request.name}': {e}")
            return fallback_visual_analysis(request, image=image_url)

    async def analyze(self, requests: Sequence[VisionRequest],
                      should_continue: Optional[Callable[[], bool]] = None) -> Dict[str, VisualAnalysis]:
        """
        Analyze screens sequentially in document order.

        Args:
            requests: One VisionRequest per screen
            should_continue: Checked before each call; returning False stops
                issuing further calls (used when a detection pass is superseded)

        Returns:
            Mapping screen_id -> VisualAnalysis with one entry per analyzed screen
        """
        results: Dict[str, VisualAnalysis] = {}

        for i, request in enumerate(requests):
            if should_continue is not None and not should_continue():
                logger.info("⏹️ Vision analysis stopped: detection pass superseded")
                break
            logger.info(f"   🔍 Vision analysis: screen {i + 1}/{len(requests)} '{request.name}'")
            results[request.screen_id] = await self.analyze_one(request)

        succeeded = sum(1 for r in results.values() if not r.fallback)
        logger.info(f"✅ Vision analysis completed: {succeeded}/{len(results)} screens analyzed")
        return results
