#!/usr/bin/env python3
"""
HTTP API for the analysis channels
POST /api/analyze, /api/vision and /api/generate with JSON bodies
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from aiohttp import web

from .config import AnalysisConfig
from .email_copy_generator import EmailCopyGenerator
from .errors import ValidationError
from .interfaces import (ChildNode, Dimensions, EmailCategory, EmailOpportunity,
                         OpportunityContext, Screen, ScreenContent)
from .llm_client import create_llm_client
from .response_parsing import coerce_confidence, coerce_str, coerce_str_list
from .text_analyzer import TextAnalysisChannel, analyses_to_wire
from .vision_analyzer import VisionAnalysisChannel, VisionRequest

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': 'POST, OPTIONS',
    'Access-Control-Allow-Headers': 'Content-Type',
}

Handler = Callable[[web.Request, Dict[str, Any]], Awaitable[Dict[str, Any]]]


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status, headers=CORS_HEADERS)


def _require_frames(body: Dict[str, Any]) -> List[Dict[str, Any]]:
    frames = body.get("frames")
    if not isinstance(frames, list) or not frames:
        raise ValidationError("No frames provided", field_name="frames")
    return [f for f in frames if isinstance(f, dict)]


def screen_from_frame(frame: Dict[str, Any]) -> Screen:
    """Build a Screen from a text-analysis request frame"""
    dimensions = frame.get("dimensions") or {}
    child_nodes = [
        ChildNode(name=coerce_str(c.get("name"), ""), type=coerce_str(c.get("type"), ""))
        for c in frame.get("childNodes") or [] if isinstance(c, dict)
    ]
    content = ScreenContent(
        text_content=tuple(coerce_str_list(frame.get("textContent"))),
        child_nodes=tuple(child_nodes),
        dimensions=Dimensions(
            width=_coerce_number(dimensions.get("width")),
            height=_coerce_number(dimensions.get("height")),
        ),
    )
    return Screen(
        screen_id=coerce_str(frame.get("id"), ""),
        name=coerce_str(frame.get("name"), ""),
        content=content,
    )


def _coerce_number(value: Any) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return 0.0


def opportunity_from_wire(data: Dict[str, Any]) -> EmailOpportunity:
    """Build an EmailOpportunity from a generate request body"""
    context = data.get("context") if isinstance(data.get("context"), dict) else {}
    category = EmailCategory.coerce(data.get("category"))
    screen_id = coerce_str(data.get("screenId"), "")
    return EmailOpportunity(
        id=coerce_str(data.get("id"), f"opp_{screen_id}"),
        category=category,
        screen_name=coerce_str(data.get("screenName"), ""),
        screen_id=screen_id,
        confidence=coerce_confidence(data.get("confidence")),
        context=OpportunityContext(
            product_type=context.get("productType"),
            user_action=context.get("userAction"),
            detected_variables=coerce_str_list(context.get("detectedVariables")),
        ),
        suggested_name=coerce_str(data.get("suggestedName"), category.display_name),
    )


class AnalysisAPI:
    """aiohttp handlers around the text, vision and copy generation services"""

    def __init__(self, config: Optional[AnalysisConfig] = None,
                 text_channel: Optional[TextAnalysisChannel] = None,
                 vision_channel: Optional[VisionAnalysisChannel] = None,
                 copy_generator: Optional[EmailCopyGenerator] = None):
        self.config = config or AnalysisConfig.from_env()
        self.text_channel = text_channel or TextAnalysisChannel(
            create_llm_client(self.config, self.config.text_model, max_tokens=2000))
        self.vision_channel = vision_channel or VisionAnalysisChannel(
            create_llm_client(self.config, self.config.vision_model, max_tokens=1000))
        self.copy_generator = copy_generator or EmailCopyGenerator(self.config)

    def endpoint(self, handler: Handler) -> Callable[[web.Request], Awaitable[web.Response]]:
        """Wrap a JSON handler with CORS preflight, method and body checks"""

        async def wrapped(request: web.Request) -> web.Response:
            if request.method == 'OPTIONS':
                return web.Response(headers=CORS_HEADERS)
            if request.method != 'POST':
                return _error("Method not allowed", 405)

            try:
                body = await request.json()
            except ValueError:
                return _error("Invalid JSON body", 400)
            if not isinstance(body, dict):
                return _error("Invalid JSON body", 400)

            try:
                payload = await handler(request, body)
            except ValidationError as e:
                return _error(e.message, 400)
            except Exception as e:
                logger.exception(f"❌ {request.path} failed: {e}")
                return web.json_response(
                    {"error": "Request failed", "details": str(e)},
                    status=500, headers=CORS_HEADERS,
                )
            return web.json_response(payload, headers=CORS_HEADERS)

        return wrapped

    async def analyze(self, request: web.Request, body: Dict[str, Any]) -> Dict[str, Any]:
        screens = [screen_from_frame(f) for f in _require_frames(body)]
        # Model replies are joined back by frame id
        seen = set()
        for screen in screens:
            if not screen.screen_id or screen.screen_id in seen:
                raise ValidationError("Every frame needs a unique id", field_name="frames",
                                      value=screen.screen_id)
            seen.add(screen.screen_id)
        results = await self.text_channel.analyze(screens)
        return {"analysis": analyses_to_wire(list(results.values()))}

    async def vision(self, request: web.Request, body: Dict[str, Any]) -> Dict[str, Any]:
        requests = [
            VisionRequest(
                screen_id=coerce_str(f.get("frameId"), ""),
                name=coerce_str(f.get("frameName"), ""),
                image=f.get("imageData") or None,
            )
            for f in _require_frames(body)
        ]
        # One analysis per frame in request order, whatever the ids look like
        analyses = []
        for vision_request in requests:
            analysis = await self.vision_channel.analyze_one(vision_request)
            analyses.append(analysis.to_wire())
        return {"analyses": analyses}

    async def generate(self, request: web.Request, body: Dict[str, Any]) -> Dict[str, Any]:
        data = body.get("opportunity")
        if not isinstance(data, dict):
            raise ValidationError("No opportunity provided", field_name="opportunity")
        opportunity = opportunity_from_wire(data)
        brand_voice = coerce_str(body.get("brandVoice"), self.config.brand_voice)

        # The copy generator uses blocking requests calls
        loop = asyncio.get_running_loop()
        copy = await loop.run_in_executor(None, self.copy_generator.generate, opportunity, brand_voice)
        return copy.to_wire()


def create_app(api: Optional[AnalysisAPI] = None) -> web.Application:
    api = api or AnalysisAPI()
    app = web.Application()
    app.router.add_route('*', '/api/analyze', api.endpoint(api.analyze))
    app.router.add_route('*', '/api/vision', api.endpoint(api.vision))
    app.router.add_route('*', '/api/generate', api.endpoint(api.generate))
    return app


def run_server(port: int = 8080, api: Optional[AnalysisAPI] = None):
    logger.info(f"🌐 Starting API server on port {port}")
    web.run_app(create_app(api), host='0.0.0.0', port=port)
