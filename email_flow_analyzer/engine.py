#!/usr/bin/env python3
"""
Detection Engine
Runs one detection pass over a design document:
extractor -> heuristics -> optional text/vision channels -> fusion -> flow summary
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

from .config import AnalysisConfig
from .flow_synthesizer import synthesize_flow
from .fusion import ResultTable, fuse_all
from .heuristic_classifier import classify_screen
from .interfaces import DetectionResult, Screen
from .llm_client import create_llm_client
from .screen_extractor import extract_brand_colors, extract_screens
from .text_analyzer import TextAnalysisChannel
from .vision_analyzer import VisionAnalysisChannel, VisionRequest

logger = logging.getLogger(__name__)

ImageRenderer = Callable[[Screen], Any]
Presenter = Callable[[DetectionResult], None]


@dataclass(frozen=True)
class PassToken:
    """Identifies one detection pass; only the newest token may publish"""
    pass_id: int


@dataclass
class DetectionOptions:
    use_text: bool = False
    use_vision: bool = False
    scan_all: bool = False
    page: Union[int, str, None] = None


class DetectionEngine:
    """
    Single entry point for email opportunity detection.

    Passes are last-pass-wins: starting a new pass supersedes any pass still
    waiting on a channel, and a superseded pass never publishes its result.
    """

    def __init__(self, config: Optional[AnalysisConfig] = None, *,
                 text_channel: Optional[TextAnalysisChannel] = None,
                 vision_channel: Optional[VisionAnalysisChannel] = None,
                 image_renderer: Optional[ImageRenderer] = None,
                 presenter: Optional[Presenter] = None):
        self.config = config or AnalysisConfig.from_env()

        if text_channel is None:
            text_channel = TextAnalysisChannel(
                create_llm_client(self.config, self.config.text_model, max_tokens=2000))
        if vision_channel is None:
            vision_channel = VisionAnalysisChannel(
                create_llm_client(self.config, self.config.vision_model, max_tokens=1000))

        self.text_channel = text_channel
        self.vision_channel = vision_channel
        self.image_renderer = image_renderer
        self.presenter = presenter

        self._pass_counter = 0
        self._latest: Optional[DetectionResult] = None
        self._last_document: Optional[Dict[str, Any]] = None
        self._last_options = DetectionOptions()

    @property
    def latest(self) -> Optional[DetectionResult]:
        return self._latest

    def _begin_pass(self) -> PassToken:
        self._pass_counter += 1
        return PassToken(self._pass_counter)

    def is_current(self, token: PassToken) -> bool:
        return token.pass_id == self._pass_counter

    def _render(self, screen: Screen) -> Any:
        if self.image_renderer is None:
            return screen.image
        try:
            return self.image_renderer(screen)
        except Exception as e:
            logger.warning(f"⚠️ Could not render screen '{screen.name}': {e}")
            return None

    def _publish(self, token: PassToken, result: DetectionResult) -> Optional[DetectionResult]:
        if not self.is_current(token):
            logger.info(f"⏭️ Discarding result of superseded pass {token.pass_id}")
            return None

        self._latest = result
        if self.presenter is not None:
            try:
                self.presenter(result)
            except Exception as e:
                logger.exception(f"❌ Presenter failed for pass {token.pass_id}: {e}")
        return result

    async def detect(self, document: Dict[str, Any], *, use_text: bool = False,
                     use_vision: bool = False, scan_all: bool = False,
                     page: Union[int, str, None] = None) -> Optional[DetectionResult]:
        """
        Run a full detection pass.

        Args:
            document: Exported design document tree
            use_text: Run the batched text analysis channel
            use_vision: Run the per-screen vision analysis channel
            scan_all: Keep screens without a heuristic match
            page: Page index or name (defaults to the first page)

        Returns:
            The published DetectionResult, or None when a newer pass superseded
            this one before it finished
        """
        token = self._begin_pass()
        self._last_document = document
        self._last_options = DetectionOptions(use_text, use_vision, scan_all, page)

        logger.info(f"🚀 Detection pass {token.pass_id} started "
                    f"(text={use_text}, vision={use_vision}, scan_all={scan_all})")

        screens = extract_screens(document, page=page, min_size=self.config.min_screen_size)
        styles = document.get("paintStyles") if isinstance(document, dict) else None
        brand_colors = extract_brand_colors(styles if isinstance(styles, list) else None)

        table = ResultTable(pass_id=token.pass_id)
        for screen in screens:
            table.heuristic[screen.screen_id] = classify_screen(screen.name, screen.button_labels)

        run_text = use_text and self.text_channel.available
        run_vision = use_vision and self.vision_channel.available
        if use_text and not run_text:
            logger.warning("⚠️ Text analysis requested but no AI API key is configured")
        if use_vision and not run_vision:
            logger.warning("⚠️ Vision analysis requested but no AI API key is configured")

        local_only = (use_text or use_vision) and not (run_text or run_vision)
        if local_only:
            logger.warning("⚠️ No AI endpoint configured - using local heuristics only")

        # AI channels see every screen; heuristics alone keep matched screens only
        if run_text or run_vision or scan_all:
            candidates = list(screens)
        else:
            candidates = [s for s in screens if table.heuristic[s.screen_id] is not None]

        if run_text and candidates:
            text_results = await self.text_channel.analyze(candidates)
            if not self.is_current(token):
                logger.info(f"⏭️ Pass {token.pass_id} superseded during text analysis")
                return None
            table.record_text(text_results)

        if run_vision and candidates:
            requests = [VisionRequest(s.screen_id, s.name, self._render(s)) for s in candidates]
            vision_results = await self.vision_channel.analyze(
                requests, should_continue=lambda: self.is_current(token))
            if not self.is_current(token):
                logger.info(f"⏭️ Pass {token.pass_id} superseded during vision analysis")
                return None
            table.record_vision(vision_results)

        opportunities = fuse_all(candidates, table)
        result = DetectionResult(
            pass_id=token.pass_id,
            opportunities=opportunities,
            summary=synthesize_flow(opportunities),
            brand_colors=brand_colors,
            used_text=run_text,
            used_vision=run_vision,
            local_only=local_only,
        )

        logger.info(f"✅ Pass {token.pass_id}: {len(opportunities)} email opportunities detected")
        return self._publish(token, result)

    async def refresh(self) -> Optional[DetectionResult]:
        """Re-run the last pass with the same document and options"""
        if self._last_document is None:
            logger.info("Nothing to refresh: no document has been analyzed yet")
            return None
        options = self._last_options
        return await self.detect(self._last_document, use_text=options.use_text,
                                 use_vision=options.use_vision, scan_all=options.scan_all,
                                 page=options.page)

    def detect_sync(self, document: Dict[str, Any], **kwargs) -> Optional[DetectionResult]:
        """Blocking wrapper for callers without an event loop"""
        return asyncio.run(self.detect(document, **kwargs))
