#!/usr/bin/env python3
"""
Design Document Screen Extraction
Walks an exported design document tree and yields one content record per screen
"""

import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from .errors import ExtractionError
from .interfaces import ChildNode, Dimensions, Screen, ScreenContent

logger = logging.getLogger(__name__)

SCREEN_NODE_TYPES = ("FRAME", "COMPONENT")
BUTTON_CONTAINER_TYPES = ("COMPONENT", "INSTANCE")
BUTTON_NAME_MARKERS = ("button", "cta", "btn")
SHORT_TEXT_LIMIT = 30

DEFAULT_BRAND_COLORS = {
    "primary": "#0066FF",
    "secondary": "#6C757D",
    "text": "#212529",
    "background": "#FFFFFF",
}


def _node_size(node: Dict[str, Any]) -> Tuple[float, float]:
    box = node.get("absoluteBoundingBox") or {}
    if not isinstance(box, dict):
        raise ExtractionError("Node bounding box is not a mapping", node_id=node.get("id"))
    width = node.get("width", box.get("width", 0))
    height = node.get("height", box.get("height", 0))
    if isinstance(width, bool) or isinstance(height, bool):
        raise ExtractionError("Node size is not numeric", node_id=node.get("id"))
    try:
        return float(width or 0), float(height or 0)
    except (TypeError, ValueError):
        raise ExtractionError(f"Node size is not numeric: {width!r}x{height!r}", node_id=node.get("id"))


def _validate_node(node: Any) -> Dict[str, Any]:
    if not isinstance(node, dict):
        raise ExtractionError(f"Expected a mapping, got {type(node).__name__}")
    for key in ("id", "name", "type"):
        if not isinstance(node.get(key), str):
            raise ExtractionError(f"Node is missing '{key}'", node_id=node.get("id") if isinstance(node.get("id"), str) else None)
    children = node.get("children", [])
    if children is not None and not isinstance(children, list):
        raise ExtractionError("Node children is not a list", node_id=node["id"])
    return node


def _children(node: Dict[str, Any]) -> List[Any]:
    return node.get("children") or []


def _iter_valid(node: Any, depth: int = 0) -> Iterator[Tuple[Dict[str, Any], int]]:
    """Depth-first pre-order walk that skips malformed subtrees"""
    try:
        valid = _validate_node(node)
    except ExtractionError as e:
        logger.warning(f"Skipping malformed node: {e}")
        return
    yield valid, depth
    for child in _children(valid):
        yield from _iter_valid(child, depth + 1)


def extract_screen_content(node: Dict[str, Any]) -> ScreenContent:
    """
    Collect text excerpts, child element names and dimensions of one screen.

    Child names are indented with two spaces per nesting level; the screen
    node itself is listed first at depth 0.
    """
    text_content: List[str] = []
    child_nodes: List[ChildNode] = []

    for child, depth in _iter_valid(node):
        child_nodes.append(ChildNode(name="  " * depth + child["name"], type=child["type"]))
        if child["type"] == "TEXT":
            characters = child.get("characters")
            if isinstance(characters, str) and characters.strip():
                text_content.append(characters)

    try:
        width, height = _node_size(node)
    except ExtractionError as e:
        logger.debug(f"Using zero dimensions: {e}")
        width, height = 0, 0

    return ScreenContent(
        text_content=tuple(text_content),
        child_nodes=tuple(child_nodes),
        dimensions=Dimensions(width=width, height=height),
    )


def _first_text(node: Dict[str, Any]) -> Optional[str]:
    for child, _ in _iter_valid(node):
        if child is node:
            continue
        if child["type"] == "TEXT" and isinstance(child.get("characters"), str):
            return child["characters"]
    return None


def find_button_labels(node: Dict[str, Any]) -> List[str]:
    """Labels of button-like components and short text nodes inside a screen"""
    labels: List[str] = []

    for child, _ in _iter_valid(node):
        if child["type"] in BUTTON_CONTAINER_TYPES:
            lowered = child["name"].lower()
            if any(marker in lowered for marker in BUTTON_NAME_MARKERS):
                label = _first_text(child)
                if label:
                    labels.append(label)

        if child["type"] == "TEXT":
            characters = child.get("characters")
            if isinstance(characters, str) and len(characters) < SHORT_TEXT_LIMIT:
                labels.append(characters.lower())

    return labels


def resolve_page(document: Dict[str, Any], page: Union[int, str, None] = None) -> Dict[str, Any]:
    """
    Pick the page node to scan.

    Accepts a file export ({"document": ...}), a DOCUMENT node whose children
    are pages, or any page/frame node which is then scanned directly.
    """
    root = document.get("document", document) if isinstance(document, dict) else document
    if not isinstance(root, dict):
        raise ExtractionError("Document root is not a mapping")

    if root.get("type") != "DOCUMENT":
        return root

    pages = [p for p in _children(root) if isinstance(p, dict)]
    if not pages:
        raise ExtractionError("Document has no pages")

    if page is None:
        return pages[0]
    if isinstance(page, int):
        if 0 <= page < len(pages):
            return pages[page]
        raise ExtractionError(f"Page index {page} out of range ({len(pages)} pages)")
    for candidate in pages:
        if candidate.get("name") == page:
            return candidate
    raise ExtractionError(f"Page '{page}' not found")


def extract_screens(document: Dict[str, Any], page: Union[int, str, None] = None,
                    min_size: float = 200) -> List[Screen]:
    """
    Extract every screen of a page in document scan order.

    Args:
        document: Exported design document tree
        page: Page index or name (defaults to the first page)
        min_size: Frames narrower or lower than this are treated as UI elements

    Returns:
        List of Screen records; malformed nodes are skipped
    """
    try:
        page_node = resolve_page(document, page)
    except ExtractionError as e:
        logger.warning(f"⚠️ Could not resolve page: {e}")
        return []

    screens: List[Screen] = []
    for node, depth in _iter_valid(page_node):
        if depth == 0 or node["type"] not in SCREEN_NODE_TYPES:
            continue
        try:
            width, height = _node_size(node)
        except ExtractionError as e:
            logger.warning(f"Skipping screen candidate: {e}")
            continue
        if width < min_size or height < min_size:
            continue

        image = node.get("imageData")
        screens.append(Screen(
            screen_id=node["id"],
            name=node["name"],
            content=extract_screen_content(node),
            button_labels=find_button_labels(node) if node["type"] == "FRAME" else [],
            image=image if isinstance(image, str) else None,
        ))

    logger.info(f"📋 Extracted {len(screens)} screens from page '{page_node.get('name', '')}'")
    return screens


def _rgb_to_hex(color: Dict[str, Any]) -> str:
    def to_hex(channel: Any) -> str:
        value = max(0, min(255, round(float(channel) * 255)))
        return f"{value:02x}"
    return f"#{to_hex(color.get('r', 0))}{to_hex(color.get('g', 0))}{to_hex(color.get('b', 0))}"


def extract_brand_colors(styles: Optional[List[Dict[str, Any]]]) -> Dict[str, str]:
    """Derive brand colors from the document's solid paint styles"""
    colors: Dict[str, str] = {}

    for style in styles or []:
        if not isinstance(style, dict):
            continue
        name = str(style.get("name", "")).lower()
        paints = style.get("paints")
        if not isinstance(paints, list) or not paints:
            continue
        paint = paints[0]
        if not isinstance(paint, dict) or paint.get("type") != "SOLID":
            continue
        color = paint.get("color") or {}
        if not isinstance(color, dict):
            logger.debug(f"Skipping paint style with bad color: {name}")
            continue
        try:
            hex_color = _rgb_to_hex(color)
        except (TypeError, ValueError, OverflowError):
            logger.debug(f"Skipping paint style with bad color: {name}")
            continue

        if "primary" in name:
            colors["primary"] = hex_color
        if "secondary" in name:
            colors["secondary"] = hex_color
        if "text" in name or "foreground" in name:
            colors["text"] = hex_color
        if "background" in name:
            colors["background"] = hex_color

    return {**DEFAULT_BRAND_COLORS, **colors}
