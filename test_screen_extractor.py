#!/usr/bin/env python3
"""
Test Screen Extraction
Walks small hand-built design documents through the extractor
"""

from email_flow_analyzer.screen_extractor import (DEFAULT_BRAND_COLORS, extract_brand_colors,
                                                  extract_screen_content, extract_screens,
                                                  find_button_labels, resolve_page)


def text(node_id, characters):
    return {"id": node_id, "name": characters, "type": "TEXT", "characters": characters}


def frame(node_id, name, children=(), width=375, height=812, node_type="FRAME"):
    return {"id": node_id, "name": name, "type": node_type,
            "width": width, "height": height, "children": list(children)}


def build_document():
    signup = frame("1:1", "Sign Up", [
        text("1:2", "Create your account"),
        frame("1:3", "Form", [text("1:4", "Email address")], width=300, height=120),
        {"id": "1:5", "name": "Primary Button", "type": "INSTANCE",
         "children": [text("1:6", "Create account")]},
    ])
    icon = frame("2:1", "Icon", width=24, height=24)
    checkout = {"id": "3:1", "name": "Checkout", "type": "COMPONENT",
                "absoluteBoundingBox": {"x": 0, "y": 0, "width": 390, "height": 844},
                "children": [text("3:2", "Pay now")]}
    page = {"id": "0:1", "name": "Flows", "type": "CANVAS", "children": [signup, icon, checkout]}
    other = {"id": "0:2", "name": "Archive", "type": "CANVAS",
             "children": [frame("4:1", "Old Login")]}
    return {"document": {"id": "0:0", "name": "Document", "type": "DOCUMENT",
                         "children": [page, other]}}


def test_screens_in_scan_order_and_size_filter():
    screens = extract_screens(build_document())

    assert [s.screen_id for s in screens] == ["1:1", "3:1"]
    assert [s.name for s in screens] == ["Sign Up", "Checkout"]
    assert screens[1].content.dimensions.width == 390


def test_screen_content_text_and_indented_children():
    content = extract_screens(build_document())[0].content

    assert content.text_content == ("Create your account", "Email address", "Create account")
    names = [c.name for c in content.child_nodes]
    assert names[0] == "Sign Up"
    assert "  Form" in names
    assert "    Email address" in names
    assert content.dimensions.width == 375 and content.dimensions.height == 812


def test_button_labels():
    document = build_document()
    signup = document["document"]["children"][0]["children"][0]
    labels = find_button_labels(signup)

    assert "Create account" in labels
    assert "create your account" in labels

    # Components are screens but do not contribute button labels
    checkout = extract_screens(document)[1]
    assert checkout.button_labels == []


def test_page_selection():
    document = build_document()

    assert [s.name for s in extract_screens(document, page="Archive")] == ["Old Login"]
    assert [s.name for s in extract_screens(document, page=1)] == ["Old Login"]
    assert extract_screens(document, page="Missing") == []
    assert extract_screens(document, page=7) == []
    assert resolve_page(document)["name"] == "Flows"


def test_malformed_nodes_are_skipped():
    page = {"id": "0:1", "name": "Page", "type": "CANVAS", "children": [
        "not a node",
        {"id": "5:1", "type": "FRAME", "width": 400, "height": 400},
        frame("5:2", "Bad Size", width="wide", height=400),
        frame("5:3", "Register", [None, text("5:4", "Join us")]),
    ]}

    screens = extract_screens(page)
    assert [s.name for s in screens] == ["Register"]
    assert screens[0].content.text_content == ("Join us",)


def test_non_mapping_bounding_box_is_skipped():
    page = {"id": "0:1", "name": "Page", "type": "CANVAS", "children": [
        frame("6:1", "Sign Up"),
        {"id": "6:2", "name": "Checkout", "type": "FRAME", "absoluteBoundingBox": [1, 2]},
        {"id": "6:3", "name": "Orders", "type": "FRAME", "absoluteBoundingBox": "wide"},
        frame("6:4", "Reset Password"),
    ]}

    screens = extract_screens(page)
    assert [s.screen_id for s in screens] == ["6:1", "6:4"]


def test_bad_paint_styles_fall_back_to_defaults():
    styles = [
        {"name": "Primary", "paints": {"a": 1}},
        {"name": "Secondary", "paints": [{"type": "SOLID", "color": [1, 0, 0]}]},
        {"name": "Text", "paints": [{"type": "SOLID", "color": {"r": float("inf"), "g": 0, "b": 0}}]},
        {"name": "Background", "paints": [{"type": "SOLID", "color": {"r": float("nan"), "g": 0, "b": 0}}]},
        {"name": "Accent Primary", "paints": "solid"},
    ]

    assert extract_brand_colors(styles) == DEFAULT_BRAND_COLORS


def test_min_size_is_configurable():
    document = build_document()
    screens = extract_screens(document, min_size=100)
    assert [s.screen_id for s in screens] == ["1:1", "1:3", "3:1"]


def test_content_wire_format():
    content = extract_screen_content(frame("9:1", "Empty", []))
    wire = content.to_wire()
    assert wire["textContent"] == []
    assert wire["childNodes"] == [{"name": "Empty", "type": "FRAME"}]
    assert wire["dimensions"] == {"width": 375, "height": 812}


def test_brand_colors():
    assert extract_brand_colors(None) == DEFAULT_BRAND_COLORS

    styles = [
        {"name": "Brand/Primary", "paints": [{"type": "SOLID", "color": {"r": 1, "g": 0, "b": 0}}]},
        {"name": "Text/Body", "paints": [{"type": "SOLID", "color": {"r": 0, "g": 0, "b": 0}}]},
        {"name": "Gradient Background", "paints": [{"type": "GRADIENT_LINEAR"}]},
    ]
    colors = extract_brand_colors(styles)
    assert colors["primary"] == "#ff0000"
    assert colors["text"] == "#000000"
    assert colors["background"] == DEFAULT_BRAND_COLORS["background"]


if __name__ == "__main__":
    print("🧪 TESTING SCREEN EXTRACTION")
    print("=" * 60)
    test_screens_in_scan_order_and_size_filter()
    test_screen_content_text_and_indented_children()
    test_button_labels()
    test_page_selection()
    test_malformed_nodes_are_skipped()
    test_non_mapping_bounding_box_is_skipped()
    test_bad_paint_styles_fall_back_to_defaults()
    test_min_size_is_configurable()
    test_content_wire_format()
    test_brand_colors()
    print("✅ All screen extraction tests passed")
