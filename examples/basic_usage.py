#!/usr/bin/env python3
"""
Basic Usage Example for the Email Flow Analyzer

This example shows how to run a detection pass over a design document
export and print the detected email opportunities.
"""

import json
import os
import sys

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from email_flow_analyzer import DetectionEngine, load_env_file
from email_flow_analyzer.report_exporter import render_text_report

SAMPLE_DOCUMENT = {
    "document": {
        "id": "0:0", "name": "Document", "type": "DOCUMENT",
        "children": [{
            "id": "0:1", "name": "Onboarding", "type": "CANVAS",
            "children": [
                {"id": "1:1", "name": "Sign Up", "type": "FRAME", "width": 375, "height": 812,
                 "children": [{"id": "1:2", "name": "Title", "type": "TEXT", "characters": "Create your account"}]},
                {"id": "2:1", "name": "Verify Email", "type": "FRAME", "width": 375, "height": 812,
                 "children": [{"id": "2:2", "name": "Body", "type": "TEXT", "characters": "Check your inbox"}]},
                {"id": "3:1", "name": "Checkout", "type": "FRAME", "width": 375, "height": 812,
                 "children": [{"id": "3:2", "name": "CTA", "type": "TEXT", "characters": "Place order"}]},
            ],
        }],
    }
}


def main():
    """Basic example of analyzing one document"""

    load_env_file()

    # Use your own export if one is given on the command line
    if len(sys.argv) > 1:
        with open(sys.argv[1], 'r', encoding='utf-8') as f:
            document = json.load(f)
    else:
        document = SAMPLE_DOCUMENT

    engine = DetectionEngine()

    print("🚀 Analyzing design document...")
    result = engine.detect_sync(document, use_text=True)

    print(render_text_report(result))

    # Show what was detected
    for opportunity in result.opportunities:
        print(f"   {opportunity.id}: {opportunity.category.value} ({opportunity.confidence:.2f})")


if __name__ == "__main__":
    main()
