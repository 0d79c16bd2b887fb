#!/usr/bin/env python3
"""
Report export
Renders detection results for the console and writes CSV/JSON files
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Sequence, Union

import pandas as pd

from .interfaces import DetectionResult, EmailOpportunity

logger = logging.getLogger(__name__)

OPPORTUNITY_COLUMNS = [
    # Screen identification
    "opportunity_id", "screen_id", "screen_name",

    # Classification
    "category", "suggested_name", "confidence", "purpose", "context",

    # Context
    "product_type", "user_action", "detected_variables",

    # Channel results
    "text_category", "text_confidence", "text_fallback",
    "vision_category", "vision_confidence", "vision_fallback",
]


def _opportunity_row(opportunity: EmailOpportunity) -> Dict[str, Any]:
    text = opportunity.text_analysis
    vision = opportunity.visual_analysis
    return {
        "opportunity_id": opportunity.id,
        "screen_id": opportunity.screen_id,
        "screen_name": opportunity.screen_name,
        "category": opportunity.category.value,
        "suggested_name": opportunity.suggested_name,
        "confidence": round(opportunity.confidence, 3),
        "purpose": opportunity.purpose,
        "context": opportunity.context_text,
        "product_type": opportunity.context.product_type or "",
        "user_action": opportunity.context.user_action or "",
        "detected_variables": ", ".join(opportunity.context.detected_variables),
        "text_category": text.category.value if text else "",
        "text_confidence": text.confidence if text else None,
        "text_fallback": text.fallback if text else None,
        "vision_category": vision.category.value if vision else "",
        "vision_confidence": vision.confidence if vision else None,
        "vision_fallback": vision.fallback if vision else None,
    }


def opportunities_to_dataframe(opportunities: Sequence[EmailOpportunity]) -> pd.DataFrame:
    """One row per opportunity, columns in a fixed order"""
    df = pd.DataFrame([_opportunity_row(o) for o in opportunities])
    return df.reindex(columns=OPPORTUNITY_COLUMNS)


def result_to_dict(result: DetectionResult) -> Dict[str, Any]:
    """Plain JSON-compatible view of a detection result"""
    summary = result.summary
    return {
        "passId": result.pass_id,
        "localOnly": result.local_only,
        "usedText": result.used_text,
        "usedVision": result.used_vision,
        "brandColors": dict(result.brand_colors),
        "opportunities": [
            {
                "id": o.id,
                "category": o.category.value,
                "screenName": o.screen_name,
                "screenId": o.screen_id,
                "confidence": o.confidence,
                "suggestedName": o.suggested_name,
                "purpose": o.purpose,
                "context": {
                    "productType": o.context.product_type,
                    "userAction": o.context.user_action,
                    "detectedVariables": list(o.context.detected_variables),
                },
                "content": o.content.to_wire() if o.content is not None else None,
                "textAnalysis": o.text_analysis.to_wire() if o.text_analysis else None,
                "visualAnalysis": o.visual_analysis.to_wire() if o.visual_analysis else None,
            }
            for o in result.opportunities
        ],
        "flowSummary": {
            "productType": summary.product_type,
            "narrative": summary.narrative,
            "screenCount": summary.screen_count,
            "aggregateConfidence": summary.aggregate_confidence,
            "steps": [
                {"index": s.index, "screenName": s.screen_name, "purpose": s.purpose,
                 "thumbnail": s.thumbnail}
                for s in summary.steps
            ],
            "suggestedEmails": [
                {"category": e.category.value, "name": e.name, "context": e.context}
                for e in summary.suggested_emails
            ],
        },
    }


def export_csv(result: DetectionResult, path: Union[str, Path]) -> Path:
    csv_path = Path(path)
    csv_path.parent.mkdir(parents=True, exist_ok=True)

    df = opportunities_to_dataframe(result.opportunities)
    df.to_csv(csv_path, index=False, encoding='utf-8')

    logger.info(f"💾 Saved {len(df)} opportunities to {csv_path}")
    return csv_path


def export_json(result: DetectionResult, path: Union[str, Path]) -> Path:
    json_path = Path(path)
    json_path.parent.mkdir(parents=True, exist_ok=True)

    payload = result_to_dict(result)
    payload["exportedAt"] = datetime.now().isoformat()
    with open(json_path, 'w', encoding='utf-8') as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)

    logger.info(f"💾 Saved detection report to {json_path}")
    return json_path


def render_text_report(result: DetectionResult) -> str:
    """Human readable summary of one detection pass"""
    lines: List[str] = []
    summary = result.summary

    lines.append("=" * 60)
    lines.append("EMAIL FLOW ANALYSIS")
    lines.append("=" * 60)
    if result.local_only:
        lines.append("⚠️  No AI endpoint configured - results come from local heuristics only")
    lines.append(summary.narrative)
    lines.append(f"Product type: {summary.product_type}")
    lines.append(f"Average confidence: {summary.aggregate_confidence:.0%}")
    lines.append("")

    if not result.opportunities:
        lines.append("No email opportunities detected.")
        return "\n".join(lines)

    lines.append(f"📧 Email opportunities ({len(result.opportunities)}):")
    for opportunity in result.opportunities:
        lines.append(f"  • {opportunity.screen_name}: {opportunity.suggested_name} "
                     f"[{opportunity.category.value}] {opportunity.confidence:.0%}")
        if opportunity.context.detected_variables:
            lines.append(f"      variables: {', '.join(opportunity.context.detected_variables)}")

    lines.append("")
    lines.append("🧭 Flow steps:")
    for step in summary.steps:
        lines.append(f"  {step.index}. {step.screen_name} - {step.purpose}")

    lines.append("")
    lines.append("✉️  Suggested emails:")
    for email in summary.suggested_emails:
        suffix = f": {email.context}" if email.context else ""
        lines.append(f"  - {email.name}{suffix}")

    return "\n".join(lines)
