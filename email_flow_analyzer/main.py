#!/usr/bin/env python3
"""
Email Flow Analyzer
Detects transactional email opportunities in an exported design document.
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Union

from .config import AnalysisConfig, get_api_status, load_env_file
from .email_copy_generator import EmailCopyGenerator
from .engine import DetectionEngine
from .report_exporter import export_csv, export_json, render_text_report


def _setup_logging(debug: bool = False, output_dir: Optional[Path] = None):
    """Setup logging configuration."""
    root_logger = logging.getLogger('email_flow_analyzer')
    root_logger.setLevel(logging.DEBUG if debug else logging.INFO)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')

    # Create console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Create file handler next to the exported reports
    if output_dir is not None:
        file_handler = logging.FileHandler(output_dir / "analysis_log.txt", mode='w', encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def _parse_page(value: Optional[str]) -> Union[int, str, None]:
    if value is None:
        return None
    return int(value) if value.isdigit() else value


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Detect transactional email opportunities in design documents"
    )

    parser.add_argument(
        '--input', '-i',
        help="Design document export (JSON)"
    )

    parser.add_argument(
        '--page',
        help="Page index or name to analyze (default: first page)"
    )

    parser.add_argument(
        '--text-analysis',
        action='store_true',
        help="Run the batched AI text analysis channel"
    )

    parser.add_argument(
        '--vision-analysis',
        action='store_true',
        help="Run the per-screen AI vision analysis channel"
    )

    parser.add_argument(
        '--scan-all',
        action='store_true',
        help="Report every screen, not only those matched by heuristics"
    )

    parser.add_argument(
        '--output', '-o',
        help="Output directory for CSV/JSON reports"
    )

    parser.add_argument(
        '--generate-copy',
        action='store_true',
        help="Generate subject and body text for each suggested email"
    )

    parser.add_argument(
        '--serve',
        action='store_true',
        help="Run the HTTP analysis API instead of analyzing a file"
    )

    parser.add_argument(
        '--port',
        type=int,
        default=8080,
        help="Port for --serve (default: 8080)"
    )

    parser.add_argument(
        '--debug',
        action='store_true',
        help="Enable debug logging"
    )

    args = parser.parse_args(argv)

    output_dir = None
    if args.output:
        output_dir = Path(args.output)
        os.makedirs(output_dir, exist_ok=True)

    _setup_logging(args.debug, output_dir)
    load_env_file()
    config = AnalysisConfig.from_env()

    if args.serve:
        from .api_server import AnalysisAPI, run_server
        print(get_api_status(config))
        run_server(args.port, AnalysisAPI(config))
        return 0

    if not args.input:
        parser.error("--input is required unless --serve is given")

    if not os.path.exists(args.input):
        print(f"Error: Input file '{args.input}' does not exist")
        return 1

    try:
        with open(args.input, 'r', encoding='utf-8') as f:
            document = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        print(f"❌ Could not read design document: {e}")
        return 1

    print(f"Starting email flow analysis...")
    print(f"Input document: {args.input}")
    print(f"Text analysis: {'ON' if args.text_analysis else 'OFF'}")
    print(f"Vision analysis: {'ON' if args.vision_analysis else 'OFF'}")
    print(get_api_status(config))
    print("-" * 60)

    engine = DetectionEngine(config)
    result = engine.detect_sync(
        document,
        use_text=args.text_analysis,
        use_vision=args.vision_analysis,
        scan_all=args.scan_all,
        page=_parse_page(args.page),
    )
    if result is None:
        print("\n❌ Detection pass was superseded")
        return 1

    print(render_text_report(result))

    if args.generate_copy and result.opportunities:
        generator = EmailCopyGenerator(config)
        generated = set()
        print("\n✉️  Generated email copy:")
        for opportunity in result.opportunities:
            if opportunity.category in generated:
                continue
            generated.add(opportunity.category)
            copy = generator.generate(opportunity)
            print(f"\n--- {opportunity.suggested_name} ({copy.source}) ---")
            print(f"Subject: {copy.subject}")
            print(copy.body)

    if output_dir is not None:
        csv_path = export_csv(result, output_dir / "email_opportunities.csv")
        json_path = export_json(result, output_dir / "email_flow_report.json")
        print(f"\n📊 Opportunities saved to: {csv_path}")
        print(f"📝 Report saved to: {json_path}")

    print(f"\n✅ Analysis completed: {len(result.opportunities)} email opportunities")
    return 0


if __name__ == "__main__":
    sys.exit(main())
