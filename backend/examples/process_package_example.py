#!/usr/bin/env python3
"""
Closing Package Triangulation - Example Usage
=============================================

Submits a closing package PDF to the document-processing backend, prints
progress while the job runs, and shows the final loan fields with their
decision logs.

Usage:
    python examples/process_package_example.py path/to/package.pdf
    python examples/process_package_example.py --sample --language en

Requirements:
    - PIPELINE_API_BASE_URL pointing at a reachable backend (except --sample)
"""

import sys
import json
import argparse
import logging
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from loan_triangulation.config import Config
from loan_triangulation.sample_data import EXTRACTION_SCHEMA, SAMPLE_PAGES
from loan_triangulation.services.errors import PipelineError
from loan_triangulation.services.orchestrator import ClosingPackagePipeline
from loan_triangulation.services.presentation import ProcessedPackage, build_final_fields
from loan_triangulation.services.triangulation import fields_from_schema, triangulate

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def print_fields(package: ProcessedPackage, language: str):
    """Print one block per field with its decision log."""
    cards = build_final_fields(package, language)

    print("\n" + "=" * 60)
    print("FINAL LOAN FIELDS")
    print("=" * 60)
    origin = "backend reconciliation" if package.has_backend_reconciliation else "client triangulation"
    print(f"Source of values: {origin}")

    for card in cards:
        print(f"\n{card.name}: {card.value or '-'}")
        print(f"  Confidence: {card.confidence_label} ({card.confidence * 100:.0f}%)")
        for entry in card.entries:
            page = f" p{entry.page}" if entry.page is not None else ""
            label = f" [{entry.label_text}]" if entry.label_text else ""
            print(f"    - {entry.value or entry.raw}{label}{page}")

    if package.doc_groups:
        print("\nDocuments:")
        for group in package.doc_groups:
            pages = ", ".join(str(p) for p in group.pages)
            print(f"  {group.label}: pages {pages}")

    return cards


def process_pdf(pdf_path: str, language: str, output_path: str = None):
    """
    Process a PDF through the backend pipeline.

    Args:
        pdf_path: Path to the PDF file
        language: Display language (en | tr)
        output_path: Optional path to save JSON output
    """
    pdf_path = Path(pdf_path)
    if not pdf_path.exists():
        logger.error(f"File not found: {pdf_path}")
        return None

    pipeline = ClosingPackagePipeline(language=language)

    try:
        config = pipeline.fetch_config()
        logger.info(f"Backend schema fields: {list(config.extraction_schema) or 'default'}")
    except PipelineError as e:
        logger.warning(f"Could not load backend config, using defaults: {e}")
        config = None

    def on_status(event):
        stage = event.stage
        label = event.stage_label or "-"
        print(f"[{event.progress:3d}%] {event.status:<9} stage {stage.index}/{stage.total} {label}")

    try:
        package = pipeline.process(pdf_path, on_status_update=on_status, config=config)
    except PipelineError as e:
        logger.error(f"Processing failed ({e.kind.value}): {e.message}")
        return None
    finally:
        pipeline.close()

    cards = print_fields(package, language)

    if output_path:
        with open(output_path, 'w') as f:
            json.dump({
                'job_id': package.job_id,
                'fields': [card.to_dict() for card in cards],
            }, f, indent=2, ensure_ascii=False)
        print(f"\nSaved output to: {output_path}")

    return package


def show_sample(language: str):
    """Triangulate the built-in sample package without a backend."""
    fields = fields_from_schema(EXTRACTION_SCHEMA)
    record = triangulate(SAMPLE_PAGES, language=language, fields=fields)
    package = ProcessedPackage(job_id=None, pages=SAMPLE_PAGES, fields=fields, triangulated=record)
    print_fields(package, language)


def main():
    parser = argparse.ArgumentParser(
        description="Closing Package Triangulation - resolve loan fields across pages"
    )
    parser.add_argument('pdf_path', nargs='?', help='Path to the closing package PDF')
    parser.add_argument('-o', '--output', help='Output JSON file path')
    parser.add_argument('-l', '--language', default=Config.DEFAULT_LANGUAGE, choices=['en', 'tr'])
    parser.add_argument('--sample', action='store_true', help='Triangulate the built-in sample package')

    args = parser.parse_args()

    if args.sample:
        show_sample(args.language)
        return

    if not args.pdf_path:
        parser.error("pdf_path is required unless --sample is given")

    result = process_pdf(args.pdf_path, args.language, args.output)
    if result is None:
        sys.exit(1)


if __name__ == "__main__":
    main()
