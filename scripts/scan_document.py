#!/usr/bin/env python3
"""
Scan an identity document photo from the command line.

Runs the barcode and OCR paths on one image, reconciles them and prints the
result as JSON.

Usage:
    # Both methods, default configuration (Textract OCR)
    python scripts/scan_document.py --image license_back.jpg

    # Offline OCR, sequential scheduling
    python scripts/scan_document.py --image license.jpg --ocr-provider tesseract --sequential

    # Barcode only
    python scripts/scan_document.py --image license_back.jpg --method barcode

    # Base64-encoded photo (e.g. a data URL saved from a web client)
    python scripts/scan_document.py --base64 license_back.b64
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.barcode import BarcodeDecoder, BarcodeScanner, create_primitive  # noqa: E402
from src.common.exceptions import InvalidImage  # noqa: E402
from src.common.types import ExtractionMethod  # noqa: E402
from src.ocr import OCRProvider, create_service  # noqa: E402
from src.reconciliation import (  # noqa: E402
    ConfidenceScorer,
    HybridScanProcessor,
    ReconciliationEngine,
    ScanPolicy,
    format_confidence,
    get_default_config,
    load_config,
)
from src.utils.io import decode_base64_image, load_image_file, save_json  # noqa: E402

logger = logging.getLogger(__name__)


def build_processor(args: argparse.Namespace) -> HybridScanProcessor:
    """Build the processor from the config file plus command line overrides."""
    config = load_config(args.config) if args.config else get_default_config()
    if args.ocr_provider:
        config.ocr.provider = OCRProvider(args.ocr_provider)

    decoder = BarcodeDecoder(
        create_primitive(config.barcode.reader), config=config.barcode
    )
    return HybridScanProcessor(
        barcode_scanner=BarcodeScanner(decoder),
        ocr_service=create_service(config.ocr),
        engine=ReconciliationEngine(
            ConfidenceScorer(config.scoring), config.reconciliation
        ),
        config=config,
    )


def main():
    """Main entry point for the document scanner."""
    parser = argparse.ArgumentParser(
        description="Extract identity document fields (barcode + OCR)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--image", type=Path, help="Document photo")
    source.add_argument(
        "--base64",
        type=Path,
        help="Text file holding the photo as base64 (data URL prefix allowed)",
    )
    parser.add_argument("--config", type=Path, default=None, help="Config YAML")
    parser.add_argument(
        "--method",
        choices=["both", "barcode", "ocr"],
        default="both",
        help="Run both methods (default) or a single one",
    )
    parser.add_argument(
        "--ocr-provider",
        choices=[p.value for p in OCRProvider],
        default=None,
        help="Override the configured OCR provider",
    )
    parser.add_argument(
        "--prefer",
        choices=[m.value for m in ExtractionMethod],
        default=None,
        help="Method to select when both succeed",
    )
    parser.add_argument(
        "--sequential", action="store_true", help="Run barcode first, then OCR"
    )
    parser.add_argument("--output", type=Path, default=None, help="Write JSON here")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        if args.image:
            image = load_image_file(args.image)
        else:
            image = decode_base64_image(args.base64.read_text())
    except (FileNotFoundError, InvalidImage) as e:
        logger.error(f"Cannot load image: {e}")
        return 1

    processor = build_processor(args)

    if args.method == "both":
        result = processor.scan(
            image,
            policy=ScanPolicy.SEQUENTIAL if args.sequential else None,
            preferred_method=ExtractionMethod(args.prefer) if args.prefer else None,
            on_progress=lambda method, pct: logger.info(f"{method.value}: {pct}%"),
        )
        output = result.to_dict()
        logger.info(
            f"Selected {result.selected_method.value}: "
            f"{format_confidence(result.overall_confidence)}"
        )
        exit_code = 0 if result.has_usable_data else 2
    else:
        method = (
            ExtractionMethod.BARCODE
            if args.method == "barcode"
            else ExtractionMethod.OPTICAL_TEXT
        )
        single = processor.scan_single_method(image, method)
        output = single.to_dict()
        exit_code = 0 if single.success else 2

    if args.output:
        save_json(output, args.output)
        logger.info(f"Result saved to {args.output}")
    else:
        print(json.dumps(output, indent=2))

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
