#!/usr/bin/env python
"""
Command-line interface for SnapScript.

Usage:
    snapscript --input <images_or_folder> --output <output_dir> [options]

Examples:
    # Transcribe a folder of photos with Gemini and build a Word document
    GEMINI_API_KEY=... snapscript --input ./photos --output ./out

    # Rebuild the document from saved annotations, no network calls
    snapscript --input ./photos --output ./out --engine sidecar --annotations ./photos

    # Word, Markdown and a JSON summary
    snapscript --input page1.png page2.png --output ./out --format all
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from snapscript import __version__
from snapscript.config import get_config, setup_logging

logger = logging.getLogger("snapscript")


def setup_argparser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="snapscript",
        description="SnapScript - compile transcribed document images into one Word document",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Transcribe a folder of images with Gemini:
    snapscript --input ./photos --output ./out

  Replay saved annotations (<image stem>.txt):
    snapscript --input ./photos --output ./out --engine sidecar --annotations ./annotations

  Export every format:
    snapscript --input ./photos --output ./out --format all
        """
    )

    # Required arguments
    parser.add_argument(
        "--input", "-i",
        nargs="+",
        required=True,
        help="Image files and/or folders of images, in document order"
    )

    parser.add_argument(
        "--output", "-o",
        required=True,
        help="Output directory for generated files"
    )

    # Optional arguments
    parser.add_argument(
        "--format", "-f",
        nargs="+",
        default=None,
        choices=["docx", "markdown", "json", "all"],
        help="Output format(s) (default: docx)"
    )

    parser.add_argument(
        "--engine",
        choices=["gemini", "sidecar"],
        default=None,
        help="Annotator engine (default: gemini)"
    )

    parser.add_argument(
        "--annotations",
        default=None,
        help="Directory of <image stem>.txt annotations for the sidecar engine"
    )

    parser.add_argument(
        "--model",
        default=None,
        help="Gemini model name (default: gemini-2.5-flash)"
    )

    parser.add_argument(
        "--api-key",
        default=None,
        help="Gemini API key (default: $GEMINI_API_KEY)"
    )

    parser.add_argument(
        "--output-name",
        default=None,
        help="Output file name (default: SnapScript_Extracted.docx)"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Re-raise unexpected errors with a traceback"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress non-error output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser


def build_config(args):
    """Apply command-line overrides on top of the environment configuration."""
    config = get_config()

    if args.engine:
        config.annotator.engine = args.engine
    if args.annotations:
        config.annotator.annotations_dir = args.annotations
        if not args.engine:
            config.annotator.engine = "sidecar"
    if args.model:
        config.annotator.model = args.model
    if args.api_key:
        config.annotator.api_key = args.api_key
    if args.output_name:
        config.export.output_name = args.output_name
    if args.format:
        config.export.formats = args.format
    if args.debug:
        config.debug_mode = True

    return config


def run_pipeline(args, config=None) -> int:
    """Run the SnapScript pipeline."""
    from snapscript.utils.annotator import get_annotator
    from snapscript.utils.assembler import LayoutAssembler, NoContentError
    from snapscript.utils.export import DocumentExporter
    from snapscript.utils.io import ensure_dir, load_source_images
    from snapscript.utils.session import FileQueue, ProcessingStatus

    start_time = time.time()
    if config is None:
        config = build_config(args)

    output_dir = ensure_dir(args.output)

    try:
        annotator = get_annotator(config.annotator)
    except ValueError as e:
        logger.error(str(e))
        return 1

    images = load_source_images(args.input)
    if not images:
        logger.error("No images to process")
        return 1

    queue = FileQueue(images)

    def report(uploaded):
        if uploaded.status == ProcessingStatus.ERROR:
            logger.warning(f"{uploaded.name}: {uploaded.status.value} ({uploaded.error_message})")
        else:
            logger.info(f"{uploaded.name}: {uploaded.status.value}")

    queue.process_pending(annotator, on_update=report)

    assembler = LayoutAssembler(config.layout)
    try:
        document = assembler.assemble(queue.eligible_files())
    except NoContentError as e:
        logger.error(str(e))
        return 1

    exporter = DocumentExporter(
        output_dir,
        base_name=Path(config.export.output_name).stem,
        docx_template=config.export.docx_template,
        markdown_images_dir=config.export.markdown_images_dir
    )
    export_results = exporter.export(document, config.export.formats)

    for fmt, path in export_results.items():
        logger.info(f"Exported {fmt}: {path}")

    elapsed = time.time() - start_time
    failed = [f for f in queue if f.status == ProcessingStatus.ERROR]

    if not args.quiet:
        print("\n" + "="*60)
        print("SNAPSCRIPT EXTRACTION COMPLETE")
        print("="*60)
        print(f"Output: {output_dir}")
        print(f"Files transcribed: {queue.completed_count}/{len(queue)}")
        print(f"Images embedded: {len(document.image_runs)}")
        print(f"Processing time: {elapsed:.2f}s")
        for uploaded in failed:
            print(f"  FAILED {uploaded.name}: {uploaded.error_message}")
        for fmt, path in export_results.items():
            print(f"  {fmt}: {path}")
        print("="*60)

    return 0


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = setup_argparser()
    args = parser.parse_args(argv)

    setup_logging()
    config = build_config(args)

    # Configure logging level
    if args.verbose or config.debug_mode:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger().setLevel(logging.ERROR)

    try:
        exit_code = run_pipeline(args, config)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        if config.debug_mode:
            raise
        sys.exit(1)


if __name__ == "__main__":
    main()
