"""
Entry point: cut metrics of a DXF design for laser-cutting order intake.

Usage:
    python main.py <dxf_file> [--sheet-width W --sheet-height H]
                   [--json REPORT] [--export-dxf CLEAN] [--config CFG] [-v]
    python main.py --batch <dir> [--output-dir DIR] [--parallel]

Example:
    python main.py "bracket.dxf" --sheet-width 1000 --sheet-height 500
    python main.py "bracket.dxf" --json bracket.json --export-dxf bracket.clean.dxf
    python main.py --batch ./orders --parallel
"""

import argparse
import logging
import sys
from typing import List, Optional

from dxf_intake.batch import batch_analyze
from dxf_intake.io.dxf_export import export_clean_dxf
from dxf_intake.io.dxf_reader import DXFReadError, read_dxf_file
from dxf_intake.logging_config import LogContext, setup_logging
from dxf_intake.pipeline import parse
from dxf_intake.project_config import CONFIG_FILENAME, create_sample_config, load_config
from dxf_intake.report import save_report, summary

logger = logging.getLogger("dxf_intake.cli")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Analyse a DXF design: cut length, usable area, filtered artifacts.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "dxf_file",
        nargs="?",
        help="Path to the input DXF file.",
    )
    parser.add_argument(
        "--sheet-width",
        type=float,
        default=None,
        dest="sheet_width",
        help="Material sheet width (drawing units).",
    )
    parser.add_argument(
        "--sheet-height",
        type=float,
        default=None,
        dest="sheet_height",
        help="Material sheet height (drawing units).",
    )
    parser.add_argument(
        "--json",
        default=None,
        dest="json_output",
        help="Write the JSON analysis report to this path.",
    )
    parser.add_argument(
        "--export-dxf",
        default=None,
        dest="dxf_output",
        help="Write the surviving geometry to a clean DXF file.",
    )
    parser.add_argument(
        "--config", "-c",
        default=None,
        help=f"Path to a {CONFIG_FILENAME} configuration file.",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        dest="init_config",
        help=f"Write a sample {CONFIG_FILENAME} to the current directory and exit.",
    )
    parser.add_argument(
        "--batch",
        default=None,
        metavar="DIR",
        help="Analyse every DXF file in DIR instead of a single file.",
    )
    parser.add_argument(
        "--output-dir", "-o",
        default=None,
        dest="output_dir",
        help="Batch mode: directory for report files.",
    )
    parser.add_argument(
        "--parallel",
        action="store_true",
        help="Batch mode: analyse files on a thread pool.",
    )
    parser.add_argument(
        "--log-json",
        default=None,
        dest="log_json",
        help="Also write structured JSON logs to this file.",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging.",
    )
    return parser.parse_args(argv)


def _run_single(args: argparse.Namespace) -> int:
    config = load_config(dxf_path=args.dxf_file, explicit_config=args.config)

    with LogContext(file=args.dxf_file):
        try:
            text = read_dxf_file(
                args.dxf_file,
                max_size_mb=config.input.max_file_size_mb,
                encoding=config.input.encoding,
            )
        except DXFReadError as exc:
            logger.critical("Cannot read DXF: %s", exc)
            return 1

        metrics = parse(text, args.sheet_width, args.sheet_height, config)

        if args.json_output:
            save_report(metrics, args.json_output, source=args.dxf_file)
            logger.info("Report written: %s", args.json_output)
        if args.dxf_output:
            export_clean_dxf(metrics.valid_entities, args.dxf_output)

    print(summary(metrics))
    return 0


def _run_batch(args: argparse.Namespace) -> int:
    try:
        result = batch_analyze(
            input_dir=args.batch,
            output_dir=args.output_dir,
            config_path=args.config,
            parallel=args.parallel,
            sheet_width=args.sheet_width,
            sheet_height=args.sheet_height,
        )
    except (FileNotFoundError, NotADirectoryError) as exc:
        logger.critical("Batch analysis failed: %s", exc)
        return 1

    print(result.summary())
    return 0 if result.failed == 0 else 1


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        json_file=args.log_json,
        use_colors=sys.stderr.isatty(),
    )

    if args.init_config:
        create_sample_config()
        return 0

    if args.batch:
        return _run_batch(args)

    if not args.dxf_file:
        logger.critical("No DXF file given (use --batch DIR for a folder)")
        return 2

    try:
        return _run_single(args)
    except OSError as exc:
        logger.critical("Cannot write output: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
