#!/usr/bin/env python3
"""
Pathway Calling Pipeline
Main execution script for the pathway calling framework
Classifies samples as Active / Inactive / Uncertain for a gene signature
"""

import sys
import argparse
import shutil
from pathlib import Path
import logging

import yaml

# Add src to path
sys.path.append(str(Path(__file__).parent.parent / "src"))

from pathway_calling import (
    PathwayClassificationPipeline,
    PathwayCallingError,
    load_pathway_calling_config,
    get_default_pathway_calling_config,
)


def setup_logging(output_dir: Path, config: dict):
    """Setup logging to output to target directory."""
    log_config = config.get("logging", {})
    log_file = output_dir / "pathway_calling.log"
    logging.basicConfig(
        level=getattr(logging, str(log_config.get("level", "INFO")).upper(), logging.INFO),
        format=log_config.get(
            "format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        ),
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(),  # Also output to console
        ],
    )


logger = logging.getLogger(__name__)


def copy_config_to_output(config_path: str, output_dir: Path, config: dict):
    """Copy configuration to output directory"""
    output_dir.mkdir(parents=True, exist_ok=True)

    if config_path:
        shutil.copy2(config_path, output_dir / "pathway_calling_config.yaml")

    with open(output_dir / "pathway_calling_full_config.yaml", "w") as f:
        yaml.dump(config, f, default_flow_style=False)

    logger.info(f"Configuration copied to: {output_dir}")


def apply_cli_overrides(config: dict, args: argparse.Namespace) -> dict:
    """Apply threshold and evaluation options given on the command line."""
    classification = config.setdefault("classification", {})
    if args.mode:
        classification["mode"] = args.mode
    if args.percent_thresh is not None:
        classification["percent_thresh"] = args.percent_thresh

    absolute = classification.setdefault("absolute", {})
    for key in ("up_low", "up_high", "dn_low", "dn_high"):
        value = getattr(args, key)
        if value is not None:
            absolute[key] = value

    if args.show_stats:
        config.setdefault("evaluation", {})["show_stats"] = True
    return config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Pathway Calling Pipeline for pathway activity classification"
    )
    parser.add_argument(
        "--config", "-c", type=str, default=None, help="Path to configuration file"
    )
    parser.add_argument(
        "--expression",
        "-e",
        type=str,
        required=True,
        help="Expression matrix (genes x samples, CSV or TSV)",
    )
    parser.add_argument(
        "--signature",
        "-s",
        type=str,
        required=True,
        help="Gene signature with 'gene' and 'expression' (+1/-1) columns",
    )
    parser.add_argument(
        "--output", "-o", type=str, required=True, help="Output directory"
    )
    parser.add_argument(
        "--ground-truth", "-g", type=str, help="Ground truth table with a 'sample' column"
    )
    parser.add_argument(
        "--pathway", "-p", type=str, help="Pathway column in the ground truth table"
    )
    parser.add_argument(
        "--mode", choices=["absolute", "percentile"], help="Threshold mode"
    )
    parser.add_argument(
        "--percent-thresh", type=float, help="Percentile threshold (0-50)"
    )
    parser.add_argument("--up-low", dest="up_low", type=float)
    parser.add_argument("--up-high", dest="up_high", type=float)
    parser.add_argument("--dn-low", dest="dn_low", type=float)
    parser.add_argument("--dn-high", dest="dn_high", type=float)
    parser.add_argument(
        "--show-stats", action="store_true", help="Log evaluation statistics"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    return parser


def main(argv=None):
    """Main function"""
    args = build_parser().parse_args(argv)

    if args.config:
        config = load_pathway_calling_config(args.config)
    else:
        config = get_default_pathway_calling_config()
    config = apply_cli_overrides(config, args)

    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)
    setup_logging(output_dir, config)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    logger.info(f"Expression file: {args.expression}")
    logger.info(f"Signature file: {args.signature}")
    logger.info(f"Output directory: {output_dir}")

    copy_config_to_output(args.config, output_dir, config)

    try:
        pipeline = PathwayClassificationPipeline(config=config)
        results = pipeline.run_full_pipeline(
            args.expression,
            args.signature,
            output_dir,
            ground_truth_path=args.ground_truth,
            pathway=args.pathway,
        )
    except PathwayCallingError as e:
        logger.error(f"Pathway calling failed: {e}")
        return 1

    summary = results["classification_result"].summary
    logger.info("=" * 50)
    logger.info("Pathway calling pipeline completed successfully!")
    logger.info(f"  Samples processed: {summary.total}")
    logger.info(f"  Samples classified: {summary.classified}")
    logger.info(f"  Output directory: {output_dir}")
    logger.info("=" * 50)
    return 0


if __name__ == "__main__":
    sys.exit(main())
