#!/usr/bin/env python3
"""
Field Extraction Engine - Main Entry Point.

Command-line interface and programmatic access to the extraction
engine.

Usage:
    Command Line:
        python main.py --input facture.pdf
        python main.py --input ./documents/ --module tender --output results.json

    Python:
        from main import run_extraction
        results = run_extraction("facture.pdf")

Author: ML Engineering Team
Version: 1.0.0
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

import yaml

from config import ConfigurationManager
from field_extraction.acquisition import AcquisitionRouter
from field_extraction.utils.exceptions import ConfigurationError
from field_extraction.utils.helpers import ensure_directory
from field_extraction.utils.logger import get_logger, setup_logger_from_config

SUPPORTED_EXTENSIONS = AcquisitionRouter.SUPPORTED_EXTENSIONS
MODULES = ['invoice', 'expense', 'tender', 'table']


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="French business-document field extraction engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    Process a single invoice:
        python main.py --input facture.pdf

    Process a directory of tender notices:
        python main.py --input ./avis/ --module tender --output results.json
        """
    )

    parser.add_argument(
        "--input", "-i",
        type=str,
        required=True,
        help="Input file or directory"
    )

    parser.add_argument(
        "--module", "-m",
        choices=MODULES,
        default="invoice",
        help="Module hint (default: invoice)"
    )

    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="JSON file receiving the results"
    )

    parser.add_argument(
        "--templates", "-t",
        type=str,
        default=None,
        help="YAML file of supplier templates (SIRET or name -> field anchors)"
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to custom configuration file"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress the per-document summary"
    )

    return parser.parse_args(argv)


def initialize_system(args: argparse.Namespace) -> ConfigurationManager:
    """
    Load the configuration and set up logging.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Initialized configuration manager.

    Raises:
        ConfigurationError: If a configuration file cannot be loaded.
    """
    ConfigurationManager.reset()
    try:
        config = ConfigurationManager(args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        ConfigurationManager.reset()
        raise ConfigurationError(args.config or "settings.yaml", str(e))

    level = "DEBUG" if args.debug else "WARNING" if args.quiet else None
    logger = setup_logger_from_config(level=level)

    logger.info("=" * 60)
    logger.info("FIELD EXTRACTION ENGINE")
    logger.info("=" * 60)
    logger.info(f"Version: {config.get('project.version', '1.0.0')}")
    logger.info(f"Input: {args.input} (module={args.module})")

    return config


def collect_inputs(input_path: str) -> List[Path]:
    """
    List the files to process.

    Raises:
        FileNotFoundError: If the input path doesn't exist.
        ValueError: If a single input file has an unsupported type.
    """
    logger = get_logger(__name__)
    path = Path(input_path)

    if not path.exists():
        raise FileNotFoundError(f"Input path not found: {path}")

    if path.is_file():
        if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
            raise ValueError(f"Unsupported file type: {path.suffix}")
        return [path]

    files = sorted(p for p in path.iterdir() if p.is_file() and p.suffix.lower() in SUPPORTED_EXTENSIONS)
    if not files:
        logger.warning(f"No supported files found in: {path}")
    else:
        logger.info(f"Found {len(files)} files to process")
    return files


def load_templates(path: str) -> Dict[str, Any]:
    """
    Read supplier templates from a YAML file.

    Raises:
        ConfigurationError: If the file cannot be read or is not a mapping.
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            templates = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(path, str(e))

    if not isinstance(templates, dict):
        raise ConfigurationError(path, "supplier templates must be a mapping")
    get_logger(__name__).info(f"Loaded {len(templates)} supplier template(s)")
    return templates


def run_extraction(
    input_path: str,
    module: str = "invoice",
    output_path: Optional[str] = None,
    engine=None,
    templates: Optional[Dict[str, Any]] = None
) -> List[Dict[str, Any]]:
    """
    Run the extraction engine over a file or directory.

    Args:
        input_path: Path to input file or directory.
        module: Module hint passed to the engine.
        output_path: Optional JSON file receiving the results.
        engine: Engine to use; created when None.
        templates: Supplier templates passed to every extraction.

    Returns:
        List of result dictionaries, one per document.

    Example:
        >>> results = run_extraction("documents/", module="expense")
        >>> for r in results:
        ...     print(r['field_set']['ttc'], r['confidence'])
    """
    from field_extraction import ExtractionEngine

    logger = get_logger(__name__)
    engine = engine or ExtractionEngine()

    results = []
    for file_path in collect_inputs(input_path):
        logger.info(f"Processing: {file_path.name}")
        result = engine.extract(file_path.read_bytes(), file_path.name, module, templates=templates)
        results.append(result.to_dict())

        logger.info(
            f"  TTC: {result.field_set.ttc if result.field_set.ttc is not None else 'N/A'}, "
            f"Confidence: {result.confidence:.2f}"
            f"{' (review needed)' if result.needs_review() else ''}"
        )

    if output_path:
        output = Path(output_path)
        ensure_directory(output.parent)
        with open(output, 'w', encoding='utf-8') as f:
            json.dump(results, f, indent=2, ensure_ascii=False, default=str)
        logger.info(f"Results written to {output}")

    return results


def print_summary(results: List[Dict[str, Any]]) -> None:
    """Print one line per document."""
    for result in results:
        fields = result['field_set']
        print(
            f"{result['source']}: HT={fields['ht']} TVA={fields['tva_pct']}% "
            f"TTC={fields['ttc']} confidence={result['confidence']:.2f} "
            f"totals_ok={result['totals_ok']}"
        )


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function - entry point for command-line execution.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    try:
        args = parse_arguments(argv)
        initialize_system(args)
        logger = get_logger(__name__)

        templates = load_templates(args.templates) if args.templates else None
        results = run_extraction(args.input, module=args.module, output_path=args.output, templates=templates)
        if not results:
            logger.error("No files to process")
            return 1

        if not args.quiet:
            print_summary(results)

        logger.info("=" * 60)
        logger.info(f"Extraction complete. Processed {len(results)} files.")
        logger.info("=" * 60)
        return 0

    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
