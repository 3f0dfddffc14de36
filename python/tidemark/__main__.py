"""
Run one refresh cycle from the command line.

Loads configuration from the environment, restores the registry and
watermark from disk, refreshes, prints the report as JSON on stdout, then
clears the changed flags and saves. Errors are logged to stderr as well as
the log file; --verbose sends everything there.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

from tidemark.config import DetectorConfig, build_classifier, build_detector
from tidemark.errors import TidemarkError
from tidemark.logging_config import configure_logging
from tidemark.registry import JsonSourceRegistry

logger = logging.getLogger("tidemark.cli")


def run(
    source: Optional[Path] = None,
    registry_path: Optional[Path] = None,
    full: bool = False,
) -> dict:
    """
    Refresh the persisted registry once and return the report dict.

    Args:
        source: Source directory (default: TIDEMARK_SOURCE_DIR or cwd)
        registry_path: Registry file (default: TIDEMARK_REGISTRY)
        full: Reset the watermark first so every file counts as changed
    """
    config = DetectorConfig.from_env(source_dir=source)
    if registry_path is not None:
        config = config.with_registry_path(registry_path)

    registry = JsonSourceRegistry(config.registry_path)
    detector = build_detector(config, registry, watermark=registry.watermark)
    if full:
        logger.info("Full refresh requested - resetting watermark")
        detector.reset_watermark()

    report = detector.refresh()

    result = report.to_dict()
    result["updated"] = [entry.relative_path for entry in registry.updated_entries()]

    # The printed report is this cycle's consumer of the changed flags
    registry.reset()
    registry.save(watermark=detector.watermark)
    return result


def explain(paths: list[str], source: Optional[Path] = None) -> dict[str, str]:
    """Classify each relative path with the configured patterns."""
    classifier = build_classifier(DetectorConfig.from_env(source_dir=source))
    return {path: classifier.classify(path).value for path in paths}


def main(argv: Optional[list[str]] = None) -> int:
    import argparse

    parser = argparse.ArgumentParser(
        prog="tidemark",
        description="Detect changed files since the previous scan and update the source registry",
    )
    parser.add_argument(
        "--source",
        type=Path,
        default=None,
        help="Directory to scan (default: TIDEMARK_SOURCE_DIR env var, or cwd)",
    )
    parser.add_argument(
        "--registry",
        type=Path,
        default=None,
        help="Registry JSON file (default: TIDEMARK_REGISTRY env var, or .tidemark/registry.json)",
    )
    parser.add_argument(
        "--full",
        action="store_true",
        help="Treat every file as changed (reset the watermark)",
    )
    parser.add_argument(
        "--explain",
        nargs="+",
        metavar="PATH",
        default=None,
        help="Print how each relative path is classified and exit",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log per-path detail and mirror the log to stderr",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Log directory (default: .tidemark/logs)",
    )
    args = parser.parse_args(argv)

    configure_logging(log_dir=args.log_dir, verbose=args.verbose)

    try:
        if args.explain:
            output = explain(args.explain, source=args.source)
        else:
            output = run(source=args.source, registry_path=args.registry, full=args.full)
    except TidemarkError as e:
        logger.error(str(e))
        return 1

    json.dump(output, sys.stdout, indent=2, sort_keys=True)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
