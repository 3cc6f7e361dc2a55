"""costbook-cli: 计算 Gemini API 响应的费用"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from costbook import __version__
from costbook.config.settings import get_settings
from costbook.core.exceptions import PricingConfigError, UsagePayloadError
from costbook.core.logger import logger, setup_logger
from costbook.services.pricing.calculator import CostCalculator
from costbook.services.pricing.loader import load_catalog
from costbook.services.pricing.models import CostDetails
from costbook.services.pricing.registry import get_default_calculator
from costbook.services.pricing.usage_mapper import calculate_gemini_response_cost

EPILOG = """\
Environment variables:
  COSTBOOK_DEFAULT_MODEL   Default model name
  COSTBOOK_BATCH_MODE      Enable batch mode (true/false)
  COSTBOOK_LOG_LEVEL       Log level (DEBUG, INFO, WARNING, ERROR)
  COSTBOOK_CONFIG_DIR      Directory of *_pricing.json files

Examples:
  cat response.json | costbook-cli
  costbook-cli -f response.json
  costbook-cli --batch --human -f response.json
  costbook-cli --model gemini-2.5-flash -f response.json
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="costbook-cli",
        description="Calculate costs for Gemini API JSON responses.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-f", dest="file", help="Read JSON from file (default: stdin)")
    parser.add_argument("--batch", action="store_true", help="Apply batch mode pricing")
    parser.add_argument("--human", action="store_true", help="Human-readable output (default: JSON)")
    parser.add_argument("--model", help="Override model name (when modelVersion missing)")
    parser.add_argument("--config-dir", help="Load pricing files from this directory instead of the defaults")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output (debug logging)")
    parser.add_argument("--version", action="store_true", help="Print version")
    return parser


def _read_input(args: argparse.Namespace, parser: argparse.ArgumentParser) -> str | None:
    if args.file:
        logger.debug(f"reading input from file: {args.file}")
        return Path(args.file).read_text(encoding="utf-8")
    if sys.stdin.isatty():
        parser.print_help(sys.stderr)
        return None
    logger.debug("reading input from stdin")
    return sys.stdin.read()


def format_human(details: CostDetails) -> str:
    lines = ["Gemini Pricing Breakdown", "========================"]
    if not details.found:
        lines += ["WARNING: Model not found in pricing database", ""]
    lines.append(f"Tier: {details.tier_applied or 'standard'}")
    if details.batch_mode:
        lines.append("Batch Mode: enabled")

    lines += [
        "",
        "Input Costs:",
        f"  Standard:  ${details.standard_input_cost:.6f}",
        f"  Cached:    ${details.cached_input_cost:.6f}",
        "",
        "Output Costs:",
        f"  Output:    ${details.output_cost:.6f}",
        f"  Thinking:  ${details.thinking_cost:.6f}",
    ]
    if details.grounding_cost > 0:
        lines += ["", f"Grounding:   ${details.grounding_cost:.6f}"]
    if details.batch_discount > 0:
        lines += ["", f"Batch Savings: ${details.batch_discount:.6f}"]
    lines += ["", f"Total:       ${details.total_cost:.6f}"]

    if details.warnings:
        lines += ["", "Warnings:"]
        lines += [f"  - {warning}" for warning in details.warnings]
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"costbook-cli v{__version__}")
        return 0

    settings = get_settings()
    setup_logger(level="DEBUG" if args.verbose else settings.log_level)

    model = args.model or settings.default_model
    batch_mode = args.batch or settings.batch_mode
    logger.debug(f"configuration resolved: model={model}, batch_mode={batch_mode}")

    try:
        payload = _read_input(args, parser)
    except (OSError, UnicodeDecodeError) as exc:
        logger.error(f"failed to read input: {exc}")
        return 1
    if payload is None:
        return 0
    if not payload.strip():
        logger.error("no input provided")
        parser.print_usage(sys.stderr)
        return 1

    try:
        if args.config_dir:
            calculator = CostCalculator(load_catalog(args.config_dir))
        else:
            calculator = get_default_calculator()
    except PricingConfigError as exc:
        logger.error(f"failed to load pricing data: {exc}")
        return 1

    try:
        details = calculate_gemini_response_cost(payload, calculator, model=model, batch_mode=batch_mode)
    except UsagePayloadError as exc:
        logger.error(f"failed to parse response: {exc}")
        return 1

    logger.debug(f"calculation complete: total_cost={details.total_cost}, unknown={not details.found}")
    if args.human:
        print(format_human(details))
    else:
        print(json.dumps(details.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
