"""Command-line interface for apostles model segmentation."""

import argparse
import logging
import sys
from pathlib import Path

from apostles.api.analyze import analyze
from apostles.core.config import RulesConfig
from apostles.core.encoders.compact_encoder import CompactArrayEncoder
from apostles.core.loaders.overrides_loader import OverridesLoader
from apostles.core.loaders.respondents_loader import RespondentsLoader
from apostles.core.models import QuadrantType
from apostles.core.proximity import describe

logging.basicConfig(
    level=logging.INFO,
    format='%(message)s',
    stream=sys.stdout
)
logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog='apostles',
        description='Apostles model segmentation - classify respondents by satisfaction and loyalty'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    subparsers = parser.add_subparsers(
        dest='command',
        help='Available commands',
        required=True
    )

    # Segment command
    segment_parser = subparsers.add_parser('segment', help='Classify respondents and count segments')
    segment_parser.add_argument('respondents', type=str, help='Path to respondents.jsonl file')
    segment_parser.add_argument('--rules', type=str, default=None, help='Path to rules YAML or JSON file')
    segment_parser.add_argument('--overrides', type=str, default=None, help='Path to overrides JSON file')
    segment_parser.add_argument('-o', '--output', type=str, default='segments.json', help='Output file (default: segments.json)')

    # Proximity command
    proximity_parser = subparsers.add_parser('proximity', help='Find respondents close to a segment boundary')
    proximity_parser.add_argument('respondents', type=str, help='Path to respondents.jsonl file')
    proximity_parser.add_argument('--rules', type=str, default=None, help='Path to rules YAML or JSON file')
    proximity_parser.add_argument('--overrides', type=str, default=None, help='Path to overrides JSON file')
    proximity_parser.add_argument('--threshold', type=float, default=None, help='Proximity threshold in scale units')
    proximity_parser.add_argument('--premium', action='store_true', help='Include diagonal and special zone relationships')
    proximity_parser.add_argument('-o', '--output', type=str, default='proximity.json', help='Output file (default: proximity.json)')

    return parser.parse_args(argv)


def _load_inputs(args):
    logger.info(f"Loading respondents from {args.respondents}")
    respondents = RespondentsLoader(args.respondents, as_model=True).load()
    logger.info(f"Loaded {len(respondents)} respondents")

    if args.rules:
        logger.info(f"Loading rules from {args.rules}")
        rules = RulesConfig.from_file(args.rules)
    else:
        logger.info("Using default rules")
        rules = RulesConfig.default()

    overrides = None
    if args.overrides:
        overrides = OverridesLoader(args.overrides).load()
        logger.info(f"Loaded {len(overrides)} manual assignments")

    return respondents, rules, overrides


def _write(data: dict, output: str) -> Path:
    output_path = Path(output)
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(CompactArrayEncoder().encode(data))
    return output_path


def cmd_segment(args):
    """Handle 'segment' command - assignments and distribution."""
    respondents, rules, overrides = _load_inputs(args)

    result = analyze(respondents, rules, overrides)

    for segment in QuadrantType:
        count = result.distribution.get(segment)
        if count:
            logger.info(f"  {segment}: {count}")
    if result.distribution.invalid:
        logger.info(f"  invalid: {len(result.distribution.invalid)}")

    data = result.model_dump(
        mode='json',
        by_alias=True,
        include={'assignments', 'overridden', 'distribution', 'issues'},
    )
    output_path = _write(data, args.output)

    logger.info(f"Wrote segments: {output_path}")
    logger.info("Done")


def cmd_proximity(args):
    """Handle 'proximity' command - boundary proximity report."""
    respondents, rules, overrides = _load_inputs(args)

    premium = True if args.premium else None
    result = analyze(respondents, rules, overrides, threshold=args.threshold, premium_enabled=premium)
    report = result.proximity

    if not report.settings.is_available:
        logger.info(f"Proximity analysis unavailable: {report.settings.unavailability_reason}")
    else:
        for key, detail in report.non_empty().items():
            logger.info(f"  {describe(key)}: {detail.customer_count} ({detail.risk_level})")

    output_path = _write(report.model_dump(mode='json', by_alias=True), args.output)

    logger.info(f"Wrote proximity report: {output_path}")
    logger.info("Done")


def main(argv=None):
    args = parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.command == 'segment':
        cmd_segment(args)
    elif args.command == 'proximity':
        cmd_proximity(args)
    else:
        logger.error(f"Unknown command: {args.command}")
        sys.exit(1)


if __name__ == '__main__':
    main()
