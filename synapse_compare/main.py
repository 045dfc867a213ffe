"""
Command line entry point for synapse-compare.

Sub-commands:
    compare      Compare URL pairs listed in a CSV file
    postprocess  Re-compare pairs recorded by a load-engine run
    run          Compare pairs synthesized from a YAML test configuration
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from synapse_compare.config.settings import ConfigurationError, load_test_config
from synapse_compare.domain.config import ComparisonConfig, ComparisonKind
from synapse_compare.domain.records import Summary
from synapse_compare.pipeline.batch import BatchPipeline, summarize
from synapse_compare.pipeline.sources import (
    CsvPairSource,
    ExternalLogSource,
    ParameterUrlBuilder,
    SourceError,
    SynthesizedPairSource,
)
from synapse_compare.reporting.report_emitter import ReportEmitter
from synapse_compare.utils.logger import get_logger

logger = get_logger(__name__)


def _progress(completed: int, total: int) -> None:
    sys.stdout.write(f"\rComparing {completed}/{total}...")
    if completed == total:
        sys.stdout.write("\n")
    sys.stdout.flush()


def print_summary(summary: Summary, kind: ComparisonKind, written: dict) -> None:
    print("Comparison complete!")
    for label, path in written.items():
        print(f"  {label}: {path}")
    print("Results:")
    print(f"  Total: {summary.total}")
    print(f"  Successful: {summary.successful}")
    print(f"  Failed: {summary.failed}")
    if summary.skipped:
        print(f"  Skipped: {summary.skipped}")
    if summary.passthrough:
        print(f"  Not compared (load-test failure): {summary.passthrough}")
    print(f"  Success Rate: {summary.success_rate}%")
    if kind is ComparisonKind.TEXT:
        print(f"  Exact Matches: {summary.exact_matches}")
    if summary.avg_external_response_time_ms is not None:
        print(f"  Avg Load-Test Response Time: {summary.avg_external_response_time_ms}ms")
    print(f"  Avg Response Time: {summary.avg_response_time_ms}ms")
    if kind is ComparisonKind.IMAGE:
        print(f"  Avg Similarity: {summary.avg_similarity}%")
    for error_kind, count in sorted(summary.error_counts.items()):
        print(f"  {error_kind}: {count}")


def _execute(source, config: ComparisonConfig, output_dir: str, workers: int) -> int:
    pipeline = BatchPipeline(max_workers=workers, progress=_progress)
    emitter = ReportEmitter(Path(output_dir))

    result = pipeline.execute(source, config)
    summary = summarize(result, pipeline.clock)
    written = emitter.emit(result, summary)
    print_summary(summary, config.kind, written)
    return 0


def cmd_compare(args: argparse.Namespace) -> int:
    config = ComparisonConfig(
        kind=ComparisonKind.parse(args.type),
        timeout_ms=args.timeout,
        pixel_threshold=args.threshold,
    )
    source = CsvPairSource(args.file, column1=args.column1, column2=args.column2)
    return _execute(source, config, args.output, args.workers)


def cmd_postprocess(args: argparse.Namespace) -> int:
    config = ComparisonConfig(
        kind=ComparisonKind.parse(args.type),
        timeout_ms=args.timeout,
        pixel_threshold=args.threshold,
    )
    if args.log:
        source = ExternalLogSource.from_console_log(args.log)
        ReportEmitter(Path(args.output)).write_load_records(source.records)
    else:
        source = ExternalLogSource.from_results_json(args.results)
    return _execute(source, config, args.output, args.workers)


def cmd_run(args: argparse.Namespace) -> int:
    test_config = load_test_config(args.config)
    comparison = test_config.comparison
    if not comparison.enabled or not comparison.base_url2:
        raise ConfigurationError("Comparison not enabled in config")

    builder = ParameterUrlBuilder(test_config.base_url, test_config.parameters)
    source = SynthesizedPairSource(
        iterations=test_config.iterations,
        base_url=test_config.base_url,
        base_url2=comparison.base_url2,
        url_builder=builder,
    )
    workers = args.workers or comparison.max_workers
    return _execute(source, test_config.comparison_config(), args.output, workers)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="synapse-compare",
        description="Differential image/text comparison of URL pairs",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_comparison_options(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("-t", "--type", default="image", choices=["image", "text"])
        sub.add_argument("--timeout", type=int, default=30000, help="Request timeout in ms")
        sub.add_argument(
            "--threshold", type=float, default=0.1, help="Image comparison threshold (0-1)"
        )
        sub.add_argument("-o", "--output", default="./output", help="Output directory")
        sub.add_argument("-w", "--workers", type=int, default=1, help="Pairs compared at once")

    compare_parser = subparsers.add_parser("compare", help="Compare URL pairs from a CSV file")
    compare_parser.add_argument("-f", "--file", required=True, help="CSV file with URL pairs")
    compare_parser.add_argument("--column1", default="url1", help="First URL column name")
    compare_parser.add_argument("--column2", default="url2", help="Second URL column name")
    add_comparison_options(compare_parser)
    compare_parser.set_defaults(handler=cmd_compare)

    post_parser = subparsers.add_parser(
        "postprocess", help="Re-compare pairs recorded during a load-test run"
    )
    origin = post_parser.add_mutually_exclusive_group(required=True)
    origin.add_argument("--results", help="comparison-results.json written by a previous run")
    origin.add_argument("--log", help="Load-engine console log with comparison lines")
    add_comparison_options(post_parser)
    post_parser.set_defaults(handler=cmd_postprocess)

    run_parser = subparsers.add_parser(
        "run", help="Compare pairs synthesized from a YAML test configuration"
    )
    run_parser.add_argument("-c", "--config", required=True, help="YAML test configuration")
    run_parser.add_argument("-o", "--output", default="./output", help="Output directory")
    run_parser.add_argument("-w", "--workers", type=int, default=None)
    run_parser.set_defaults(handler=cmd_run)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.handler(args)
    except (SourceError, ConfigurationError, ValueError) as e:
        logger.error("Comparison run aborted", operation=args.command, error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
