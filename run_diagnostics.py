"""CLI entry point for pipeline diagnostics."""

import argparse
import json
import logging
import signal
import sys
from typing import Any

from dotenv import load_dotenv

from src.bitbucket import PipelineAPIError, PipelineClient
from src.logging_config import configure_logging
from src.monitor import DEFAULT_POLL_INTERVAL, MonitorError, WatchResult
from src.orchestrator import (
    DiagnoseOptions,
    DiagnosticsError,
    DiagnosticsOrchestrator,
    PipelineDiagnosis,
    format_plain_text,
)
from src.resolver import ResolverError

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Diagnose Bitbucket pipeline failures from step logs and test reports"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Set logging level (overrides LOG_LEVEL env var)",
    )
    parser.add_argument("--workspace", help="Bitbucket workspace (overrides BITBUCKET_WORKSPACE)")
    parser.add_argument("--repo", help="Repository slug (overrides BITBUCKET_REPO_SLUG)")

    commands = parser.add_subparsers(dest="command", required=True)

    logs = commands.add_parser("logs", help="Analyze the step logs of a pipeline")
    logs.add_argument("pipeline", help="Pipeline UUID, build number, or #build-number")
    logs.add_argument("--step", help="Only analyze the first step matching this name")
    logs.add_argument("--errors-only", action="store_true", help="Hide warnings")
    logs.add_argument(
        "--context",
        type=int,
        default=None,
        metavar="N",
        help="Lines of context around each error (default: 3, max: 10)",
    )
    logs.add_argument(
        "--follow",
        action="store_true",
        help="Stream logs of a running pipeline as steps start",
    )
    logs.add_argument(
        "--failed-only",
        action="store_true",
        help="Only analyze failed steps",
    )
    logs.add_argument(
        "--tests",
        action="store_true",
        help="Use test reports instead of raw logs",
    )
    logs.add_argument(
        "--explain",
        action="store_true",
        help="Ask an LLM to explain the errors found (needs OPENAI_API_KEY)",
    )
    _add_live_arguments(logs)

    watch = commands.add_parser("watch", help="Watch a pipeline until it finishes")
    watch.add_argument("pipeline", help="Pipeline UUID, build number, or #build-number")
    _add_live_arguments(watch)

    return parser


def _positive_float(value: str) -> float:
    try:
        seconds = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}")
    if not 0 < seconds < float("inf"):
        raise argparse.ArgumentTypeError(f"must be a positive number of seconds, got {value}")
    return seconds


def _add_live_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--interval",
        type=_positive_float,
        default=DEFAULT_POLL_INTERVAL,
        metavar="SECONDS",
        help=f"Seconds between status polls (default: {DEFAULT_POLL_INTERVAL:g})",
    )
    parser.add_argument(
        "--output",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )


def _make_emitter(output: str):
    """Return a sink that prints each record whole, as text or a JSON line."""

    def emit(record: Any) -> None:
        if output == "json":
            print(json.dumps(record.to_dict(), ensure_ascii=False), flush=True)
        else:
            print(record.to_text(), flush=True)

    return emit


def _print_result(result: WatchResult | PipelineDiagnosis, output: str) -> None:
    if isinstance(result, PipelineDiagnosis):
        if output == "json":
            print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        else:
            print(format_plain_text(result))
    elif output == "json":
        print(json.dumps({"type": "result", **result.to_dict()}, ensure_ascii=False))


def main(argv: list[str] | None = None) -> int:
    load_dotenv()

    args = _build_parser().parse_args(argv)
    configure_logging(level_override=args.log_level)

    client = PipelineClient(workspace=args.workspace, repo_slug=args.repo)
    orchestrator = DiagnosticsOrchestrator(client=client, poll_interval=args.interval)

    def handle_interrupt(signum, frame):
        logger.info("Interrupt received, stopping")
        orchestrator.cancel()

    previous_handler = signal.signal(signal.SIGINT, handle_interrupt)

    emit = _make_emitter(args.output)
    try:
        if args.command == "watch":
            result = orchestrator.watch(args.pipeline, emit=emit)
        else:
            options = DiagnoseOptions(
                step_name=args.step,
                errors_only=args.errors_only,
                context_lines=args.context,
                failed_only=args.failed_only,
                tests_only=args.tests,
                explain=args.explain,
            )
            if args.follow:
                result = orchestrator.follow_logs(args.pipeline, options, emit=emit)
            else:
                result = orchestrator.diagnose(args.pipeline, options)
    except (ResolverError, DiagnosticsError, MonitorError, PipelineAPIError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    _print_result(result, args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
