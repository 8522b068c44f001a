"""
capflow command line

Usage:
    capflow dump "- call the bank\n- renew passport" --mood anxious --tag admin
    capflow recent --source email --limit 5 --pending
    capflow link <capture-id> <task-id>
    capflow --debug recent       # console logging at DEBUG

Each command:
1. Loads configuration
2. Initializes logging
3. Opens the capture store
4. Runs one engine operation and prints the result as JSON
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any, NoReturn, Optional, Sequence

from capflow import __version__
from capflow.capture.adaptation import AnnotatedCandidate
from capflow.capture.artifacts import SourceType
from capflow.capture.engine import CaptureEngine
from capflow.capture.store import CaptureStore
from capflow.config import CapflowConfig, get_config
from capflow.errors import CaptureError
from capflow.events import get_event_bus
from capflow.utils.logging import get_logger, setup_logging

logger = get_logger("capflow.cli")


def _print(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def _candidate_view(candidate: AnnotatedCandidate) -> dict:
    view = candidate.summary()
    view["timestamp"] = candidate.artifact.timestamp.isoformat()
    return view


async def run_command(args: argparse.Namespace, config: CapflowConfig) -> int:
    """Run one command against the configured store."""
    store = CaptureStore(url=config.database.url, echo=config.database.echo)
    await store.init()
    engine = CaptureEngine(
        repository=store,
        events=get_event_bus(),
        settings=config.pipeline,
    )

    try:
        if args.command == "dump":
            candidate = await engine.capture_brain_dump(args.text, mood=args.mood, tags=args.tag)
            _print(_candidate_view(candidate))
        elif args.command == "recent":
            candidates = await engine.recent_candidates(
                SourceType(args.source), limit=args.limit, pending=args.pending
            )
            _print([_candidate_view(c) for c in candidates])
        elif args.command == "link":
            artifact = await engine.record_conversion(args.capture_id, args.task_id)
            _print({"artifact_id": artifact.id, "kind": artifact.kind, "task_id": args.task_id})
        return 0

    except CaptureError as e:
        logger.error("command_failed", command=args.command, error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return 1
    finally:
        await store.close()


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="capflow",
        description="capflow - turn captures into ADHD-friendly task candidates",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging (pretty console output)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    dump = commands.add_parser("dump", help="Capture a brain dump")
    dump.add_argument("text", help="What's on your mind")
    dump.add_argument("--mood", help="How you're feeling")
    dump.add_argument("--tag", action="append", default=[], help="Tag (repeatable)")

    recent = commands.add_parser("recent", help="List recent captures with their annotations")
    recent.add_argument(
        "--source",
        choices=[s.value for s in SourceType],
        default=SourceType.BRAIN_DUMP.value,
        help="Capture kind",
    )
    recent.add_argument("--limit", type=int, default=None, help="Maximum number of captures")
    recent.add_argument("--pending", action="store_true", help="Only captures not yet turned into tasks")

    link = commands.add_parser("link", help="Record that a capture became a task")
    link.add_argument("capture_id")
    link.add_argument("task_id")

    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """Main entry point for the capflow command."""
    args = parse_args(argv)

    config = get_config()
    if args.debug:
        config.log.level = "DEBUG"
        config.log.format = "console"

    setup_logging(
        level=config.log.level,
        format=config.log.format,
        log_file=config.log.file,
    )

    sys.exit(asyncio.run(run_command(args, config)))


if __name__ == "__main__":
    main()
