"""Command-line driver for the three-tier consent pipeline."""

from __future__ import annotations

import argparse
import asyncio
from datetime import datetime
import sys
from typing import Any

from pydantic import ValidationError

from three_tier_consent.audit.sinks import JsonlAuditSink
from three_tier_consent.cli.helpers import (
    CliInputError,
    build_pipeline,
    describe_validation_error,
    load_settings,
    read_json,
    to_json,
)
from three_tier_consent.config.settings import PipelineSettings
from three_tier_consent.enums import OverallStatus
from three_tier_consent.errors import (
    ConsentPipelineError,
    FailureKind,
    classify_error,
)
from three_tier_consent.models.action import ProposedAction
from three_tier_consent.models.audit import AuditQuery
from three_tier_consent.models.result import OverrideRequest
from three_tier_consent.utilities.clock import parse_timestamp
from three_tier_consent.utilities.logger_manager import LoggerManager

EXIT_OK = 0
EXIT_FAULT = 1
EXIT_INVALID = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="three-tier-consent",
        description="Gate proposed actions through the three-tier consent pipeline.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to the configuration file (YAML); CONSENT_PIPELINE_CONFIG otherwise.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate_parser = subparsers.add_parser(
        "validate", help="Validate a proposed action described in a JSON file."
    )
    validate_parser.add_argument("action_path", help="Path to the action JSON file.")
    validate_parser.add_argument(
        "--audit-log", default=None, help="JSONL audit log to append to."
    )
    validate_parser.add_argument(
        "--user-profile",
        default=None,
        help="Optional JSON file with the reviewer profile for consent timing.",
    )

    audit_parser = subparsers.add_parser("audit", help="Query a JSONL audit log.")
    audit_parser.add_argument("--audit-log", required=True)
    audit_parser.add_argument(
        "--status", choices=[status.value for status in OverallStatus], default=None
    )
    audit_parser.add_argument("--action-kind", default=None)
    audit_parser.add_argument("--since", default=None, help="ISO-8601 lower bound.")
    audit_parser.add_argument("--until", default=None, help="ISO-8601 upper bound.")

    override_parser = subparsers.add_parser(
        "override", help="Apply an emergency override to a persisted result."
    )
    override_parser.add_argument("result_id")
    override_parser.add_argument("--audit-log", required=True)
    override_parser.add_argument("--justification", required=True)
    override_parser.add_argument(
        "--approver", dest="approvers", action="append", default=[]
    )
    override_parser.add_argument("--circumstances", default=None)
    return parser.parse_args(argv)


def _parse_bound(value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        return parse_timestamp(value)
    except ValueError as exc:
        raise CliInputError(f"Invalid timestamp {value!r}: {exc}") from exc


async def _validate(
    args: argparse.Namespace,
    settings: PipelineSettings,
    logger_manager: LoggerManager,
) -> int:
    action = ProposedAction.from_mapping(read_json(args.action_path))
    options: dict[str, Any] = {}
    if args.user_profile:
        options["user_profile"] = read_json(args.user_profile)
    pipeline = build_pipeline(settings, logger_manager)
    result = await pipeline.validate(action, options)
    print(to_json(result))
    return EXIT_OK


async def _audit(args: argparse.Namespace) -> int:
    query = AuditQuery(
        start=_parse_bound(args.since),
        end=_parse_bound(args.until),
        status=OverallStatus(args.status) if args.status else None,
        action_kind=args.action_kind,
    )
    entries = JsonlAuditSink(args.audit_log).query(query)
    print(to_json(entries))
    return EXIT_OK


async def _override(
    args: argparse.Namespace,
    settings: PipelineSettings,
    logger_manager: LoggerManager,
) -> int:
    sink = JsonlAuditSink(args.audit_log)
    entries = sink.query(AuditQuery(result_id=args.result_id))
    if not entries:
        raise CliInputError(f"No audit entry found for result {args.result_id}")
    result = entries[-1].to_result()
    pipeline = build_pipeline(settings, logger_manager, audit_sink=sink)
    record = await pipeline.override(
        result,
        OverrideRequest(
            justification=args.justification,
            approvers=args.approvers,
            circumstances=args.circumstances,
        ),
    )
    print(to_json({"override": record, "result": result}))
    return EXIT_OK


async def main(argv: list[str] | None = None) -> int:
    """Run one command and return its exit code."""
    args = parse_args(argv)
    try:
        settings = load_settings(args.config, getattr(args, "audit_log", None))
    except CliInputError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_INVALID
    logger_manager = LoggerManager(config=settings.logging.to_logger_config())
    logger = logger_manager.get_logger()
    try:
        if args.command == "validate":
            return await _validate(args, settings, logger_manager)
        if args.command == "audit":
            return await _audit(args)
        return await _override(args, settings, logger_manager)
    except CliInputError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_INVALID
    except ValidationError as exc:
        print(describe_validation_error(exc), file=sys.stderr)
        return EXIT_INVALID
    except ConsentPipelineError as exc:
        if classify_error(exc) is not FailureKind.ORCHESTRATION:
            print(str(exc), file=sys.stderr)
            return EXIT_INVALID
        logger.error(f"Pipeline run failed: {exc}", exc_info=True)
        print(f"Pipeline run failed: {exc}", file=sys.stderr)
        return EXIT_FAULT
    finally:
        logger_manager.flush()


def run() -> None:
    """Console-script entry point."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("Pipeline interrupted by user", file=sys.stderr)
        sys.exit(EXIT_FAULT)


if __name__ == "__main__":
    run()
