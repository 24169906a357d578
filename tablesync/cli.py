"""Command line entry point for creating, writing and reading tables."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Sequence

from tablesync.config import get_settings
from tablesync.errors import TableSyncError
from tablesync.lifecycle import SlotState
from tablesync.workflow import TableWorkflow

LOGGER = logging.getLogger(__name__)
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="tablesync", description="Create, write and read network tables.")
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        default=None,
        help="Log level (overrides settings/env).",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("create", help="Create a table and wait for confirmation.")
    create.add_argument("prefix", help="Table prefix, e.g. my_table.")
    create.add_argument("--timeout", type=float, default=None, help="Seconds to wait for confirmation.")

    write = commands.add_parser("write", help="Insert a row and refresh once it is confirmed.")
    write.add_argument("table", help="Full table name, e.g. my_table_31337_2.")
    write.add_argument("name", help="Value for the name column.")
    write.add_argument("--no-wait", action="store_true", help="Return right after submission.")

    read = commands.add_parser("read", help="Print all rows of a table.")
    read.add_argument("table", help="Full table name.")

    status = commands.add_parser("status", help="Show the verifier status of a transaction hash.")
    status.add_argument("handle", help="Transaction hash returned by create/write.")
    return parser.parse_args(argv)


def _emit(payload: object) -> None:
    print(json.dumps(payload, indent=2, default=str))


async def run(args: argparse.Namespace) -> int:
    workflow = TableWorkflow.from_settings()
    await workflow.connect()
    try:
        if args.command == "create":
            descriptor = await workflow.create_table(args.prefix, timeout=args.timeout)
            _emit(descriptor.model_dump(by_alias=True))
        elif args.command == "write":
            await workflow.open_table(args.table)
            pending = await workflow.write(args.name)
            if args.no_wait:
                _emit(pending.model_dump(mode="json", by_alias=True))
                return 0
            await workflow.wait()
            coordinator = workflow.coordinator
            assert coordinator is not None
            outcome = coordinator.last_outcome
            if outcome is None or not outcome.completed:
                LOGGER.error("Write %s did not confirm: %s", pending.handle, coordinator.last_error)
                return 1
            if coordinator.last_error is not None:
                LOGGER.error(
                    "Write %s confirmed but reading %s failed: %s",
                    pending.handle,
                    args.table,
                    coordinator.last_error,
                )
                return 1
            _emit([row.model_dump() for row in workflow.rows])
        elif args.command == "read":
            await workflow.open_table(args.table)
            rows = await workflow.read()
            _emit([row.model_dump() for row in rows])
        elif args.command == "status":
            report = await workflow.status(args.handle)
            _emit(report.model_dump(by_alias=True))
    finally:
        if workflow.state is not SlotState.IDLE:
            LOGGER.info("Abandoning unresolved write on exit")
        await workflow.disconnect()
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    settings = get_settings()
    level = (args.log_level or settings.log_level).upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
    try:
        code = asyncio.run(run(args))
    except TableSyncError as exc:
        LOGGER.error("%s (%s)", exc, exc.code or type(exc).__name__)
        code = 2
    except KeyboardInterrupt:
        LOGGER.info("Interrupted")
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    main()
