#!/usr/bin/env python3
"""
Lineageweaver sync command line tool.

Runs the sync engine's bulk operations against the configured local SQLite
store and REST remote store:

    lineageweaver-sync bootstrap TENANT        sign-in reconciliation
    lineageweaver-sync restore TENANT          replace local data with the remote copy
    lineageweaver-sync purge-remote TENANT --yes
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, List, Optional

from lineageweaver.config.settings import settings
from lineageweaver.database.connection import DatabaseManager
from lineageweaver.sync.connectivity import ConnectivityMonitor
from lineageweaver.sync.models import BootstrapStatus
from lineageweaver.sync.session import SyncSession
from lineageweaver.sync.stores.http_remote import HTTPRemoteStore, RemoteStoreConfig
from lineageweaver.sync.stores.sql_local import SQLAlchemyLocalStore
from lineageweaver.system.logging_config import setup_logging

logger = logging.getLogger(__name__)


def format_json(data: Any, indent: int = 2) -> str:
    """Format command output as JSON."""
    return json.dumps(data, indent=indent, ensure_ascii=False, default=str)


def build_session(args: argparse.Namespace) -> SyncSession:
    """Create a sync session from command line options."""
    local = SQLAlchemyLocalStore(DatabaseManager(args.database_url))
    remote = HTTPRemoteStore(RemoteStoreConfig(
        base_url=args.url,
        api_token=args.token,
        timeout=settings.remote.remote_timeout,
        verify_ssl=settings.remote.remote_verify_ssl,
    ))
    # Bulk commands talk to the remote directly; they never go through the mirror gate.
    connectivity = ConnectivityMonitor(initial_online=True)
    return SyncSession(args.tenant, local, remote, connectivity=connectivity)


async def run_command(args: argparse.Namespace) -> int:
    """Execute one command and print its result."""
    session = build_session(args)
    try:
        if args.command == "bootstrap":
            outcome = await session.open()
            print(format_json(outcome.to_dict()))
            return 1 if outcome.status == BootstrapStatus.ERROR else 0

        if args.command == "restore":
            outcome = await session.resync()
            print(format_json(outcome.to_dict()))
            return 1 if outcome.status == BootstrapStatus.ERROR else 0

        if args.command == "purge-remote":
            report = await session.bulk.purge(args.tenant)
            print(format_json(report.to_dict()))
            return 0

        raise ValueError(f"Unknown command: {args.command}")
    finally:
        await session.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lineageweaver-sync",
        description="Lineageweaver local/remote sync tool",
    )
    parser.add_argument("--url", default=settings.remote.remote_base_url, help="Remote store base URL")
    parser.add_argument("--token", default=settings.remote.remote_api_token, help="Remote store API token")
    parser.add_argument("--database-url", default=settings.database.database_url, help="Local store database URL")
    parser.add_argument("--log-dir", default=None, help="Directory for log files")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    bootstrap_parser = subparsers.add_parser("bootstrap", help="Reconcile local and remote data for a tenant")
    bootstrap_parser.add_argument("tenant", help="Tenant ID")

    restore_parser = subparsers.add_parser("restore", help="Replace local data with the remote copy")
    restore_parser.add_argument("tenant", help="Tenant ID")

    purge_parser = subparsers.add_parser("purge-remote", help="Delete all remote data of a tenant")
    purge_parser.add_argument("tenant", help="Tenant ID")
    purge_parser.add_argument("--yes", action="store_true", help="Confirm deletion")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    if args.command == "purge-remote" and not args.yes:
        print("Warning: this permanently deletes every remote record of the tenant.")
        print("Add --yes to confirm.")
        return 2

    setup_logging(args.log_dir)

    try:
        return asyncio.run(run_command(args))
    except Exception as e:
        logger.error(f"Command failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
