"""CLI to run daily_paydown background jobs once, outside the API process.

Usage:
  daily-paydown-job init-db
  daily-paydown-job sync-transactions
  daily-paydown-job sync-balances --user-id 3
  daily-paydown-job compute-reports --user-id 3 --user-id 4
  daily-paydown-job send-notifications
  daily-paydown-job cleanup-devices
"""
import argparse
import asyncio
import json
import sys
from dataclasses import asdict

from daily_paydown.config import ConfigurationError
from daily_paydown.container import Container, init_container
from daily_paydown.jobs import JobFamily
from daily_paydown.main import configure_logging
from daily_paydown.vault import VaultConfigurationError


def print_json(data: object) -> None:
    print(json.dumps(data, indent=2, default=str))


def cmd_init_db(container: Container, _: argparse.Namespace) -> int:
    container.database().init()
    print_json({"status": "ok", "database": container.settings().database_url})
    return 0


def cmd_run_job(container: Container, args: argparse.Namespace) -> int:
    family = JobFamily(args.command)

    async def run() -> dict:
        runner = container.job_runner()
        try:
            result = await runner.run(family, user_ids=args.user_ids or None)
        finally:
            await container.plaid_provider().close()
            push_provider = container.push_provider()
            if push_provider is not None:
                await push_provider.close()
        return {"family": family.value, **asdict(result)}

    try:
        summary = asyncio.run(run())
    except KeyboardInterrupt:
        print("\nStopped by user", file=sys.stderr)
        return 130
    print_json(summary)
    return 1 if summary["failed"] else 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Run daily_paydown jobs once.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command")

    subparsers.add_parser("init-db", help="Create database tables")
    for family in JobFamily:
        p = subparsers.add_parser(family.value, help=f"Run the {family.value} job once")
        if family is not JobFamily.DEVICE_CLEANUP:
            p.add_argument(
                "--user-id",
                dest="user_ids",
                type=int,
                action="append",
                default=[],
                help="Only this user (repeatable; default: all users)",
            )

    args = parser.parse_args()
    if not hasattr(args, "user_ids"):
        args.user_ids = []

    try:
        container = init_container()
        configure_logging(container.settings().log_level)
        if args.command == "init-db":
            return cmd_init_db(container, args)
        return cmd_run_job(container, args)
    except (ConfigurationError, VaultConfigurationError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
