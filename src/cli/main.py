"""CLI entry point for bank informer."""

from __future__ import annotations

import argparse
import getpass
import logging
import os
import sys
from datetime import date
from pathlib import Path

from rich.console import Console

from cli.display import print_banner, render_report
from cli.setup_wizard import run_setup
from engine.aggregator import PortfolioAggregator
from engine.average_store import AverageStore
from engine.progress import ProgressSubscriber
from engine.report import ReportSettings, build_daily_report
from informer_client.cmc import CmcClient
from informer_client.errors import ClientError
from informer_client.eth import EthClient
from informer_client.pokt import PoktClient
from informer_client.transport import RetryTransport
from utils.config import (
    AppConfig,
    default_config_path,
    default_csv_path,
    default_db_path,
    load_app_config,
)
from utils.credentials import API_KEY_ENV_VARS, DEFAULT_SERVICE_NAME, store_api_key
from utils.csv_export import export_averages
from utils.fan_out import ProgressChannel
from utils.logging_config import LogContext, setup_logging

LOGGER = logging.getLogger("bank_informer.cli")

EXPECTED_ERRORS = (FileNotFoundError, ClientError, RuntimeError, ValueError)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Report crypto wallet balances in fiat with day-over-day change."
    )
    parser.add_argument("--version", action="version", version="bank-informer 0.1.0")
    subparsers = parser.add_subparsers(dest="command", required=True)

    report_parser = subparsers.add_parser(
        "report", help="Fetch balances and rates, print the daily report."
    )
    _add_config_argument(report_parser)
    _add_db_argument(report_parser)
    _add_log_level_argument(report_parser)
    report_parser.add_argument(
        "--export-csv",
        action="store_true",
        help="Also export today's averages to the CSV file.",
    )
    report_parser.add_argument(
        "--csv-path", help="CSV file path (defaults to the app directory)."
    )
    report_parser.add_argument(
        "--no-progress", action="store_true", help="Do not render the progress bar."
    )
    report_parser.set_defaults(handler=run_report)

    setup_parser = subparsers.add_parser(
        "setup", help="Create the configuration file interactively."
    )
    _add_config_argument(setup_parser)
    setup_parser.add_argument(
        "--force", action="store_true", help="Overwrite an existing config file."
    )
    setup_parser.set_defaults(handler=run_setup_command)

    export_parser = subparsers.add_parser(
        "export", help="Export today's averaged samples to CSV."
    )
    _add_config_argument(export_parser)
    _add_db_argument(export_parser)
    _add_log_level_argument(export_parser)
    export_parser.add_argument(
        "--csv-path", help="CSV file path (defaults to the app directory)."
    )
    export_parser.set_defaults(handler=run_export)

    sweep_parser = subparsers.add_parser(
        "sweep", help="Delete expired samples from the local store."
    )
    _add_db_argument(sweep_parser)
    _add_log_level_argument(sweep_parser)
    sweep_parser.set_defaults(handler=run_sweep)

    credentials_parser = subparsers.add_parser(
        "store-credentials", help="Store an API key in the OS keychain."
    )
    credentials_parser.add_argument(
        "--name",
        required=True,
        choices=sorted(API_KEY_ENV_VARS),
        help="Which API key to store.",
    )
    credentials_parser.add_argument(
        "--value", help="API key value (defaults to its env var or a prompt)."
    )
    credentials_parser.add_argument(
        "--service-name",
        default=DEFAULT_SERVICE_NAME,
        help=f"Keyring service name (default: {DEFAULT_SERVICE_NAME}).",
    )
    credentials_parser.set_defaults(handler=run_store_credentials)
    return parser


def _add_config_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        help="Path to JSON/TOML/YAML config file (defaults to the app directory).",
    )


def _add_db_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--db-path", help="Sample store path (defaults to the app directory)."
    )


def _add_log_level_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (DEBUG, INFO, WARNING, ERROR).",
    )
    parser.add_argument(
        "--log-format",
        choices=("text", "json"),
        default="text",
        help="Log line format on stderr and in the log file.",
    )
    parser.add_argument("--log-file", help="Also write log lines to this file.")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if hasattr(args, "handler"):
        return args.handler(args)
    parser.print_help()
    return 1


def run_report(args: argparse.Namespace) -> int:
    configure_logging(args.log_level, args.log_format, args.log_file)
    today = date.today()
    try:
        with LogContext(command="report", run_date=today.isoformat()):
            config_path = resolve_config_path(args.config)
            if not config_path.exists() and sys.stdin.isatty():
                run_setup(config_path)
            config = load_app_config(config_path)
            aggregator = build_aggregator(config)
            console = Console()

            with AverageStore(resolve_db_path(args.db_path)) as store:
                store.sweep()
                print_banner(
                    console,
                    config.crypto_fiat_conversion,
                    config.convert_currencies,
                    config.crypto_values,
                )
                channel = ProgressChannel(aggregator.expected_progress())
                subscriber = ProgressSubscriber(
                    channel, channel.capacity, enabled=not args.no_progress
                )
                subscriber.start()
                try:
                    snapshot = aggregator.collect(channel)
                finally:
                    channel.close()
                    subscriber.join()

                report = build_daily_report(
                    snapshot, ReportSettings.from_config(config), store, today
                )
                render_report(report, console)

                if args.export_csv:
                    export_averages(
                        store,
                        config.crypto_values,
                        resolve_csv_path(args.csv_path),
                        today,
                    )
    except EXPECTED_ERRORS as exc:
        LOGGER.error(str(exc))
        return 2
    except Exception as exc:  # pragma: no cover - safeguard for unexpected issues.
        LOGGER.exception("Unexpected error during report: %s", exc)
        return 3
    return 0


def run_setup_command(args: argparse.Namespace) -> int:
    configure_logging("WARNING")
    try:
        run_setup(resolve_config_path(args.config), force=args.force)
    except (OSError, ValueError) as exc:
        LOGGER.error(str(exc))
        return 2
    return 0


def run_export(args: argparse.Namespace) -> int:
    configure_logging(args.log_level, args.log_format, args.log_file)
    try:
        config = load_app_config(resolve_config_path(args.config))
        with AverageStore(resolve_db_path(args.db_path)) as store:
            csv_path = resolve_csv_path(args.csv_path)
            export_averages(store, config.crypto_values, csv_path, date.today())
        print(f"✅ Exported today's averages to {csv_path}")
    except EXPECTED_ERRORS as exc:
        LOGGER.error(str(exc))
        return 2
    except Exception as exc:  # pragma: no cover - safeguard for unexpected issues.
        LOGGER.exception("Unexpected error during export: %s", exc)
        return 3
    return 0


def run_sweep(args: argparse.Namespace) -> int:
    configure_logging(args.log_level, args.log_format, args.log_file)
    try:
        with AverageStore(resolve_db_path(args.db_path)) as store:
            removed = store.sweep()
        print(f"🧹 Removed {removed} expired entries.")
    except EXPECTED_ERRORS as exc:
        LOGGER.error(str(exc))
        return 2
    return 0


def run_store_credentials(args: argparse.Namespace) -> int:
    configure_logging("WARNING")
    value = args.value or os.getenv(API_KEY_ENV_VARS[args.name])
    if not value:
        value = getpass.getpass(f"Enter {args.name}: ")
    try:
        store_api_key(args.name, value, service_name=args.service_name)
    except (RuntimeError, ValueError) as exc:
        LOGGER.error(str(exc))
        return 2
    print(f"✅ Stored {args.name} in keychain for service '{args.service_name}'.")
    return 0


def configure_logging(
    level: str, log_format: str = "text", log_file: str | None = None
) -> None:
    """Configure logging with sanitization and proper formatting."""
    setup_logging(
        level=level,
        sanitize=True,
        structured=log_format == "json",
        log_file=log_file,
    )


def resolve_config_path(config: str | None) -> Path:
    return Path(config).expanduser() if config else default_config_path()


def resolve_db_path(db_path: str | None) -> Path:
    return Path(db_path).expanduser() if db_path else default_db_path()


def resolve_csv_path(csv_path: str | None) -> Path:
    return Path(csv_path).expanduser() if csv_path else default_csv_path()


def build_aggregator(
    config: AppConfig, transport: RetryTransport | None = None
) -> PortfolioAggregator:
    transport = transport or RetryTransport(
        timeout=config.http_timeout_sec, retries=config.http_retries
    )
    eth_client = EthClient(
        config.eth_rpc_url,
        config.eth_wallet_address,
        transport,
        api_key=config.path_api_key,
        service_id=config.eth_service_id,
    )
    pokt_client = PoktClient(
        config.path_api_url,
        config.path_api_key,
        config.pokt_wallet_address,
        transport,
        probes=config.pokt_probes,
    )
    cmc_client = CmcClient(config.cmc_api_key, config.convert_currencies, transport)
    return PortfolioAggregator(
        eth_client,
        pokt_client,
        cmc_client,
        config.crypto_values,
        batch_eth=config.eth_batch_requests,
    )


if __name__ == "__main__":
    raise SystemExit(main())
