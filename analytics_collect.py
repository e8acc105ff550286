#!/usr/bin/env python3
"""
Application Analytics - Usage Exporter
Exports per-application usage metrics for every application a customer owns.

For each application the exporter fetches users, groups, threads and
messages, folds them into a fixed set of counters and writes one CSV row.
Applications are processed one at a time; the four fetches of a single
application run concurrently. Any failure aborts the whole run so that a
partial export never passes for a complete one.

Usage:
    # Set credentials (secret MUST be an env var or come from .env)
    export CUSTOMER_ID="your-customer-id"
    export CUSTOMER_SECRET="your-customer-secret"

    # Run exporter
    python analytics_collect.py --output-file data.csv

    # Also write JSON next to the CSV
    python analytics_collect.py --output-file data.csv --json

    # Print a sample config file
    python analytics_collect.py --generate-config > analytics-config.yaml
"""
import argparse
import logging
import os
import sys
import threading
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, List, Optional, Tuple

from rich.console import Console
from rich.table import Table

from lib.auth import issue_application_token, issue_tenant_token
from lib.client import AnalyticsAPIClient, PageReporter
from lib.config import AnalyticsConfig, generate_sample_config, load_config, validate_config
from lib.constants import (
    COLUMN_ID,
    COLUMN_NAME,
    DEFAULT_FETCH_WORKERS,
    DEFAULT_RETRY_ATTEMPTS,
    EXCLUDED_APPLICATION_IDS,
    METRIC_NAMES,
)
from lib.metrics import aggregate_application_metrics
from lib.models import (
    Application,
    ApplicationSummary,
    GroupRecord,
    MessageRecord,
    ThreadRecord,
    UserRecord,
)
from lib.utils import (
    AnalyticsError,
    ConfigError,
    ProgressCallback,
    ProgressTracker,
    log_progress,
    setup_logging,
    write_csv,
    write_json,
)

logger = logging.getLogger(__name__)

Resources = Tuple[List[UserRecord], List[GroupRecord], List[ThreadRecord], List[MessageRecord]]


# =============================================================================
# Resource Fetching
# =============================================================================

def fetch_application_resources(
    client: AnalyticsAPIClient,
    token: str,
    report: Optional[PageReporter] = None,
    workers: int = DEFAULT_FETCH_WORKERS,
) -> Resources:
    """
    Fetch users, groups, threads and messages for one application concurrently.

    Returns as soon as all four complete. The first failure cancels whatever
    has not started yet, tells the running fetches to stop before their next
    request and propagates.
    """
    tasks: Dict[str, Callable[..., List[Any]]] = {
        'users': client.get_users,
        'groups': client.get_groups,
        'threads': client.get_threads,
        'messages': client.get_messages,
    }
    results: Dict[str, List[Any]] = {}
    cancel = threading.Event()

    executor = ThreadPoolExecutor(max_workers=workers)
    try:
        futures = {
            executor.submit(fetch, token, report, cancel): name
            for name, fetch in tasks.items()
        }
        for future in as_completed(futures):
            results[futures[future]] = future.result()
    except BaseException:
        cancel.set()
        raise
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    return results['users'], results['groups'], results['threads'], results['messages']


def generate_application_analytics(
    client: AnalyticsAPIClient,
    application: Application,
    report: Optional[PageReporter] = None,
) -> ApplicationSummary:
    """Mint one application token, fetch everything and reduce it to metrics."""
    token = issue_application_token(application.id, application.secret)
    users, groups, threads, messages = fetch_application_resources(client, token, report)
    metrics = aggregate_application_metrics(users, groups, threads, messages)
    return ApplicationSummary(id=application.id, name=application.name, metrics=metrics)


# =============================================================================
# Run Orchestration
# =============================================================================

def collect_analytics(
    client: AnalyticsAPIClient,
    customer_id: str,
    customer_secret: str,
    progress: ProgressCallback = log_progress,
    excluded_ids=EXCLUDED_APPLICATION_IDS,
    on_skip: Optional[Callable[[str], None]] = None,
    on_complete: Optional[Callable[[ApplicationSummary], None]] = None,
) -> List[ApplicationSummary]:
    """
    Produce one summary per application, in the order the API lists them.

    ``on_skip`` receives the id of each excluded application and
    ``on_complete`` each finished summary.

    Raises:
        AnalyticsError: On the first failure of any kind; nothing is skipped
    """
    applications = client.list_applications(
        lambda: issue_tenant_token(customer_id, customer_secret)
    )
    total = len(applications)
    logger.info(f"Found {total} applications")

    summaries: List[ApplicationSummary] = []
    for idx, raw in enumerate(applications, start=1):
        app_id = raw.get('id')
        if isinstance(app_id, str) and app_id in excluded_ids:
            logger.debug(f"Skipping excluded application {app_id}")
            if on_skip:
                on_skip(app_id)
            continue

        application = Application.from_dict(raw)

        def report(message: str, _idx: int = idx) -> None:
            progress(_idx, total, message)

        report(f"Generating analytics for app {application.name} {application.id}")
        try:
            summary = generate_application_analytics(client, application, report)
        except AnalyticsError:
            logger.error(f"Failed to generate analytics for application with ID {application.id}")
            raise
        summaries.append(summary)
        if on_complete:
            on_complete(summary)

    return summaries


def output_columns(rows: List[Dict[str, Any]]) -> List[str]:
    """Column order of the first row, or the fixed schema when there are no rows."""
    if rows:
        return list(rows[0].keys())
    return [COLUMN_ID, COLUMN_NAME, *METRIC_NAMES]


def build_rows(summaries: List[ApplicationSummary]) -> List['OrderedDict[str, Any]']:
    """Flatten summaries into ordered CSV rows."""
    rows = []
    for summary in summaries:
        row: 'OrderedDict[str, Any]' = OrderedDict()
        row[COLUMN_ID] = summary.id
        row[COLUMN_NAME] = summary.name
        row.update(summary.metrics.to_row())
        rows.append(row)
    return rows


def write_analytics_csv(rows: List[Dict[str, Any]], filepath: str) -> None:
    """Write rows with the header taken from the first row."""
    write_csv(rows, filepath, fieldnames=output_columns(rows))


def json_output_path(csv_path: str) -> str:
    root, _ = os.path.splitext(csv_path)
    return f"{root}.json"


def print_analytics_summary(summaries: List[ApplicationSummary], console: Optional[Console] = None):
    """Print per-application headline counts and their totals as a rich table."""
    console = console or Console()
    table = Table(title="Application Analytics Summary")
    table.add_column("Application", style="cyan")
    table.add_column("Users", justify="right")
    table.add_column("Threads", justify="right")
    table.add_column("Messages", justify="right")
    table.add_column("Groups", justify="right")

    totals = [0, 0, 0, 0]
    for summary in summaries:
        m = summary.metrics
        counts = [m.total_users, m.total_threads, m.total_messages, m.total_groups]
        table.add_row(summary.name, *(str(c) for c in counts))
        totals = [t + c for t, c in zip(totals, counts)]

    table.add_section()
    table.add_row("TOTAL", *(str(t) for t in totals), style="bold")
    console.print()
    console.print(table)


# =============================================================================
# Main Entry Point
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Application Analytics - Usage Exporter',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Using environment variables (secret MUST be env var or .env)
    export CUSTOMER_ID="your-customer-id"
    export CUSTOMER_SECRET="your-customer-secret"
    python analytics_collect.py --output-file data.csv

    # Use a config file
    python analytics_collect.py --config analytics-config.yaml

Security Note:
    The customer secret must be provided via the CUSTOMER_SECRET environment
    variable (or a .env file) to avoid exposing it in shell history or
    process listings.
        """
    )

    parser.add_argument('--output-file', '--outputFile', dest='output_file',
                        help='CSV file to write (or set ANALYTICS_OUTPUT_FILE env var)')
    parser.add_argument('--customer-id',
                        help='Customer ID (or set CUSTOMER_ID env var)')
    # Customer secret is env-var only (no CLI arg to avoid shell history exposure)
    parser.add_argument('--config',
                        help='YAML config file (default: ./analytics-config.yaml if present)')
    parser.add_argument('--api-url',
                        help='API base URL (or set ANALYTICS_API_URL env var)')
    parser.add_argument('--timeout', type=float,
                        help='Per-request timeout in seconds')
    parser.add_argument('--json', action='store_true', default=None,
                        help='Also write the rows as JSON next to the CSV')
    parser.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level (default: INFO)')
    parser.add_argument('--log-dir',
                        help='Also write logs to a file in this directory')
    parser.add_argument('--no-progress', action='store_true',
                        help='Disable the interactive progress display')
    parser.add_argument('--generate-config', action='store_true',
                        help='Print a sample config file and exit')
    return parser


def run(config: AnalyticsConfig, show_progress: bool = True) -> List[ApplicationSummary]:
    """Collect analytics and write every requested output."""
    with AnalyticsAPIClient(
        base_url=config.api_url,
        timeout=config.timeout,
        retry_attempts=DEFAULT_RETRY_ATTEMPTS,
        retry_wait=config.retry_wait,
    ) as client:
        with ProgressTracker("Application Analytics", show_progress=show_progress) as tracker:
            summaries = collect_analytics(
                client,
                config.customer_id,
                config.customer_secret,
                progress=tracker,
                on_skip=tracker.mark_skipped,
                on_complete=tracker.mark_processed,
            )

            rows = build_rows(summaries)
            write_analytics_csv(rows, config.output_file)
            tracker.rows_written = len(rows)
            if config.json_output:
                write_json(rows, json_output_path(config.output_file))
    return summaries


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.generate_config:
        print(generate_sample_config())
        return 0

    setup_logging(args.log_level or 'INFO')

    try:
        config = load_config(args)
        validate_config(config)
    except ConfigError as e:
        print("⛔️ Could not proceed")
        print(f"    {e}")
        if '--output-file' in getattr(e, 'missing', []):
            print("      Example: python analytics_collect.py --output-file=data.csv")
        print("\nRun with --help for more information.")
        return 1

    setup_logging(config.log_level, config.log_dir)
    print(f"Customer: {config.customer_id}")
    print(f"Output:   {config.output_file}\n")

    try:
        summaries = run(config, show_progress=not args.no_progress)
    except AnalyticsError as e:
        logger.error(f"{type(e).__name__}: {e}")
        print(f"⛔️ Analytics export failed: {e}")
        return 1

    print_analytics_summary(summaries)
    print("✅ CSV file written")
    return 0


if __name__ == '__main__':
    sys.exit(main())
