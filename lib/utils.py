"""
Utility functions for the application analytics exporter.

Logging Level Standards:
------------------------
- ERROR: Failures that abort the whole run
         "Failed to generate analytics for application {id}: {e}"
- WARNING: Retried page requests, pagination totals that do not add up
           "Retrying GET /v1/users once after: HTTP 502"
- INFO: Progress messages, resource counts
        "Fetched 120 users of 120"
        "Generating analytics for app Acme"
- DEBUG: Request parameters and per-page details
         "GET /v1/messages params={'limit': 1500}"
"""
import csv
import json
import logging
import os
import re
import sys
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, TypeVar

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

# Type checking imports (not imported at runtime)
if TYPE_CHECKING:
    from rich.progress import TaskID

logger = logging.getLogger(__name__)

# Type variable for generic function decorator
F = TypeVar('F', bound=Callable[..., Any])

# Called as (current, total, message)
ProgressCallback = Callable[[int, int, str], None]


# =============================================================================
# Errors
# =============================================================================

class AnalyticsError(Exception):
    """Base class for every failure that aborts an analytics run."""


class ConfigError(AnalyticsError):
    """Required configuration (credentials, output path) is missing or invalid."""

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        self.missing = missing or []
        super().__init__(message)


class TransportError(AnalyticsError):
    """A request failed on the network or returned a non-200 status.

    This is the only error type the page fetcher retries.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class AuthError(TransportError):
    """The API rejected our credentials (HTTP 401/403).

    Treated like any other transport failure, including the single retry,
    since a freshly minted token may be accepted where a stale one was not.
    """


class MalformedResponseError(AnalyticsError):
    """A response body did not have the expected shape. Never retried."""


class InvalidApplicationError(AnalyticsError):
    """An application record lacks a string id, name or secret."""


class FetchCancelledError(AnalyticsError):
    """A fetch stopped early because a sibling fetch of the same application failed."""


class WriteError(AnalyticsError):
    """The output file could not be written."""

    def __init__(self, message: str, path: str):
        self.path = path
        super().__init__(message)


# HTTP status codes that indicate auth/permission issues
AUTH_STATUS_CODES = {401, 403}


def transport_error_for_status(status_code: int, reason: str, context: str) -> TransportError:
    """Build the TransportError (or AuthError) matching an HTTP status."""
    message = f"{context} failed: {status_code}: {reason}"
    if status_code in AUTH_STATUS_CODES:
        return AuthError(message, status_code=status_code)
    return TransportError(message, status_code=status_code)


# =============================================================================
# Retry
# =============================================================================

def retry_with_backoff(
    max_attempts: int = 2,
    min_wait: float = 1,
    max_wait: float = 60,
    exceptions: tuple = (TransportError,)
) -> Callable[[F], F]:
    """
    Decorator for retrying functions with exponential backoff.

    Args:
        max_attempts: Total number of attempts including the first (default: 2)
        min_wait: Minimum wait time between retries in seconds (default: 1)
        max_wait: Maximum wait time between retries in seconds (default: 60)
        exceptions: Tuple of exception types to retry on (default: TransportError)

    Returns:
        Decorated function with retry logic; the last exception is re-raised
        once attempts are exhausted.

    Example:
        @retry_with_backoff(max_attempts=2)
        def get_page():
            ...
    """
    def decorator(func: F) -> F:
        return retry(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
            retry=retry_if_exception_type(exceptions),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True
        )(func)
    return decorator


# =============================================================================
# Progress Tracking
# =============================================================================

def format_progress(current: int, total: int) -> str:
    """Render a progress prefix such as ``[50.0%][1 of 2]``."""
    percent = round(1000 * current / total) / 10 if total else 0.0
    return f"[{percent}%][{current} of {total}]"


def log_progress(current: int, total: int, message: str) -> None:
    """ProgressCallback that writes plain log lines."""
    logger.info(f"{format_progress(current, total)} {message}")


class ProgressTracker:
    """
    Progress tracker for analytics runs with rich display.

    The tracker is itself a ProgressCallback, so it can be handed straight to
    the orchestrator. Falls back to plain log lines if stdout is not a TTY
    (e.g., when piping output).

    Usage:
        with ProgressTracker("Application Analytics") as tracker:
            summaries = collect_analytics(client, config, progress=tracker)
    """

    def __init__(self, title: str = "Application Analytics", show_progress: bool = True):
        self.title = title
        self.show_progress = show_progress and sys.stdout.isatty()

        # Counters
        self.current = 0
        self.total = 0
        self.last_message = ""
        self.processed = 0
        self.skipped = 0
        self.rows_written = 0

        # Rich components (typed for IDE support)
        self._console: Optional[Console] = None
        self._progress: Optional[Progress] = None
        self._main_task: Optional["TaskID"] = None
        self._use_rich = self.show_progress

    def __enter__(self):
        if self._use_rich:
            self._console = Console()
            self._progress = Progress(
                SpinnerColumn(),
                TextColumn("[bold blue]{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                console=self._console,
                transient=False,
            )
            self._main_task = self._progress.add_task(self.title, total=None)
            self._progress.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._use_rich:
            assert self._progress is not None
            assert self._console is not None
            self._progress.stop()
            self._console.print()
            self._print_summary_rich()
        else:
            self._print_summary_plain()
        return False

    def __call__(self, current: int, total: int, message: str) -> None:
        self.current = current
        self.total = total
        self.last_message = message
        if self._use_rich:
            assert self._progress is not None
            assert self._main_task is not None
            self._progress.update(
                self._main_task,
                total=total or None,
                completed=current,
                description=f"{self.title} {message.strip()}"
            )
        else:
            log_progress(current, total, message)

    def mark_processed(self, _summary: Any = None) -> None:
        self.processed += 1

    def mark_skipped(self, _app_id: Any = None) -> None:
        self.skipped += 1

    def _print_summary_rich(self):
        """Print a formatted summary using rich."""
        table = Table(title=f"{self.title} Summary", show_header=False)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("Applications processed", str(self.processed))
        table.add_row("Applications skipped", str(self.skipped))
        table.add_row("Rows written", str(self.rows_written))

        assert self._console is not None
        self._console.print(Panel(table))

    def _print_summary_plain(self):
        """Print a plain text summary."""
        print(f"\n{'='*60}")
        print(f"{self.title} Complete")
        print(f"{'='*60}")
        print(f"  Applications processed:  {self.processed}")
        print(f"  Applications skipped:    {self.skipped}")
        print(f"  Rows written:            {self.rows_written}")
        print()


# =============================================================================
# Logging
# =============================================================================

# Bearer headers and JWT-shaped strings
_LOG_REDACT_PATTERNS = [
    (re.compile(r'(Bearer\s+)[A-Za-z0-9._~+/=-]+'), r'\1[REDACTED]'),
    (re.compile(r'\beyJ[A-Za-z0-9_-]*\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]*'), '[REDACTED-JWT]'),
]


def redact_log_message(message: str) -> str:
    """Redact credentials from a log message."""
    if not message:
        return message

    for pattern, replacement in _LOG_REDACT_PATTERNS:
        message = pattern.sub(replacement, message)

    return message


class RedactingFilter(logging.Filter):
    """
    Logging filter that keeps signed tokens out of log output.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """Redact credentials from the log record message."""
        if record.msg:
            record.msg = redact_log_message(str(record.msg))
        if record.args:
            record.args = tuple(
                redact_log_message(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )
        return True


def setup_logging(level: str = "INFO", output_dir: Optional[str] = None) -> logging.Logger:
    """
    Setup logging configuration with console and optional file output.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        output_dir: If provided, also write logs to a file in this directory

    Returns:
        Logger instance
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Clear existing handlers to avoid duplicates
    root_logger.handlers.clear()

    # Console handler (stderr)
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(RedactingFilter())
    root_logger.addHandler(console_handler)

    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
        timestamp = datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S')
        log_file = os.path.join(output_dir, f"analytics_log_{timestamp}.log")

        file_handler = logging.FileHandler(log_file, mode='w')
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(RedactingFilter())
        root_logger.addHandler(file_handler)

        root_logger.info(f"Logging to: {log_file}")

    return logging.getLogger(__name__)


# =============================================================================
# Output Writers
# =============================================================================

def write_json(data: Any, filepath: str) -> None:
    """Write data to JSON file with secure permissions."""
    try:
        # Owner read/write only
        fd = os.open(filepath, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, 'w') as f:
            json.dump(data, f, indent=2, default=str)
    except OSError as e:
        raise WriteError(f"Failed to write {filepath}: {e}", filepath) from e
    print(f"Wrote {filepath}")


def write_csv(data: List[Dict], filepath: str, fieldnames: Optional[List[str]] = None) -> None:
    """Write data to CSV file.

    Columns come from ``fieldnames`` or, failing that, the key order of the
    first row. Rows end with ``\\n`` so the file has a single trailing newline.
    """
    if not fieldnames:
        if not data:
            raise ValueError("fieldnames are required when there is no data")
        fieldnames = list(data[0].keys())

    try:
        with open(filepath, 'w', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames, lineterminator='\n')
            writer.writeheader()
            writer.writerows(data)
    except OSError as e:
        raise WriteError(f"Failed to write {filepath}: {e}", filepath) from e
    print(f"Wrote {filepath}")
