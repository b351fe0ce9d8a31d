"""
Utility functions for the role assignment quota report.

Logging Level Standards:
------------------------
- ERROR: Failures that stop the whole run
         "Failed to list Azure subscriptions: {e}"
- WARNING: Per-subscription failures, skipped subscriptions
           "Subscription {id} could not be resolved, skipping"
           "Failed to count role assignments for {id}: {e}"
- INFO: Progress messages, counts
        "Found 3 subscription(s) to check"
- DEBUG: Query text, raw responses, fallbacks that don't affect the run
         "Quota lookup for {id} failed, using default: {e}"
"""
import logging
import sys
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Sequence, TypeVar

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .models import QuotaReport, QuotaStatus, ReportSummary, SubscriptionReport

# Type checking imports (not imported at runtime)
if TYPE_CHECKING:
    from rich.console import Console
    from rich.progress import Progress, TaskID

logger = logging.getLogger(__name__)

# Type variable for generic function decorator
F = TypeVar('F', bound=Callable[..., Any])
T = TypeVar('T')
R = TypeVar('R')


def retry_with_backoff(
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 60,
    exceptions: tuple = (Exception,)
) -> Callable[[F], F]:
    """
    Decorator for retrying functions with exponential backoff.

    Args:
        max_attempts: Maximum number of retry attempts (default: 3)
        min_wait: Minimum wait time between retries in seconds (default: 1)
        max_wait: Maximum wait time between retries in seconds (default: 60)
        exceptions: Tuple of exception types to retry on (default: all Exceptions)

    Returns:
        Decorated function with retry logic

    Example:
        @retry_with_backoff(max_attempts=5, exceptions=(ServiceRequestError,))
        def list_subscriptions():
            ...
    """
    def decorator(func: F) -> F:
        return retry(  # type: ignore[return-value]
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

class ProgressTracker:
    """
    Progress tracker for subscription checks with rich display.

    Falls back to a single plain status line if stderr is not a TTY
    (e.g., when piping output).

    Usage:
        with ProgressTracker("Role assignment quota", total_subscriptions=5) as tracker:
            for sub in subscriptions:
                tracker.start_subscription(sub.id, sub.name)
                ...
                tracker.complete_subscription()
    """

    def __init__(
        self,
        title: str,
        total_subscriptions: int = 0,
        show_progress: bool = True
    ):
        self.title = title
        self.total_subscriptions = total_subscriptions
        self.show_progress = show_progress

        # Counters
        self.completed_subscriptions = 0
        self.current_subscription = ""

        # Rich components (typed for IDE support)
        self._console: Optional["Console"] = None
        self._progress: Optional["Progress"] = None
        self._main_task: Optional["TaskID"] = None
        self._use_rich = show_progress and sys.stderr.isatty()

    def __enter__(self):
        if self._use_rich:
            from rich.console import Console
            from rich.progress import (
                BarColumn,
                MofNCompleteColumn,
                Progress,
                SpinnerColumn,
                TextColumn,
                TimeElapsedColumn,
            )
            self._console = Console(stderr=True)
            self._progress = Progress(
                SpinnerColumn(),
                TextColumn("[bold blue]{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                console=self._console,
                transient=True,
            )

            total = self.total_subscriptions or 1
            assert self._progress is not None  # Guaranteed by _use_rich check above
            self._main_task = self._progress.add_task(self.title, total=total)
            self._progress.start()
        elif self.show_progress:
            print(f"{self.title}: checking {self.total_subscriptions} subscription(s)", file=sys.stderr)

        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._use_rich:
            assert self._progress is not None
            self._progress.stop()
        return False

    def start_subscription(self, subscription_id: str, subscription_name: str = ""):
        """Mark the start of checking a subscription."""
        self.current_subscription = subscription_id
        display = f"{subscription_name} ({subscription_id})" if subscription_name else subscription_id
        if self._use_rich:
            assert self._progress is not None
            assert self._main_task is not None
            self._progress.update(self._main_task, description=f"{self.title}: {display}")

    def complete_subscription(self):
        """Mark a subscription as checked."""
        self.completed_subscriptions += 1
        if self._use_rich:
            assert self._progress is not None
            assert self._main_task is not None
            self._progress.update(self._main_task, advance=1)


# =============================================================================
# Authentication Errors
# =============================================================================

class AuthError(Exception):
    """
    Raised when Azure returns an auth error that should stop the run
    rather than being recorded against a single subscription.
    """
    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(message)


# Azure error status codes that indicate auth/permission issues
AZURE_AUTH_STATUS_CODES = {401, 403}


def is_auth_error(exc: Exception) -> bool:
    """
    Check if an exception represents an Azure authentication/authorization error.

    Detects HttpResponseError with a 401/403 status and
    ClientAuthenticationError / CredentialUnavailableError raised by
    azure-identity.
    """
    exc_type_name = type(exc).__name__

    if exc_type_name in ('ClientAuthenticationError', 'CredentialUnavailableError'):
        return True

    if exc_type_name == 'HttpResponseError':
        status_code = getattr(exc, 'status_code', None)
        if status_code in AZURE_AUTH_STATUS_CODES:
            return True
        error_msg = str(exc).lower()
        return 'authentication' in error_msg or 'authorization' in error_msg

    return False


def check_and_raise_auth_error(exc: Exception, context: str) -> None:
    """
    Check if exception is an auth error and raise AuthError if so.

    Call this in exception handlers before logging and continuing.

    Args:
        exc: The caught exception
        context: Description of what was being attempted (e.g., "list subscriptions")

    Raises:
        AuthError: If exc is an authentication/authorization error
    """
    if is_auth_error(exc):
        raise AuthError(
            f"Authentication/authorization error while trying to {context}: {exc}",
            original_error=exc
        ) from exc


# =============================================================================
# Parallel Execution
# =============================================================================

def parallel_map(
    func: Callable[[T], R],
    items: Sequence[T],
    parallel_workers: int = 1,
    tracker: Optional[ProgressTracker] = None,
) -> List[R]:
    """
    Apply func to every item, serially or on a bounded thread pool.

    Results are returned in input order regardless of completion order.
    func is expected to handle its own per-item failures; an exception that
    escapes it is re-raised here.

    Args:
        func: Callable applied to each item
        items: Items to process
        parallel_workers: Number of threads (1 = serial, >1 = parallel)
        tracker: Optional ProgressTracker, advanced once per item

    Returns:
        List of results, one per item, in the same order as items
    """
    results: List[Optional[R]] = [None] * len(items)

    if parallel_workers <= 1 or len(items) <= 1:
        for index, item in enumerate(items):
            results[index] = func(item)
            if tracker:
                tracker.complete_subscription()
        return results  # type: ignore[return-value]

    logger.info(f"Using parallel execution with {parallel_workers} threads")

    with ThreadPoolExecutor(max_workers=parallel_workers) as executor:
        futures = {
            executor.submit(func, item): index
            for index, item in enumerate(items)
        }

        for future in as_completed(futures):
            index = futures[future]
            results[index] = future.result()
            if tracker:
                tracker.complete_subscription()

    return results  # type: ignore[return-value]


# =============================================================================
# Logging
# =============================================================================

def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Setup logging configuration with console output on stderr.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)

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

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # The Azure SDK logs every HTTP request at INFO
    if numeric_level > logging.DEBUG:
        logging.getLogger('azure').setLevel(logging.WARNING)

    return logging.getLogger(__name__)


# =============================================================================
# Report Output
# =============================================================================

STATUS_MESSAGES = {
    'ok': "  OK: Within safe quota range.",
    'near_limit': "  WARNING: Usage is above 90% of the quota!",
    'at_or_over_limit': "  WARNING: Quota limit reached or exceeded!",
    'zero_count_suspect': (
        "  WARNING: No role assignments found - this may indicate an access issue "
        "or unusual configuration."
    ),
}


def format_subscription_report(report: SubscriptionReport) -> List[str]:
    """Render one subscription report as plain text lines."""
    lines = [f"Checking subscription: {report.subscription.display_name}"]

    if report.status == QuotaStatus.ERROR:
        lines.append("  ERROR: Error retrieving role assignment count.")
        lines.append(f"  Message: {report.error_message}")
        return lines

    lines.append(f"  Role assignments used: {report.count}")
    lines.append(f"  Current quota limit:   {report.limit}")
    lines.append(STATUS_MESSAGES[report.status.value])
    return lines


def format_summary_line(summary: ReportSummary) -> str:
    """Render the one-line run summary."""
    return (
        f"Checked {summary.total} subscription(s): "
        f"{summary.ok} ok, {summary.near_limit} near limit, "
        f"{summary.at_or_over_limit} at/over limit, {summary.zero_count_suspect} zero count, "
        f"{summary.error} error, {len(summary.skipped)} skipped"
    )


def print_report(quota_report: QuotaReport) -> None:
    """Print every subscription block followed by the summary line."""
    for subscription_id in quota_report.skipped:
        print(f"WARNING: Subscription {subscription_id} could not be resolved and was skipped.")
    if quota_report.skipped:
        print()

    for report in quota_report.reports:
        for line in format_subscription_report(report):
            print(line)
        print()

    print(format_summary_line(quota_report.summary))
