"""
Report aggregation across subscriptions.

Resolves the subscriptions to check, looks up the quota and usage of each
one, and returns one SubscriptionReport per subscription in resolution
order. A failure in one subscription is recorded in its report and never
stops the others.
"""
import logging
import re
from typing import List, Optional, Sequence, Tuple

from .classify import classify
from .constants import DEFAULT_PARALLEL_WORKERS, DEFAULT_QUOTA_LIMIT
from .models import QuotaReport, QuotaStatus, Subscription, SubscriptionReport
from .quota import resolve_quota_limit
from .usage import UsageCountError, count_role_assignments
from .utils import AuthError, ProgressTracker, check_and_raise_auth_error, parallel_map

logger = logging.getLogger(__name__)

_SELECTOR_SPLIT = re.compile(r'[,\s]+')


class NoSubscriptionsError(Exception):
    """Raised when no subscription could be resolved for the run."""


def parse_subscription_selector(selector: Optional[str]) -> List[str]:
    """
    Split a comma- and/or whitespace-separated list of subscription IDs.

    Empty tokens are dropped and duplicates removed, keeping first-seen order.
    """
    if not selector:
        return []

    ids: List[str] = []
    for token in _SELECTOR_SPLIT.split(selector):
        token = token.strip()
        if token and token not in ids:
            ids.append(token)
    return ids


def resolve_subscriptions(
    client,
    subscription_ids: Optional[Sequence[str]] = None
) -> Tuple[List[Subscription], List[str]]:
    """
    Resolve the subscriptions to check.

    Without explicit IDs, every enabled subscription visible to the client
    is returned in listing order. With explicit IDs, each one is looked up;
    IDs that cannot be resolved are logged and returned as skipped.

    Returns:
        (subscriptions, skipped_ids)

    Raises:
        AuthError: If listing subscriptions fails with an auth error
    """
    if not subscription_ids:
        try:
            all_subscriptions = client.list_subscriptions()
        except Exception as e:
            check_and_raise_auth_error(e, "list subscriptions")
            raise

        subscriptions = [s for s in all_subscriptions if s.is_enabled]
        disabled = len(all_subscriptions) - len(subscriptions)
        if disabled:
            logger.info(f"Skipping {disabled} subscription(s) that are not enabled")
        return subscriptions, []

    subscriptions = []
    skipped = []
    seen = set()
    for subscription_id in subscription_ids:
        try:
            subscription = client.get_subscription(subscription_id)
        except AuthError:
            raise
        except Exception as e:
            logger.warning(f"Failed to resolve subscription {subscription_id}, skipping: {e}")
            skipped.append(subscription_id)
            continue

        if subscription is None:
            logger.warning(f"Subscription {subscription_id} not found or not accessible, skipping")
            skipped.append(subscription_id)
            continue

        # Differently-cased selectors resolve to the same subscription
        if subscription.id.lower() in seen:
            logger.debug(f"Subscription {subscription_id} already selected as {subscription.id}")
            continue
        seen.add(subscription.id.lower())
        subscriptions.append(subscription)

    return subscriptions, skipped


def check_subscription(
    client,
    subscription: Subscription,
    default_limit: int = DEFAULT_QUOTA_LIMIT,
    timeout: Optional[float] = None,
    tracker: Optional[ProgressTracker] = None,
) -> SubscriptionReport:
    """
    Build the report for a single subscription.

    Quota lookup failures fall back to default_limit. Usage count failures
    produce a report with status=error.
    """
    if tracker:
        tracker.start_subscription(subscription.id, subscription.name or "")

    limit = resolve_quota_limit(client, subscription.id, default=default_limit, timeout=timeout)

    try:
        count = count_role_assignments(client, subscription.id)
        status = classify(count, limit)
    except UsageCountError as e:
        logger.warning(f"Failed to count role assignments for {subscription.display_name}: {e}")
        return SubscriptionReport(
            subscription=subscription,
            status=QuotaStatus.ERROR,
            error_message=str(e),
        )
    except Exception as e:
        logger.warning(f"Failed to check subscription {subscription.display_name}: {e}")
        return SubscriptionReport(
            subscription=subscription,
            status=QuotaStatus.ERROR,
            error_message=str(e) or type(e).__name__,
        )

    return SubscriptionReport(subscription=subscription, status=status, count=count, limit=limit)


def build_report(
    client,
    subscription_ids: Optional[Sequence[str]] = None,
    parallel_workers: int = DEFAULT_PARALLEL_WORKERS,
    default_limit: int = DEFAULT_QUOTA_LIMIT,
    timeout: Optional[float] = None,
    show_progress: bool = False,
) -> QuotaReport:
    """
    Check every resolved subscription and collect the reports.

    Reports are returned in the order the subscriptions were resolved,
    regardless of the order in which parallel checks complete.

    Raises:
        AuthError: If the client cannot authenticate
        NoSubscriptionsError: If no subscription could be resolved
    """
    subscriptions, skipped = resolve_subscriptions(client, subscription_ids)

    if not subscriptions:
        if subscription_ids:
            raise NoSubscriptionsError(
                f"None of the {len(subscription_ids)} requested subscription(s) could be resolved"
            )
        raise NoSubscriptionsError("No enabled subscriptions found. Check permissions.")

    logger.info(f"Found {len(subscriptions)} subscription(s) to check")

    with ProgressTracker("Role assignment quota", total_subscriptions=len(subscriptions),
                         show_progress=show_progress) as tracker:
        reports = parallel_map(
            lambda sub: check_subscription(client, sub, default_limit=default_limit,
                                           timeout=timeout, tracker=tracker),
            subscriptions,
            parallel_workers=parallel_workers,
            tracker=tracker,
        )

    return QuotaReport(reports=reports, skipped=skipped)
