"""
Role assignment usage counting.

Only assignments made directly on the subscription scope count against the
subscription quota. Listings also return assignments inherited from
management groups and assignments on resource groups and resources, so
every retrieval path goes through filter_subscription_scope.
"""
import logging
from typing import Iterable, List, Optional

from .constants import subscription_scope
from .models import RoleAssignmentRecord

logger = logging.getLogger(__name__)


class UsageCountError(Exception):
    """
    Raised when the role assignment count for a subscription cannot be
    determined. Never replaced by a guessed count.
    """
    def __init__(self, subscription_id: str, message: str, original_error: Optional[Exception] = None):
        self.subscription_id = subscription_id
        self.original_error = original_error
        super().__init__(message)


def filter_subscription_scope(
    records: Iterable[RoleAssignmentRecord],
    subscription_id: str
) -> List[RoleAssignmentRecord]:
    """Keep records whose scope is exactly the subscription root scope."""
    scope = subscription_scope(subscription_id)
    return [record for record in records if record.scope == scope]


def count_role_assignments(client, subscription_id: str) -> int:
    """
    Count role assignments made directly at subscription scope.

    Raises:
        UsageCountError: If the query fails or returns malformed data
    """
    if not subscription_id:
        raise UsageCountError(subscription_id, "Subscription ID is required")

    try:
        records = client.query_role_assignments(subscription_id)
        if records is None:
            raise ValueError("Role assignment query returned no result")
        records = list(records)
        direct = filter_subscription_scope(records, subscription_id)
    except UsageCountError:
        raise
    except Exception as e:
        raise UsageCountError(
            subscription_id,
            str(e) or type(e).__name__,
            original_error=e
        ) from e

    excluded = len(records) - len(direct)
    logger.debug(
        f"Subscription {subscription_id}: {len(records)} assignment(s) returned, "
        f"{excluded} excluded as inherited or child scope, {len(direct)} counted"
    )
    return len(direct)
