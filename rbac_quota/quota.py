"""
Role assignment quota lookup.

The quota limit is advisory: when the usage-metrics endpoint cannot be read
the documented default is used, so a report is never lost to missing quota
metadata.
"""
import json
import logging
from typing import Optional

from .constants import DEFAULT_QUOTA_LIMIT, USAGE_METRICS_LIMIT_FIELD, USAGE_METRICS_URL

logger = logging.getLogger(__name__)


def usage_metrics_url(subscription_id: str) -> str:
    """URL of the role assignment usage-metrics endpoint for a subscription."""
    return USAGE_METRICS_URL.format(subscription_id=subscription_id)


def parse_quota_limit(body: str) -> int:
    """
    Extract the role assignment limit from a usage-metrics response body.

    Raises:
        ValueError: If the body is not JSON or the limit is missing,
            non-integer or not positive
    """
    data = json.loads(body)
    if not isinstance(data, dict):
        raise ValueError("Usage metrics response is not a JSON object")

    limit = data.get(USAGE_METRICS_LIMIT_FIELD)
    if limit is None:
        # Some API versions nest the values under "properties"
        limit = (data.get('properties') or {}).get(USAGE_METRICS_LIMIT_FIELD)

    if isinstance(limit, bool) or not isinstance(limit, (int, str)):
        raise ValueError(f"Unexpected {USAGE_METRICS_LIMIT_FIELD} value: {limit!r}")

    value = int(limit)
    if value <= 0:
        raise ValueError(f"{USAGE_METRICS_LIMIT_FIELD} must be positive, got {value}")
    return value


def resolve_quota_limit(
    client,
    subscription_id: str,
    default: int = DEFAULT_QUOTA_LIMIT,
    timeout: Optional[float] = None,
) -> int:
    """
    Get the maximum number of role assignments allowed in a subscription.

    Makes a single attempt. Any failure (transport error, non-success
    status, unparseable body) is logged and the default is returned.
    """
    if not subscription_id:
        logger.debug("Quota lookup called without a subscription ID, using default")
        return default

    try:
        result = client.authenticated_get(usage_metrics_url(subscription_id), timeout=timeout)
        if not result.ok:
            logger.debug(
                f"Quota lookup for {subscription_id} returned HTTP {result.status_code}, "
                f"using default {default}"
            )
            return default
        limit = parse_quota_limit(result.body)
    except Exception as e:
        logger.debug(f"Quota lookup for {subscription_id} failed, using default {default}: {e}")
        return default

    logger.debug(f"Quota limit for {subscription_id}: {limit}")
    return limit
