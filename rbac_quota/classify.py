"""
Threshold classification of role assignment usage.
"""
from .constants import NEAR_LIMIT_DENOMINATOR, NEAR_LIMIT_NUMERATOR
from .models import QuotaStatus


def classify(count: int, limit: int) -> QuotaStatus:
    """
    Map a role assignment count and quota limit to a status.

    Rules are applied in order:
    1. A count of zero is suspicious (usually missing read access), not "ok".
    2. count >= limit is at or over the limit.
    3. count >= 90% of limit is near the limit. Compared with integer
       cross-multiplication so no rounding is involved.
    4. Anything else is ok.

    Raises:
        ValueError: If count is negative or limit is not positive
    """
    if count < 0:
        raise ValueError(f"count must be non-negative, got {count}")
    if limit <= 0:
        raise ValueError(f"limit must be positive, got {limit}")

    if count == 0:
        return QuotaStatus.ZERO_COUNT_SUSPECT
    if count >= limit:
        return QuotaStatus.AT_OR_OVER_LIMIT
    if count * NEAR_LIMIT_DENOMINATOR >= limit * NEAR_LIMIT_NUMERATOR:
        return QuotaStatus.NEAR_LIMIT
    return QuotaStatus.OK
