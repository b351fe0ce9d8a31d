"""
Data models for the role assignment quota report.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .constants import SUBSCRIPTION_STATE_ENABLED


class QuotaStatus(str, Enum):
    """Status of a subscription's role assignment usage."""
    OK = "ok"
    NEAR_LIMIT = "near_limit"
    AT_OR_OVER_LIMIT = "at_or_over_limit"
    ZERO_COUNT_SUSPECT = "zero_count_suspect"
    ERROR = "error"


@dataclass(frozen=True)
class Subscription:
    """
    Azure subscription as seen by the caller.
    """
    id: str
    name: Optional[str] = None
    state: str = SUBSCRIPTION_STATE_ENABLED

    @property
    def is_enabled(self) -> bool:
        return (self.state or "").lower() == SUBSCRIPTION_STATE_ENABLED.lower()

    @property
    def display_name(self) -> str:
        """Name and ID for output, or just the ID when the name is unknown."""
        if self.name:
            return f"{self.name} ({self.id})"
        return self.id


@dataclass(frozen=True)
class RoleAssignmentRecord:
    """
    A single role assignment returned by a listing or graph query.
    """
    scope: str
    principal_id: str = ""
    role_definition_name: str = ""
    principal_display_name: str = ""
    role_definition_id: str = ""
    principal_type: str = ""


@dataclass(frozen=True)
class SubscriptionReport:
    """
    Result of checking one subscription.

    count and limit are None when status is ERROR; error_message is set if
    and only if status is ERROR.
    """
    subscription: Subscription
    status: QuotaStatus
    count: Optional[int] = None
    limit: Optional[int] = None
    error_message: Optional[str] = None

    def __post_init__(self):
        if (self.status == QuotaStatus.ERROR) != (self.error_message is not None):
            raise ValueError(
                f"error_message must be set only for status=error (got status={self.status.value})"
            )
        if self.status == QuotaStatus.ERROR and (self.count is not None or self.limit is not None):
            raise ValueError("count and limit must be absent for status=error")


@dataclass
class ReportSummary:
    """Aggregated status counts for a report run."""
    total: int = 0
    ok: int = 0
    near_limit: int = 0
    at_or_over_limit: int = 0
    zero_count_suspect: int = 0
    error: int = 0
    skipped: List[str] = field(default_factory=list)

@dataclass
class QuotaReport:
    """Ordered per-subscription reports plus the ids that were skipped."""
    reports: List[SubscriptionReport] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def summary(self) -> ReportSummary:
        return summarize(self.reports, self.skipped)


def summarize(reports: List[SubscriptionReport], skipped: Optional[List[str]] = None) -> ReportSummary:
    """
    Aggregate subscription reports into status counts.
    """
    summary = ReportSummary(total=len(reports), skipped=list(skipped or []))

    for report in reports:
        current = getattr(summary, report.status.value)
        setattr(summary, report.status.value, current + 1)

    return summary
