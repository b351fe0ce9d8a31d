"""
Role assignment quota report shared library.
"""
from . import constants
from .classify import classify
from .constants import DEFAULT_PARALLEL_WORKERS, DEFAULT_QUOTA_LIMIT, DEFAULT_TIMEOUT_SECONDS
from .models import (
    QuotaReport,
    QuotaStatus,
    ReportSummary,
    RoleAssignmentRecord,
    Subscription,
    SubscriptionReport,
    summarize,
)
from .quota import resolve_quota_limit
from .report import (
    NoSubscriptionsError,
    build_report,
    check_subscription,
    parse_subscription_selector,
    resolve_subscriptions,
)
from .usage import UsageCountError, count_role_assignments, filter_subscription_scope
from .utils import AuthError, print_report, setup_logging

__all__ = [
    # Constants
    'constants',
    'DEFAULT_PARALLEL_WORKERS',
    'DEFAULT_QUOTA_LIMIT',
    'DEFAULT_TIMEOUT_SECONDS',
    # Models
    'QuotaReport',
    'QuotaStatus',
    'ReportSummary',
    'RoleAssignmentRecord',
    'Subscription',
    'SubscriptionReport',
    'summarize',
    # Core
    'classify',
    'resolve_quota_limit',
    'count_role_assignments',
    'filter_subscription_scope',
    'UsageCountError',
    'parse_subscription_selector',
    'resolve_subscriptions',
    'check_subscription',
    'build_report',
    'NoSubscriptionsError',
    # Utils
    'AuthError',
    'print_report',
    'setup_logging',
]
