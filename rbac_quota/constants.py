"""
Constants for the role assignment quota report.

This module defines all magic strings and numbers used across the codebase
to prevent typos, ensure consistency, and make maintenance easier.
"""

# =============================================================================
# Quota Defaults
# =============================================================================

# Azure's documented per-subscription role assignment limit. Used whenever
# the usage-metrics endpoint cannot be read.
DEFAULT_QUOTA_LIMIT = 2000

# Usage at or above NEAR_LIMIT_NUMERATOR / NEAR_LIMIT_DENOMINATOR of the
# limit is reported as near the limit (90%).
NEAR_LIMIT_NUMERATOR = 9
NEAR_LIMIT_DENOMINATOR = 10

# =============================================================================
# Default Configuration Values
# =============================================================================

DEFAULT_PARALLEL_WORKERS = 4
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_TIMEOUT_SECONDS = 30
DEFAULT_LOG_LEVEL = "INFO"

# =============================================================================
# Azure Endpoints
# =============================================================================

ARM_ENDPOINT = "https://management.azure.com"
ARM_SCOPE = "https://management.azure.com/.default"

USAGE_METRICS_API_VERSION = "2019-08-01-preview"
USAGE_METRICS_URL = (
    ARM_ENDPOINT
    + "/subscriptions/{subscription_id}/providers/Microsoft.Authorization"
    + "/roleAssignmentsUsageMetrics?api-version=" + USAGE_METRICS_API_VERSION
)
USAGE_METRICS_LIMIT_FIELD = "roleAssignmentsLimit"

# =============================================================================
# Subscriptions & Scopes
# =============================================================================

SUBSCRIPTION_STATE_ENABLED = "Enabled"
SUBSCRIPTION_SCOPE_PREFIX = "/subscriptions/"

# Resource Graph table and type holding role assignments
GRAPH_AUTHORIZATION_TABLE = "authorizationresources"
GRAPH_ROLE_ASSIGNMENT_TYPE = "microsoft.authorization/roleassignments"
GRAPH_PAGE_SIZE = 1000

# =============================================================================
# Usage Sources
# =============================================================================

USAGE_SOURCE_GRAPH = "graph"
USAGE_SOURCE_AUTHORIZATION = "authorization"
USAGE_SOURCES = (USAGE_SOURCE_GRAPH, USAGE_SOURCE_AUTHORIZATION)


def subscription_scope(subscription_id: str) -> str:
    """Return the canonical root scope for a subscription."""
    return f"{SUBSCRIPTION_SCOPE_PREFIX}{subscription_id}"
