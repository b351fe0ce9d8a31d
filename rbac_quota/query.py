"""
Resource Graph (KQL) query construction for role assignment counts.

Subscription IDs are validated and escaped before they are placed in a
query string literal, so a malformed selector can never change the query.
"""
import re

from .constants import GRAPH_AUTHORIZATION_TABLE, GRAPH_ROLE_ASSIGNMENT_TYPE

SUBSCRIPTION_ID_PATTERN = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$',
    re.IGNORECASE
)


class QueryBuildError(ValueError):
    """Raised when a query cannot be built from the given input."""


def validate_subscription_id(subscription_id: str) -> str:
    """
    Check that subscription_id is a GUID and return it stripped.

    Raises:
        QueryBuildError: If the value is empty or not a GUID
    """
    value = (subscription_id or "").strip()
    if not SUBSCRIPTION_ID_PATTERN.match(value):
        raise QueryBuildError(f"Invalid subscription ID: {subscription_id!r}")
    return value


def escape_kql_string(value: str) -> str:
    """Escape a value for use inside a single-quoted KQL string literal."""
    return value.replace('\\', '\\\\').replace("'", "\\'")


def build_role_assignment_query(subscription_id: str) -> str:
    """
    Build the Resource Graph query listing role assignments for a subscription.

    Rows are projected to the fields needed for scope filtering; inherited
    and child-scope assignments are still returned and must be filtered by
    the caller.
    """
    literal = escape_kql_string(validate_subscription_id(subscription_id))
    return (
        f"{GRAPH_AUTHORIZATION_TABLE}"
        f" | where type =~ '{GRAPH_ROLE_ASSIGNMENT_TYPE}'"
        f" | where subscriptionId == '{literal}'"
        " | extend scope = tostring(properties.scope),"
        " principalId = tostring(properties.principalId),"
        " principalType = tostring(properties.principalType),"
        " roleDefinitionId = tostring(properties.roleDefinitionId)"
        " | project id, scope, principalId, principalType, roleDefinitionId"
        " | order by id asc"
    )
