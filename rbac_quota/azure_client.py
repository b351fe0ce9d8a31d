"""
Authenticated Azure client used by the quota report.

Wraps the credential and the management SDK clients behind four calls:
list_subscriptions, get_subscription, authenticated_get and
query_role_assignments. The rest of the package only talks to this
interface, so tests substitute a fake object with the same methods.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests
from azure.core.exceptions import (
    ClientAuthenticationError,
    HttpResponseError,
    ResourceNotFoundError,
    ServiceRequestError,
)
from azure.identity import DefaultAzureCredential
from azure.mgmt.authorization import AuthorizationManagementClient
from azure.mgmt.resourcegraph import ResourceGraphClient
from azure.mgmt.resourcegraph.models import QueryRequest, QueryRequestOptions, ResultFormat
from azure.mgmt.subscription import SubscriptionClient

from .constants import (
    ARM_SCOPE,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_TIMEOUT_SECONDS,
    GRAPH_PAGE_SIZE,
    USAGE_SOURCE_AUTHORIZATION,
)
from .models import RoleAssignmentRecord, Subscription
from .query import build_role_assignment_query
from .utils import check_and_raise_auth_error, retry_with_backoff

logger = logging.getLogger(__name__)

# Status codes returned for subscriptions the caller cannot see
UNRESOLVABLE_STATUS_CODES = {403, 404}


@dataclass(frozen=True)
class HttpResult:
    """Status code and raw body of an authenticated GET."""
    status_code: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def get_credential():
    """Get Azure credential. In Cloud Shell, uses managed identity."""
    return DefaultAzureCredential()


def _to_subscription(sub) -> Subscription:
    state = sub.state
    # SDK models return an enum; older versions return plain strings
    state = getattr(state, 'value', state)
    return Subscription(id=sub.subscription_id, name=sub.display_name, state=str(state or ''))


class AzureCloudClient:
    """
    Azure client backed by Resource Graph for role assignment queries.
    """

    def __init__(self, credential, timeout: float = DEFAULT_TIMEOUT_SECONDS, session: Optional[requests.Session] = None):
        self.credential = credential
        self.timeout = timeout
        self._session = session or requests.Session()
        self._subscription_client = SubscriptionClient(credential)
        self._graph_client = ResourceGraphClient(credential)

    def _timeouts(self) -> Dict[str, Any]:
        """Per-operation timeout kwargs understood by azure-core transports."""
        return {'connection_timeout': self.timeout, 'read_timeout': self.timeout}

    @retry_with_backoff(max_attempts=DEFAULT_RETRY_ATTEMPTS, exceptions=(ServiceRequestError,))
    def list_subscriptions(self) -> List[Subscription]:
        """Get all subscriptions visible to the credential, in listing order."""
        return [_to_subscription(sub) for sub in self._subscription_client.subscriptions.list(**self._timeouts())]

    @retry_with_backoff(max_attempts=DEFAULT_RETRY_ATTEMPTS, exceptions=(ServiceRequestError,))
    def get_subscription(self, subscription_id: str) -> Optional[Subscription]:
        """
        Get a single subscription.

        Returns None when the subscription does not exist or the caller has
        no access to it. Credential failures raise AuthError.
        """
        try:
            sub = self._subscription_client.subscriptions.get(subscription_id, **self._timeouts())
        except ResourceNotFoundError:
            return None
        except ClientAuthenticationError as e:
            check_and_raise_auth_error(e, f"get subscription {subscription_id}")
            raise
        except HttpResponseError as e:
            if e.status_code in UNRESOLVABLE_STATUS_CODES:
                logger.debug(f"Subscription {subscription_id} not accessible: {e}")
                return None
            raise
        return _to_subscription(sub)

    def authenticated_get(self, url: str, timeout: Optional[float] = None) -> HttpResult:
        """Issue a GET against Azure Resource Manager with a bearer token."""
        token = self.credential.get_token(ARM_SCOPE).token
        response = self._session.get(
            url,
            headers={'Authorization': f"Bearer {token}", 'Accept': 'application/json'},
            timeout=timeout or self.timeout,
        )
        return HttpResult(status_code=response.status_code, body=response.text)

    def query_role_assignments(self, subscription_id: str) -> List[RoleAssignmentRecord]:
        """
        List role assignments visible in a subscription via Resource Graph.

        The result includes assignments inherited from management groups and
        assignments on resource groups and resources.
        """
        query = build_role_assignment_query(subscription_id)
        logger.debug(f"Resource Graph query for {subscription_id}: {query}")

        records: List[RoleAssignmentRecord] = []
        skip_token = None
        while True:
            request = QueryRequest(
                subscriptions=[subscription_id],
                query=query,
                options=QueryRequestOptions(
                    result_format=ResultFormat.OBJECT_ARRAY,
                    top=GRAPH_PAGE_SIZE,
                    skip_token=skip_token,
                ),
            )
            response = self._graph_client.resources(request, **self._timeouts())
            rows = response.data or []
            logger.debug(f"Resource Graph returned {len(rows)} row(s) for {subscription_id}")

            for row in rows:
                records.append(RoleAssignmentRecord(
                    scope=row.get('scope') or '',
                    principal_id=row.get('principalId') or '',
                    principal_type=row.get('principalType') or '',
                    role_definition_id=row.get('roleDefinitionId') or '',
                ))

            skip_token = response.skip_token
            if not skip_token:
                break

        return records


class AuthorizationCloudClient(AzureCloudClient):
    """
    Azure client that lists role assignments through the authorization
    provider instead of Resource Graph.

    Slower for large subscriptions but not subject to Resource Graph
    indexing delay.
    """

    def query_role_assignments(self, subscription_id: str) -> List[RoleAssignmentRecord]:
        with AuthorizationManagementClient(self.credential, subscription_id) as auth_client:
            records = [
                RoleAssignmentRecord(
                    scope=assignment.scope or '',
                    principal_id=assignment.principal_id or '',
                    principal_type=str(getattr(assignment.principal_type, 'value', assignment.principal_type) or ''),
                    role_definition_id=assignment.role_definition_id or '',
                )
                for assignment in auth_client.role_assignments.list_for_subscription(**self._timeouts())
            ]
        logger.debug(f"Authorization API returned {len(records)} role assignment(s) for {subscription_id}")
        return records


def create_client(credential, usage_source: str, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> AzureCloudClient:
    """Build the client matching the configured usage source."""
    if usage_source == USAGE_SOURCE_AUTHORIZATION:
        return AuthorizationCloudClient(credential, timeout=timeout)
    return AzureCloudClient(credential, timeout=timeout)
