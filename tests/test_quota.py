"""
Tests for rbac_quota/quota.py.

Covers:
- Usage-metrics URL construction
- parse_quota_limit on valid and malformed bodies
- resolve_quota_limit fallback on every failure mode
"""
import json
import os
import sys
from unittest.mock import Mock

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from rbac_quota.azure_client import HttpResult
from rbac_quota.constants import DEFAULT_QUOTA_LIMIT
from rbac_quota.quota import parse_quota_limit, resolve_quota_limit, usage_metrics_url

SUB_ID = "12345678-1234-1234-1234-123456789012"


def client_returning(status_code=200, body=None):
    """Create a mock client whose authenticated_get returns a fixed result."""
    client = Mock()
    client.authenticated_get.return_value = HttpResult(status_code=status_code, body=body or "")
    return client


# =============================================================================
# usage_metrics_url Tests
# =============================================================================

class TestUsageMetricsUrl:
    """Tests for usage_metrics_url function."""

    def test_url_contains_subscription_and_api_version(self):
        url = usage_metrics_url(SUB_ID)
        assert url.startswith("https://management.azure.com/subscriptions/" + SUB_ID + "/")
        assert "Microsoft.Authorization/roleAssignmentsUsageMetrics" in url
        assert url.endswith("api-version=2019-08-01-preview")


# =============================================================================
# parse_quota_limit Tests
# =============================================================================

class TestParseQuotaLimit:
    """Tests for parse_quota_limit function."""

    def test_top_level_field(self):
        body = json.dumps({"roleAssignmentsLimit": 4000, "roleAssignmentsCurrentCount": 12})
        assert parse_quota_limit(body) == 4000

    def test_nested_properties_field(self):
        body = json.dumps({"properties": {"roleAssignmentsLimit": 2000}})
        assert parse_quota_limit(body) == 2000

    def test_numeric_string(self):
        assert parse_quota_limit(json.dumps({"roleAssignmentsLimit": "3000"})) == 3000

    def test_missing_field(self):
        with pytest.raises(ValueError):
            parse_quota_limit(json.dumps({"other": 1}))

    def test_non_numeric_field(self):
        with pytest.raises(ValueError):
            parse_quota_limit(json.dumps({"roleAssignmentsLimit": "lots"}))

    def test_boolean_field(self):
        with pytest.raises(ValueError):
            parse_quota_limit(json.dumps({"roleAssignmentsLimit": True}))

    def test_zero_limit(self):
        with pytest.raises(ValueError):
            parse_quota_limit(json.dumps({"roleAssignmentsLimit": 0}))

    def test_not_json(self):
        with pytest.raises(ValueError):
            parse_quota_limit("AADSTS700082: The refresh token has expired")

    def test_json_array(self):
        with pytest.raises(ValueError):
            parse_quota_limit("[1, 2]")


# =============================================================================
# resolve_quota_limit Tests
# =============================================================================

class TestResolveQuotaLimit:
    """Tests for resolve_quota_limit function."""

    def test_success(self):
        client = client_returning(body=json.dumps({"roleAssignmentsLimit": 4000}))
        assert resolve_quota_limit(client, SUB_ID) == 4000
        client.authenticated_get.assert_called_once_with(usage_metrics_url(SUB_ID), timeout=None)

    def test_timeout_passed_through(self):
        client = client_returning(body=json.dumps({"roleAssignmentsLimit": 4000}))
        resolve_quota_limit(client, SUB_ID, timeout=5)
        client.authenticated_get.assert_called_once_with(usage_metrics_url(SUB_ID), timeout=5)

    def test_http_error_status_falls_back(self):
        client = client_returning(status_code=403, body='{"error": {"code": "AuthorizationFailed"}}')
        assert resolve_quota_limit(client, SUB_ID) == DEFAULT_QUOTA_LIMIT

    def test_exception_falls_back(self):
        client = Mock()
        client.authenticated_get.side_effect = ConnectionError("network down")
        assert resolve_quota_limit(client, SUB_ID) == DEFAULT_QUOTA_LIMIT

    def test_missing_field_falls_back(self):
        client = client_returning(body="{}")
        assert resolve_quota_limit(client, SUB_ID) == DEFAULT_QUOTA_LIMIT

    def test_non_numeric_falls_back(self):
        client = client_returning(body=json.dumps({"roleAssignmentsLimit": "n/a"}))
        assert resolve_quota_limit(client, SUB_ID) == DEFAULT_QUOTA_LIMIT

    def test_custom_default(self):
        client = client_returning(status_code=500)
        assert resolve_quota_limit(client, SUB_ID, default=1234) == 1234

    def test_single_attempt(self):
        client = Mock()
        client.authenticated_get.side_effect = TimeoutError("timed out")
        resolve_quota_limit(client, SUB_ID)
        assert client.authenticated_get.call_count == 1

    def test_empty_subscription_id(self):
        client = Mock()
        assert resolve_quota_limit(client, "") == DEFAULT_QUOTA_LIMIT
        client.authenticated_get.assert_not_called()
