"""
Tests for rbac_quota/models.py.

Covers:
- Subscription enabled state and display name
- SubscriptionReport error-message invariant and serialization
- summarize status counts
"""
import os
import sys

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from rbac_quota.models import QuotaReport, QuotaStatus, Subscription, SubscriptionReport, summarize


class TestSubscription:
    """Tests for Subscription dataclass."""

    def test_enabled_state(self):
        assert Subscription(id="s1", state="Enabled").is_enabled

    def test_enabled_state_case_insensitive(self):
        assert Subscription(id="s1", state="enabled").is_enabled

    def test_disabled_state(self):
        assert not Subscription(id="s1", state="Disabled").is_enabled
        assert not Subscription(id="s1", state="Warned").is_enabled

    def test_display_name_with_name(self):
        assert Subscription(id="s1", name="Prod").display_name == "Prod (s1)"

    def test_display_name_without_name(self):
        assert Subscription(id="s1").display_name == "s1"


class TestSubscriptionReport:
    """Tests for SubscriptionReport dataclass."""

    def test_error_requires_message(self):
        with pytest.raises(ValueError):
            SubscriptionReport(subscription=Subscription(id="s1"), status=QuotaStatus.ERROR)

    def test_message_only_for_error(self):
        with pytest.raises(ValueError):
            SubscriptionReport(
                subscription=Subscription(id="s1"),
                status=QuotaStatus.OK,
                count=1,
                limit=2000,
                error_message="boom",
            )

    @pytest.mark.parametrize("count,limit", [(5, None), (None, 2000), (5, 2000)])
    def test_error_rejects_count_and_limit(self, count, limit):
        with pytest.raises(ValueError):
            SubscriptionReport(
                subscription=Subscription(id="s1"),
                status=QuotaStatus.ERROR,
                count=count,
                limit=limit,
                error_message="boom",
            )


class TestSummarize:
    """Tests for summarize function."""

    def test_counts_by_status(self):
        sub = Subscription(id="s1")
        reports = [
            SubscriptionReport(subscription=sub, status=QuotaStatus.OK, count=5, limit=2000),
            SubscriptionReport(subscription=sub, status=QuotaStatus.OK, count=6, limit=2000),
            SubscriptionReport(subscription=sub, status=QuotaStatus.ERROR, error_message="x"),
            SubscriptionReport(subscription=sub, status=QuotaStatus.ZERO_COUNT_SUSPECT, count=0, limit=2000),
        ]
        summary = summarize(reports, skipped=["s9"])

        assert summary.total == 4
        assert summary.ok == 2
        assert summary.error == 1
        assert summary.zero_count_suspect == 1
        assert summary.near_limit == 0
        assert summary.skipped == ["s9"]

    def test_quota_report_summary(self):
        report = QuotaReport(reports=[], skipped=["a"])
        assert report.summary.total == 0
        assert report.summary.skipped == ["a"]
