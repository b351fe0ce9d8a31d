"""
Tests for rbac_quota/classify.py.

Covers:
- Priority order of the status rules
- Boundary values around the 90% and 100% thresholds
- Input validation
"""
import os
import sys

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from rbac_quota.classify import classify
from rbac_quota.models import QuotaStatus

# =============================================================================
# classify Tests
# =============================================================================

class TestClassify:
    """Tests for classify function."""

    def test_zero_count_is_suspect(self):
        """Zero overrides the arithmetic 'ok' result."""
        assert classify(0, 2000) == QuotaStatus.ZERO_COUNT_SUSPECT

    def test_at_limit(self):
        assert classify(2000, 2000) == QuotaStatus.AT_OR_OVER_LIMIT

    def test_over_limit(self):
        assert classify(2001, 2000) == QuotaStatus.AT_OR_OVER_LIMIT

    def test_just_below_limit_is_near(self):
        assert classify(1999, 2000) == QuotaStatus.NEAR_LIMIT

    def test_exactly_ninety_percent_is_near(self):
        assert classify(1800, 2000) == QuotaStatus.NEAR_LIMIT

    def test_just_below_ninety_percent_is_ok(self):
        assert classify(1799, 2000) == QuotaStatus.OK

    def test_low_usage_is_ok(self):
        assert classify(1, 2000) == QuotaStatus.OK

    def test_threshold_not_truncated(self):
        """90% of 15 is 13.5; 13 must stay ok and 14 be near the limit."""
        assert classify(13, 15) == QuotaStatus.OK
        assert classify(14, 15) == QuotaStatus.NEAR_LIMIT

    def test_limit_of_one(self):
        assert classify(1, 1) == QuotaStatus.AT_OR_OVER_LIMIT
        assert classify(0, 1) == QuotaStatus.ZERO_COUNT_SUSPECT

    @pytest.mark.parametrize("limit", [1, 7, 10, 2000, 4000])
    def test_total_over_counts(self, limit):
        """Every count maps to exactly one non-error status."""
        allowed = {
            QuotaStatus.ZERO_COUNT_SUSPECT,
            QuotaStatus.AT_OR_OVER_LIMIT,
            QuotaStatus.NEAR_LIMIT,
            QuotaStatus.OK,
        }
        for count in range(0, limit + 3):
            assert classify(count, limit) in allowed

    def test_deterministic(self):
        assert classify(1850, 2000) == classify(1850, 2000)

    def test_negative_count_rejected(self):
        with pytest.raises(ValueError):
            classify(-1, 2000)

    def test_non_positive_limit_rejected(self):
        with pytest.raises(ValueError):
            classify(10, 0)
