"""
Tests for the Exit Status Classifier.
"""

import itertools
from typing import get_args

import pytest

from sitemirror.config.settings import Settings, SeverityRule
from sitemirror.engine.classifier import COMBINE_POLICIES, band_for, classify, combine
from sitemirror.models.outcome import SeverityBand


class TestCombine:
    """Tests for status combination policies."""

    def test_or_policy(self):
        """OR keeps every bit."""
        assert combine([1, 2], "or") == 3
        assert combine([1, 3], "or") == 3
        assert combine([4, 1, 2], "or") == 7

    def test_max_policy(self):
        """MAX takes the largest status."""
        assert combine([1, 2], "max") == 2
        assert combine([1, 3], "max") == 3

    def test_empty_is_zero(self):
        """No statuses combine to 0."""
        assert combine([], "or") == 0
        assert combine([], "max") == 0

    def test_unknown_policy(self):
        """Unknown policies are rejected."""
        with pytest.raises(ValueError):
            combine([1], "sum")

    def test_unknown_policy_rejected_without_statuses(self):
        with pytest.raises(ValueError):
            combine([], "sum")

    def test_policies_match_settings(self):
        """Every policy the settings accept is implemented."""
        assert set(COMBINE_POLICIES) == set(get_args(Settings.model_fields["combine"].annotation))

    @pytest.mark.parametrize("policy", ["or", "max"])
    def test_order_independent(self, policy):
        """Shuffling job order never changes the result."""
        statuses = [1, 4, 2, 16]
        results = {
            classify(list(p), policy=policy)
            for p in itertools.permutations(statuses)
        }
        assert len(results) == 1


class TestBandFor:
    """Tests for band mapping."""

    @pytest.mark.parametrize(
        "code,band",
        [
            (0, SeverityBand.SUCCESS),
            (1, SeverityBand.SUCCESS),
            (2, SeverityBand.WARNING),
            (3, SeverityBand.WARNING),
            (7, SeverityBand.WARNING),
            (8, SeverityBand.ERROR),
            (16, SeverityBand.ERROR),
            (31, SeverityBand.ERROR),
        ],
    )
    def test_default_rules(self, code, band):
        """Default rules: 0-1 Success, 2-7 Warning, 8+ Error."""
        assert band_for(code) == band

    def test_wide_success_rules(self):
        """The 0-3 Success variant is expressible as configuration."""
        rules = [
            SeverityRule(max_code=3, band=SeverityBand.SUCCESS),
            SeverityRule(max_code=7, band=SeverityBand.WARNING),
        ]
        assert band_for(3, rules) == SeverityBand.SUCCESS
        assert band_for(4, rules) == SeverityBand.WARNING

    def test_zero_always_success(self):
        """0 stays Success even if rules say otherwise."""
        rules = [SeverityRule(max_code=7, band=SeverityBand.ERROR)]
        assert band_for(0, rules) == SeverityBand.SUCCESS

    def test_fatal_always_error(self):
        """8+ stays Error even if rules say otherwise."""
        rules = [SeverityRule(max_code=31, band=SeverityBand.SUCCESS)]
        assert band_for(8, rules) == SeverityBand.ERROR
        assert band_for(16, rules) == SeverityBand.ERROR

    def test_above_last_rule_is_error(self):
        """Codes past every rule fall through to Error."""
        rules = [SeverityRule(max_code=1, band=SeverityBand.SUCCESS)]
        assert band_for(2, rules) == SeverityBand.ERROR


class TestClassify:
    """End-to-end classification scenarios."""

    def test_all_zero(self):
        """Scenario A: {0, 0} → 0, Success."""
        assert classify([0, 0]) == (0, SeverityBand.SUCCESS)

    @pytest.mark.parametrize("policy", ["or", "max"])
    def test_one_and_three(self, policy):
        """Scenario B: {1, 3} → 3, Warning under either policy."""
        assert classify([1, 3], policy=policy) == (3, SeverityBand.WARNING)

    @pytest.mark.parametrize("other", [0, 1, 3, 7])
    def test_fatal_dominates(self, other):
        """Scenario C: a 16 makes the run Error regardless of the other job."""
        code, band = classify([16, other])
        assert band == SeverityBand.ERROR
        assert code & 16
