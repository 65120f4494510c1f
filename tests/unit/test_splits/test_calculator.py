#!/usr/bin/env python3
"""Tests for split calculation strategies."""

import pytest

from fundflow.core.models import Split
from fundflow.splits.calculator import (
    SplitCalculationError,
    SplitStrategy,
    compute_splits,
    distribute_by_percentage,
    distribute_custom,
    distribute_evenly,
    distribute_selective,
    override_split,
    parse_manual_amount,
    reset_splits,
)


def as_map(splits):
    return {s.user_id: s.amount for s in splits}


def total(splits):
    return sum(s.amount for s in splits)


class TestEvenSplit:
    """Test even distribution with both payer policies."""

    @pytest.mark.unit
    @pytest.mark.splits
    def test_payer_participates(self):
        splits = distribute_evenly(300000, ["A", "B", "C"], "A", payer_participates=True)

        assert splits == [Split("A", 200000), Split("B", -100000), Split("C", -100000)]
        assert total(splits) == 0

    @pytest.mark.unit
    @pytest.mark.splits
    def test_external_payer_is_fully_reimbursed(self):
        splits = distribute_evenly(300000, ["B", "C"], "A", payer_participates=False)

        assert splits == [Split("A", 300000), Split("B", -150000), Split("C", -150000)]
        assert total(splits) == 0

    @pytest.mark.unit
    @pytest.mark.splits
    def test_policy_inferred_from_participants(self):
        assert as_map(distribute_evenly(300000, ["B", "C"], "A"))["A"] == 300000
        assert as_map(distribute_evenly(300000, ["A", "B", "C"], "A"))["A"] == 200000

    @pytest.mark.unit
    @pytest.mark.splits
    def test_participating_payer_is_added_when_missing(self):
        splits = distribute_evenly(300000, ["B", "C"], "A", payer_participates=True)
        assert as_map(splits) == {"A": 200000, "B": -100000, "C": -100000}

    @pytest.mark.unit
    @pytest.mark.splits
    def test_remainder_stays_with_participating_payer(self):
        splits = distribute_evenly(100, ["A", "B", "C"], "A", payer_participates=True)

        assert as_map(splits) == {"A": 66, "B": -33, "C": -33}
        assert total(splits) == 0

    @pytest.mark.unit
    @pytest.mark.splits
    def test_remainder_goes_to_last_consumer_when_payer_external(self):
        splits = distribute_evenly(100, ["B", "C", "D"], "A", payer_participates=False)

        assert as_map(splits) == {"A": 100, "B": -33, "C": -33, "D": -34}
        assert total(splits) == 0

    @pytest.mark.unit
    @pytest.mark.splits
    def test_duplicate_participants_counted_once(self):
        splits = distribute_evenly(200, ["A", "B", "B"], "A")
        assert as_map(splits) == {"A": 100, "B": -100}

    @pytest.mark.unit
    @pytest.mark.splits
    @pytest.mark.parametrize("amount", [0, -100, float("nan"), "300"])
    def test_invalid_amount_rejected(self, amount):
        with pytest.raises(SplitCalculationError):
            distribute_evenly(amount, ["A", "B"], "A")

    @pytest.mark.unit
    @pytest.mark.splits
    def test_no_consumers_rejected(self):
        with pytest.raises(SplitCalculationError, match="At least one participant"):
            distribute_evenly(300, [], "A", payer_participates=False)


class TestSelectiveSplit:
    """Test distribution among a chosen subset of members."""

    @pytest.mark.unit
    @pytest.mark.splits
    def test_selected_subset(self):
        splits = distribute_selective(200000, ["A", "C"], "A", ["A", "B", "C"])
        assert as_map(splits) == {"A": 100000, "C": -100000}

    @pytest.mark.unit
    @pytest.mark.splits
    def test_empty_selection_rejected(self):
        with pytest.raises(SplitCalculationError, match="Select at least one"):
            distribute_selective(200000, [], "A", ["A", "B"])

    @pytest.mark.unit
    @pytest.mark.splits
    def test_non_member_rejected(self):
        with pytest.raises(SplitCalculationError, match="not fund members: Z"):
            distribute_selective(200000, ["B", "Z"], "A", ["A", "B"])

    @pytest.mark.unit
    @pytest.mark.splits
    def test_non_member_payer_rejected(self):
        with pytest.raises(SplitCalculationError, match="Payer Z"):
            distribute_selective(200000, ["B"], "Z", ["A", "B"])


class TestWeightedSplits:
    """Test percentage and custom distributions."""

    @pytest.mark.unit
    @pytest.mark.splits
    def test_percentage(self):
        splits = distribute_by_percentage(1000000, {"A": 50, "B": 30, "C": 20}, "A")

        assert as_map(splits) == {"A": 500000, "B": -300000, "C": -200000}
        assert total(splits) == 0

    @pytest.mark.unit
    @pytest.mark.splits
    def test_percentage_remainder_to_last(self):
        splits = distribute_by_percentage(1001, {"A": 50, "B": 50}, "A")
        assert as_map(splits) == {"A": 501, "B": -501}

    @pytest.mark.unit
    @pytest.mark.splits
    def test_percentage_must_total_100(self):
        with pytest.raises(SplitCalculationError, match="total 100"):
            distribute_by_percentage(1000, {"A": 50, "B": 30}, "A")

    @pytest.mark.unit
    @pytest.mark.splits
    def test_custom_shares(self):
        splits = distribute_custom(300000, {"A": 100000, "B": 150000, "C": 50000}, "A")

        assert as_map(splits) == {"A": 200000, "B": -150000, "C": -50000}
        assert total(splits) == 0

    @pytest.mark.unit
    @pytest.mark.splits
    def test_custom_always_balances(self):
        splits = distribute_custom(300000, {"B": 100000}, "A")
        assert as_map(splits) == {"A": 100000, "B": -100000}

    @pytest.mark.unit
    @pytest.mark.splits
    def test_negative_custom_share_rejected(self):
        with pytest.raises(SplitCalculationError):
            distribute_custom(300000, {"B": -1}, "A")


class TestComputeSplits:
    """Test strategy dispatch."""

    @pytest.mark.unit
    @pytest.mark.splits
    def test_even_defaults_to_all_members(self):
        splits = compute_splits(SplitStrategy.EVEN, 300000, "A", member_ids=["A", "B", "C"])
        assert as_map(splits) == {"A": 200000, "B": -100000, "C": -100000}

    @pytest.mark.unit
    @pytest.mark.splits
    def test_weights_dispatch(self):
        splits = compute_splits(SplitStrategy.PERCENTAGE, 1000, "A", weights={"A": 50, "B": 50})
        assert as_map(splits) == {"A": 500, "B": -500}


class TestManualOverrides:
    """Test manual split edits."""

    @pytest.mark.unit
    @pytest.mark.splits
    @pytest.mark.parametrize(
        "text,negative,expected",
        [
            ("50.000", True, -50000),
            ("10000", False, 10000),
            ("-20000", False, 20000),
            ("", True, 0),
            ("abc", True, 0),
            ("0", True, 0),
        ],
    )
    def test_parse_manual_amount(self, text, negative, expected):
        assert parse_manual_amount(text, negative) == expected

    @pytest.mark.unit
    @pytest.mark.splits
    def test_override_without_payer_breaks_balance(self):
        splits = [Split("A", 200000), Split("B", -100000), Split("C", -100000)]
        updated = override_split(splits, "B", -150000)

        assert as_map(updated) == {"A": 200000, "B": -150000, "C": -100000}
        assert splits[1].amount == -100000

    @pytest.mark.unit
    @pytest.mark.splits
    def test_override_adjusts_payer(self):
        splits = [Split("A", 200000), Split("B", -100000), Split("C", -100000)]
        updated = override_split(splits, "B", -150000, payer_id="A")

        assert as_map(updated) == {"A": 250000, "B": -150000, "C": -100000}
        assert total(updated) == 0

    @pytest.mark.unit
    @pytest.mark.splits
    def test_override_appends_new_user(self):
        updated = override_split([Split("A", 0)], "D", -5000, payer_id="A")
        assert as_map(updated) == {"A": 5000, "D": -5000}

    @pytest.mark.unit
    @pytest.mark.splits
    def test_reset_splits(self):
        assert reset_splits(["A", "B", "A"]) == [Split("A", 0), Split("B", 0)]
