"""Rounding and reconciliation tests for the split normalizer."""

from decimal import Decimal

import pytest

from group_ledger.exceptions import InvalidSplitConfiguration
from group_ledger.models import SplitType, Transaction
from group_ledger.reconciler import (
    cumulative_sum,
    normalize_transaction,
    to_cents,
    validate_transaction,
)


# Helper function for tests
def make_transaction(
    payers: dict[str, str],
    splitters: dict[str, str],
    split_type: SplitType = SplitType.EQUAL,
    id: str = "t1",
) -> Transaction:
    """Create a Transaction with Decimal amounts."""
    return Transaction(
        id=id,
        split_type=split_type,
        payers={k: Decimal(v) for k, v in payers.items()},
        splitters={k: Decimal(v) for k, v in splitters.items()},
    )


class TestMoneyRounding:
    """Test cent rounding of individual amounts and running totals."""

    def test_half_cent_rounds_up(self):
        assert to_cents(Decimal("2.345")) == Decimal("2.35")

    def test_negative_half_cent_rounds_toward_positive(self):
        assert to_cents(Decimal("-2.345")) == Decimal("-2.34")
        assert to_cents(Decimal("-2.346")) == Decimal("-2.35")
        assert to_cents(Decimal("-0.005")) == Decimal("0")

    def test_float_representation_error_is_neutralized(self):
        """1.005 is stored as 1.00499999... in binary but must round to 1.01."""
        assert to_cents(1.005) == Decimal("1.01")

    def test_accepts_ints_and_strings(self):
        assert to_cents(3) == Decimal("3.00")
        assert to_cents("4.129") == Decimal("4.13")

    def test_cumulative_sum_rounds_after_each_addition(self):
        """Running total is rounded every step, not once at the end."""
        amounts = [Decimal("0.004"), Decimal("0.004"), Decimal("0.004")]

        assert cumulative_sum(amounts) == Decimal("0.00")
        assert to_cents(sum(amounts)) == Decimal("0.01")

    def test_cumulative_sum_of_nothing_is_zero(self):
        assert cumulative_sum([]) == Decimal("0.00")


class TestEqualSplit:
    """Test cases for EQUAL split transactions."""

    def test_shortfall_goes_to_first_member(self):
        """10.00 over three members leaves 0.01 for the first member by ID."""
        transaction = make_transaction(
            payers={"A": "10.00"}, splitters={"C": "1", "A": "1", "B": "1"}
        )

        normalized = normalize_transaction(transaction)

        assert normalized.total_cost == Decimal("10.00")
        assert normalized.splits == {
            "A": Decimal("3.34"),
            "B": Decimal("3.33"),
            "C": Decimal("3.33"),
        }

    def test_splits_are_ordered_by_member_id(self):
        transaction = make_transaction(
            payers={"A": "10.00"}, splitters={"C": "1", "A": "1", "B": "1"}
        )

        normalized = normalize_transaction(transaction)

        assert list(normalized.splits) == ["A", "B", "C"]

    def test_weights_are_ignored(self):
        transaction = make_transaction(
            payers={"A": "12.00"}, splitters={"A": "5", "B": "1"}
        )

        normalized = normalize_transaction(transaction)

        assert normalized.splits == {"A": Decimal("6.00"), "B": Decimal("6.00")}

    @pytest.mark.parametrize(
        "cost,members",
        [
            ("19.99", ["A"]),
            ("10.00", ["A", "B"]),
            ("50.00", ["A", "B", "C", "D", "E", "F", "G"]),
            ("1.00", ["A", "B", "C", "D", "E", "F", "G"]),
        ],
    )
    def test_splits_sum_to_total(self, cost, members):
        transaction = make_transaction(
            payers={"A": cost}, splitters={m: "1" for m in members}
        )

        normalized = normalize_transaction(transaction)

        assert sum(normalized.splits.values()) == normalized.total_cost

    def test_seven_way_shortfall(self):
        """1.00 / 7 rounds to 0.14 each (0.98); first member absorbs 0.02."""
        members = ["A", "B", "C", "D", "E", "F", "G"]
        transaction = make_transaction(
            payers={"B": "1.00"}, splitters={m: "1" for m in members}
        )

        normalized = normalize_transaction(transaction)

        assert normalized.splits["A"] == Decimal("0.16")
        assert all(normalized.splits[m] == Decimal("0.14") for m in members[1:])

    def test_single_member_pays_everything(self):
        transaction = make_transaction(payers={"A": "7.77"}, splitters={"B": "1"})

        normalized = normalize_transaction(transaction)

        assert normalized.splits == {"B": Decimal("7.77")}


class TestWeightedSplit:
    """Test cases for WEIGHTED split transactions."""

    def test_proportional_shares(self):
        transaction = make_transaction(
            payers={"A": "10.00"},
            splitters={"A": "1", "B": "3"},
            split_type=SplitType.WEIGHTED,
        )

        normalized = normalize_transaction(transaction)

        assert normalized.splits == {"A": Decimal("2.50"), "B": Decimal("7.50")}
        assert sum(normalized.splits.values()) == Decimal("10.00")

    def test_weights_need_not_sum_to_one(self):
        transaction = make_transaction(
            payers={"A": "10.00"},
            splitters={"A": "1", "B": "2"},
            split_type=SplitType.WEIGHTED,
        )

        normalized = normalize_transaction(transaction)

        assert normalized.splits == {"A": Decimal("3.33"), "B": Decimal("6.67")}

    def test_shortfall_goes_to_first_member(self):
        """10.00 over weights 1/1/1 rounds to 3.33 each, one cent short."""
        transaction = make_transaction(
            payers={"B": "10.00"},
            splitters={"C": "1", "A": "1", "B": "1"},
            split_type=SplitType.WEIGHTED,
        )

        normalized = normalize_transaction(transaction)

        assert normalized.splits == {
            "A": Decimal("3.34"),
            "B": Decimal("3.33"),
            "C": Decimal("3.33"),
        }
        assert sum(normalized.splits.values()) == normalized.total_cost

    def test_seven_members_sum_to_total(self):
        members = ["A", "B", "C", "D", "E", "F", "G"]
        transaction = make_transaction(
            payers={"A": "60.00", "G": "40.00"},
            splitters={m: str(i + 1) for i, m in enumerate(members)},
            split_type=SplitType.WEIGHTED,
        )

        normalized = normalize_transaction(transaction)

        assert normalized.total_cost == Decimal("100.00")
        assert sum(normalized.splits.values()) == Decimal("100.00")
        assert normalized.splits["G"] == Decimal("25.00")

    def test_zero_total_weight_with_cost_raises(self):
        transaction = make_transaction(
            payers={"A": "10.00"},
            splitters={"A": "0", "B": "0"},
            split_type=SplitType.WEIGHTED,
        )

        with pytest.raises(InvalidSplitConfiguration, match="weights sum to zero"):
            normalize_transaction(transaction)

    def test_zero_total_weight_without_cost_is_all_zero(self):
        transaction = make_transaction(
            payers={"A": "0"},
            splitters={"A": "0", "B": "0"},
            split_type=SplitType.WEIGHTED,
        )

        normalized = normalize_transaction(transaction)

        assert normalized.splits == {"A": Decimal("0.00"), "B": Decimal("0.00")}


class TestReconciliationQuirks:
    """Only shortfalls are reconciled; overages are kept as is."""

    def test_overage_is_not_corrected(self):
        """0.05 over two members rounds to 0.03 each, one cent over the cost."""
        transaction = make_transaction(
            payers={"A": "0.05"}, splitters={"A": "1", "B": "1"}
        )

        normalized = normalize_transaction(transaction)

        assert normalized.splits == {"A": Decimal("0.03"), "B": Decimal("0.03")}
        assert sum(normalized.splits.values()) - normalized.total_cost == Decimal(
            "0.01"
        )

    def test_negative_cost_half_cents_round_toward_positive(self):
        """A -0.05 refund splits to -0.02 each; the missing cent stays missing."""
        transaction = make_transaction(
            payers={"A": "-0.05"}, splitters={"A": "1", "B": "1"}
        )

        normalized = normalize_transaction(transaction)

        assert normalized.total_cost == Decimal("-0.05")
        assert normalized.splits == {"A": Decimal("-0.02"), "B": Decimal("-0.02")}


class TestNormalizationInputs:
    """Test handling of raw transaction inputs."""

    def test_payers_and_weights_are_rounded(self):
        transaction = make_transaction(
            payers={"A": "10.005", "B": "0.004"},
            splitters={"A": "1.999"},
            split_type=SplitType.WEIGHTED,
        )

        normalized = normalize_transaction(transaction)

        assert normalized.payers == {"A": Decimal("10.01"), "B": Decimal("0.00")}
        assert normalized.splitters == {"A": Decimal("2.00")}
        assert normalized.total_cost == Decimal("10.01")

    def test_input_transaction_is_not_modified(self):
        transaction = make_transaction(payers={"A": "10.005"}, splitters={"A": "1"})

        normalize_transaction(transaction)

        assert transaction.payers == {"A": Decimal("10.005")}

    def test_empty_splitters_produce_no_splits(self):
        transaction = make_transaction(payers={"A": "5.00", "B": "2.50"}, splitters={})

        normalized = normalize_transaction(transaction)

        assert normalized.splits == {}
        assert normalized.total_cost == Decimal("7.50")

    def test_keeps_transaction_fields(self):
        transaction = make_transaction(payers={"A": "1.00"}, splitters={"A": "1"})
        transaction.description = "Coffee"

        normalized = normalize_transaction(transaction)

        assert normalized.id == "t1"
        assert normalized.description == "Coffee"
        assert normalized.created_at == transaction.created_at

    def test_deterministic(self):
        transaction = make_transaction(
            payers={"A": "10.00"}, splitters={"A": "1", "B": "1", "C": "1"}
        )

        assert normalize_transaction(transaction) == normalize_transaction(transaction)


class TestValidateTransaction:
    """Test pre-persistence validation."""

    def test_valid_transaction_passes(self):
        validate_transaction(
            make_transaction(payers={"A": "10.00"}, splitters={"A": "1", "B": "1"})
        )

    def test_equal_split_without_members_raises(self):
        transaction = make_transaction(payers={"A": "10.00"}, splitters={})

        with pytest.raises(InvalidSplitConfiguration, match="has no splitters"):
            validate_transaction(transaction)

    def test_weighted_zero_weight_raises(self):
        transaction = make_transaction(
            payers={"A": "10.00"},
            splitters={"B": "0"},
            split_type=SplitType.WEIGHTED,
        )

        with pytest.raises(InvalidSplitConfiguration, match="weights sum to zero"):
            validate_transaction(transaction)

    def test_negative_weight_raises(self):
        transaction = make_transaction(
            payers={"A": "10.00"},
            splitters={"A": "2", "B": "-1"},
            split_type=SplitType.WEIGHTED,
        )

        with pytest.raises(InvalidSplitConfiguration, match="negative split weights"):
            validate_transaction(transaction)

    def test_zero_cost_without_splitters_is_allowed(self):
        validate_transaction(make_transaction(payers={}, splitters={}))
