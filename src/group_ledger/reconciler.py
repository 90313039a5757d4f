"""Core split normalization: turns a raw transaction into a cent-exact cost split."""

import logging
from collections.abc import Iterable
from decimal import ROUND_HALF_DOWN, ROUND_HALF_UP, Decimal

from .exceptions import InvalidSplitConfiguration
from .models import NormalizedTransaction, SplitType, Transaction

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

MoneyInput = Decimal | int | float | str


def to_decimal(amount: MoneyInput) -> Decimal:
    """
    Convert a money-like value to Decimal without rounding.

    Floats go through their shortest string representation, so 1.005 becomes
    Decimal("1.005") rather than its binary approximation 1.00499999...

    Args:
        amount: Amount as Decimal, int, float or numeric string

    Returns:
        Amount as Decimal
    """
    if isinstance(amount, Decimal):
        return amount
    if isinstance(amount, float):
        return Decimal(str(amount))
    return Decimal(amount)


def to_cents(amount: MoneyInput) -> Decimal:
    """
    Round an amount to cents.

    Half cents round toward positive infinity: 2.345 becomes 2.35 and
    -2.345 becomes -2.34.

    Args:
        amount: Amount as Decimal, int, float or numeric string

    Returns:
        Amount quantized to two fractional digits
    """
    value = to_decimal(amount)
    if value >= 0:
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    rounded = -(-value).quantize(CENT, rounding=ROUND_HALF_DOWN)
    return ZERO if rounded == 0 else rounded


def cumulative_sum(amounts: Iterable[MoneyInput]) -> Decimal:
    """
    Sum amounts, rounding to cents after every addition.

    This is the canonical total for a transaction; it is not guaranteed to
    equal a single rounding of the exact sum.
    """
    total = ZERO
    for amount in amounts:
        total = to_cents(total + to_decimal(amount))
    return total


def validate_transaction(transaction: Transaction) -> None:
    """
    Check that a transaction's cost can be divided among its splitters.

    normalize_transaction tolerates an empty splitter set (it produces no
    splits); callers that persist transactions use this to reject inputs
    that would leave a nonzero cost unassigned.

    Raises:
        InvalidSplitConfiguration: If the split cannot be computed
    """
    total_cost = cumulative_sum(transaction.payers.values())
    weights = {member: to_cents(w) for member, w in transaction.splitters.items()}

    weighted = transaction.split_type == SplitType.WEIGHTED
    negative = sorted(member for member, weight in weights.items() if weight < 0)
    if weighted and negative:
        raise InvalidSplitConfiguration(
            transaction.id,
            f"Transaction {transaction.id} has negative split weights for: "
            f"{', '.join(negative)}",
        )

    if total_cost == 0:
        return

    if not weights:
        raise InvalidSplitConfiguration(
            transaction.id,
            f"Transaction {transaction.id} costs {total_cost} but has no splitters",
        )

    total_weight = cumulative_sum(weights.values())
    if weighted and total_weight == 0:
        raise InvalidSplitConfiguration(
            transaction.id,
            f"Transaction {transaction.id} costs {total_cost} but its split "
            f"weights sum to zero",
        )


def normalize_transaction(transaction: Transaction) -> NormalizedTransaction:
    """
    Compute each splitter's cent-exact share of a transaction's cost.

    Steps:
    1. Round payer contributions and splitter weights to cents
    2. Total the cost and the weights, rounding after each addition
    3. Compute each member's share (equal or proportional) and round it
    4. If the rounded shares fall short of the cost, add the shortfall to the
       first member by ID

    An overage (shares summing to more than the cost) is left as is: only a
    shortfall is reconciled.

    Args:
        transaction: The raw transaction; it is not modified

    Returns:
        The transaction with rounded inputs, total_cost and splits

    Raises:
        InvalidSplitConfiguration: If a WEIGHTED split has zero total weight
                                   but a nonzero cost
    """
    payers = {member: to_cents(value) for member, value in transaction.payers.items()}
    splitters = {
        member: to_cents(weight) for member, weight in transaction.splitters.items()
    }

    total_cost = cumulative_sum(payers.values())
    total_weight = cumulative_sum(splitters.values())
    members = sorted(splitters)

    weighted = transaction.split_type == SplitType.WEIGHTED
    if weighted and members and total_weight == 0 and total_cost != 0:
        raise InvalidSplitConfiguration(
            transaction.id,
            f"Cannot split {total_cost} by weight in transaction {transaction.id}: "
            f"weights sum to zero",
        )

    splits: dict[str, Decimal] = {}
    for member in members:
        if not weighted:
            share = total_cost / len(members)
        elif total_weight == 0:
            share = ZERO
        else:
            share = total_cost * splitters[member] / total_weight
        splits[member] = to_cents(share)

    computed_total = cumulative_sum(splits.values())

    if members:
        diff = total_cost - computed_total
        if diff > 0:
            first = members[0]
            splits[first] = to_cents(splits[first] + diff)
            logger.debug(
                f"Applied rounding adjustment: {diff} to member {first} "
                f"in transaction {transaction.id}"
            )
        elif diff < 0:
            logger.debug(
                f"Transaction {transaction.id} splits exceed cost by {-diff}; "
                f"overage is not reconciled"
            )

    return NormalizedTransaction(
        **transaction.model_dump(
            exclude={"payers", "splitters", "total_cost", "splits"}
        ),
        payers=payers,
        splitters=splitters,
        total_cost=total_cost,
        splits=splits,
    )
