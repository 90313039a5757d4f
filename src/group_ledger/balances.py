"""Aggregation of a group's transactions into per-member net balances."""

from collections.abc import Iterable
from decimal import Decimal

from .models import Transaction
from .reconciler import ZERO, normalize_transaction, to_cents


def aggregate_balances(
    members: Iterable[str], transactions: Iterable[Transaction]
) -> dict[str, Decimal]:
    """
    Fold transactions into net balances.

    A positive balance is owed to the member; a negative one is owed by them.
    Transactions are applied in iteration order and every balance is rounded
    to cents after each update, so the order affects only rounding residue.
    Members that appear only inside a transaction start at zero.

    Args:
        members: Member IDs of the group (each gets a balance, even if idle)
        transactions: Transactions in the order to apply them

    Returns:
        Balance map keyed by member ID

    Raises:
        InvalidSplitConfiguration: If any transaction cannot be normalized
    """
    balances: dict[str, Decimal] = {member: ZERO for member in sorted(members)}

    for transaction in transactions:
        normalized = normalize_transaction(transaction)
        for payer, value in normalized.payers.items():
            balances[payer] = to_cents(balances.get(payer, ZERO) + value)
        for splitter, share in normalized.splits.items():
            balances[splitter] = to_cents(balances.get(splitter, ZERO) - share)

    return balances


def member_balance(balances: dict[str, Decimal], member_id: str) -> Decimal:
    """Get one member's balance, zero if the member has none."""
    return balances.get(member_id, ZERO)
