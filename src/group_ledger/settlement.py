"""Greedy debt settlement: reduces a balance map to a list of payments.

The reducer pairs the largest remaining debtor with the largest remaining
creditor until one side runs out. Each step settles at least one member, so
a group of n members needs at most n - 1 payments. This is not guaranteed to
be the smallest possible number of payments; finding that is a much harder
problem and would replace ``settle`` without touching balance aggregation.
"""

import logging
from collections.abc import Iterable
from decimal import Decimal

from .models import Payment
from .reconciler import ZERO, MoneyInput, to_cents, to_decimal

logger = logging.getLogger(__name__)


def settle(balances: dict[str, MoneyInput]) -> list[Payment]:
    """
    Compute payments that bring every balance to zero.

    Balances are sorted ascending by amount, ties broken by member ID, and
    settled from both ends. If the balances do not sum to exactly zero (each
    transaction can leave up to a cent of rounding drift) the leftover stays
    with whichever member is reached last.

    Args:
        balances: Net balance per member (positive = is owed)

    Returns:
        Payments in the order they were produced, each with a positive value
    """
    entries = [[to_decimal(amount), member] for member, amount in balances.items()]
    entries.sort(key=lambda entry: (entry[0], entry[1]))

    payments: list[Payment] = []
    i, j = 0, len(entries) - 1
    while i < j:
        debt, debtor = entries[i]
        credit, creditor = entries[j]

        if debt == 0:
            i += 1
        elif credit == 0:
            j -= 1
        elif debt > 0 or credit < 0:
            # Only drift left: nobody remaining owes, or nobody is owed
            break
        elif -debt > credit:
            payments.append(
                Payment(from_member=debtor, to_member=creditor, value=to_cents(credit))
            )
            entries[i][0] = debt + credit
            entries[j][0] = ZERO
        else:
            payments.append(
                Payment(from_member=debtor, to_member=creditor, value=to_cents(-debt))
            )
            entries[j][0] = credit + debt
            entries[i][0] = ZERO

    residual = [(member, amount) for amount, member in entries if amount != 0]
    if residual:
        logger.debug(f"Settlement left unresolved residue: {residual}")

    return payments


def apply_payments(
    balances: dict[str, MoneyInput], payments: Iterable[Payment]
) -> dict[str, Decimal]:
    """
    Apply payments to balances and return the resulting balances.

    Paying raises the payer's balance and lowers the recipient's.
    """
    result = {member: to_cents(amount) for member, amount in balances.items()}
    for payment in payments:
        result[payment.from_member] = to_cents(
            result.get(payment.from_member, ZERO) + payment.value
        )
        result[payment.to_member] = to_cents(
            result.get(payment.to_member, ZERO) - payment.value
        )
    return result
