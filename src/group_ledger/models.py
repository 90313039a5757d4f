"""Pydantic domain models for GroupLedger."""

from datetime import datetime
from decimal import Decimal
from enum import IntEnum
from typing import Any, Literal

from pydantic import BaseModel, Field

# ============================================================================
# Transaction Models
# ============================================================================


class SplitType(IntEnum):
    """How a transaction's cost is divided among its splitters.

    The integer values are the ones stored in the ledger database.
    """

    EQUAL = 1
    WEIGHTED = 2


class Transaction(BaseModel):
    """A raw transaction as recorded by a group member.

    ``payers`` maps member IDs to the money they contributed. ``splitters``
    maps member IDs to weights; weights are ignored for EQUAL splits and
    normalized by their total for WEIGHTED splits.
    """

    id: str
    type: str = "expense"
    description: str = ""
    split_type: SplitType = SplitType.EQUAL
    payers: dict[str, Decimal] = Field(default_factory=dict)
    splitters: dict[str, Decimal] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.now)


class NormalizedTransaction(Transaction):
    """A transaction with its cent-exact cost split.

    ``splits`` is ordered by member ID and always rederived, never stored.
    """

    total_cost: Decimal
    splits: dict[str, Decimal]


class Payment(BaseModel):
    """A suggested transfer: ``from_member`` pays ``value`` to ``to_member``."""

    from_member: str
    to_member: str
    value: Decimal


# ============================================================================
# Group Models
# ============================================================================


class Member(BaseModel):
    """A member of a group."""

    id: str
    name: str = "Unnamed User"
    site_id: str | None = None  # Device that claimed this member, if any


ActivityType = Literal[
    "create_transaction",
    "update_transaction",
    "delete_transaction",
    "set_group_name",
    "set_group_currency",
]


class Activity(BaseModel):
    """An append-only activity log entry for a group mutation."""

    id: str
    group_id: str
    type: ActivityType
    data: dict[str, Any] = Field(default_factory=dict)  # prev/cur payloads
    by: str = ""  # acting member ID, empty when unknown
    created_at: datetime = Field(default_factory=datetime.now)


class Group(BaseModel):
    """A group of members sharing expenses.

    ``transactions`` preserves insertion order, which is the order balances
    are aggregated in.
    """

    id: str
    name: str
    currency: str = "$"
    created_at: datetime = Field(default_factory=datetime.now)
    members: dict[str, Member] = Field(default_factory=dict)
    transactions: dict[str, Transaction] = Field(default_factory=dict)
    activity: list[Activity] = Field(default_factory=list)
