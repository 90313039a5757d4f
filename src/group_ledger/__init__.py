"""GroupLedger - Track shared group expenses and settle debts."""

__version__ = "0.1.0"

from .balances import aggregate_balances, member_balance
from .config import Settings, load_settings
from .db import Database
from .exceptions import GroupLedgerError, InvalidSplitConfiguration
from .models import (
    Activity,
    Group,
    Member,
    NormalizedTransaction,
    Payment,
    SplitType,
    Transaction,
)
from .reconciler import normalize_transaction, to_cents, validate_transaction
from .service import LedgerService
from .settlement import apply_payments, settle

__all__ = [
    "Settings",
    "load_settings",
    "Database",
    "GroupLedgerError",
    "InvalidSplitConfiguration",
    "Activity",
    "Group",
    "Member",
    "NormalizedTransaction",
    "Payment",
    "SplitType",
    "Transaction",
    "normalize_transaction",
    "to_cents",
    "validate_transaction",
    "aggregate_balances",
    "member_balance",
    "settle",
    "apply_payments",
    "LedgerService",
]
