"""Service layer that composes the ledger store and the settlement engine.

The store only holds raw inputs. Balances and suggested payments are computed
on demand from a group's transactions and cached until the group changes.
"""

import logging
import uuid
from decimal import Decimal
from typing import Any

from .balances import aggregate_balances, member_balance
from .config import Settings
from .db import Database
from .exceptions import (
    AmbiguousTransactionError,
    DuplicateMemberError,
    GroupNotFoundError,
    MemberNotFoundError,
    TransactionNotFoundError,
)
from .models import Activity, ActivityType, Group, Member, Payment, Transaction
from .reconciler import validate_transaction
from .settlement import settle

logger = logging.getLogger(__name__)


def new_id() -> str:
    """Generate an opaque ID for groups, members, transactions and activity."""
    return uuid.uuid4().hex


class LedgerService:
    """Service for recording group expenses and reporting how to settle them."""

    def __init__(self, settings: Settings, database: Database):
        """Initialize the ledger service."""
        self.settings = settings
        self.db = database
        self._balances: dict[str, dict[str, Decimal]] = {}
        self._payments: dict[str, list[Payment]] = {}

    def _invalidate(self, group_id: str):
        """Drop cached balances and payments for a group."""
        self._balances.pop(group_id, None)
        self._payments.pop(group_id, None)

    def _actor(self, by: str | None) -> str:
        return self.settings.actor_id if by is None else by

    def _log_activity(
        self,
        group_id: str,
        activity_type: ActivityType,
        data: dict[str, Any],
        by: str | None,
    ) -> Activity:
        activity = Activity(
            id=new_id(),
            group_id=group_id,
            type=activity_type,
            data=data,
            by=self._actor(by),
        )
        self.db.save_activity(activity)
        return activity

    # ========================================================================
    # Groups
    # ========================================================================

    def create_group(self, name: str, currency: str | None = None) -> Group:
        """Create an empty group."""
        group = Group(
            id=new_id(),
            name=name,
            currency=currency or self.settings.default_currency,
        )
        self.db.save_group(group)
        logger.info(f"Created group {group.id} ({name})")
        return group

    def get_group(self, group_id: str) -> Group:
        """
        Load a group.

        Raises:
            GroupNotFoundError: If the group does not exist
        """
        group = self.db.get_group(group_id)
        if group is None:
            raise GroupNotFoundError(group_id)
        return group

    def list_groups(self) -> list[Group]:
        """Load all groups in creation order."""
        return [self.get_group(group_id) for group_id in self.db.get_group_ids()]

    def set_group_name(
        self, group_id: str, name: str, by: str | None = None
    ) -> Activity:
        """Rename a group and log the change."""
        group = self.get_group(group_id)
        with self.db.atomic():
            self.db.update_group(group_id, name, group.currency)
            activity = self._log_activity(
                group_id, "set_group_name", {"prev": group.name, "cur": name}, by
            )
        logger.info(f"Renamed group {group_id} to {name}")
        return activity

    def set_group_currency(
        self, group_id: str, currency: str, by: str | None = None
    ) -> Activity:
        """Change a group's display currency and log the change."""
        group = self.get_group(group_id)
        with self.db.atomic():
            self.db.update_group(group_id, group.name, currency)
            activity = self._log_activity(
                group_id,
                "set_group_currency",
                {"prev": group.currency, "cur": currency},
                by,
            )
        logger.info(f"Set currency of group {group_id} to {currency}")
        return activity

    # ========================================================================
    # Members
    # ========================================================================

    def add_member(
        self, group_id: str, name: str, member_id: str | None = None
    ) -> Member:
        """
        Add a member to a group.

        Raises:
            DuplicateMemberError: If the member ID is already in the group
        """
        group = self.get_group(group_id)
        if member_id and member_id in group.members:
            raise DuplicateMemberError(group_id, member_id)
        member = Member(id=member_id or new_id(), name=name or "Unnamed User")
        self.db.save_member(group_id, member)
        self._invalidate(group_id)
        logger.info(f"Added member {member.id} ({member.name}) to group {group_id}")
        return member

    def update_member(self, group_id: str, member: Member) -> Member:
        """
        Update a member's name or site.

        Raises:
            MemberNotFoundError: If the member is not in the group
        """
        group = self.get_group(group_id)
        if member.id not in group.members:
            raise MemberNotFoundError(group_id, member.id)
        updated = member.model_copy(update={"name": member.name or "Unnamed User"})
        self.db.save_member(group_id, updated)
        return updated

    def delete_member(self, group_id: str, member_id: str):
        """
        Remove a member from a group.

        Transactions that reference the member still count toward balances.

        Raises:
            MemberNotFoundError: If the member is not in the group
        """
        group = self.get_group(group_id)
        if member_id not in group.members:
            raise MemberNotFoundError(group_id, member_id)
        self.db.delete_member(group_id, member_id)
        self._invalidate(group_id)
        logger.info(f"Deleted member {member_id} from group {group_id}")

    # ========================================================================
    # Transactions
    # ========================================================================

    def add_transaction(
        self, group_id: str, transaction: Transaction, by: str | None = None
    ) -> Activity:
        """
        Record a new transaction and log its creation.

        Raises:
            GroupNotFoundError: If the group does not exist
            InvalidSplitConfiguration: If the cost cannot be split
        """
        self.get_group(group_id)
        validate_transaction(transaction)

        with self.db.atomic():
            self.db.save_transaction(group_id, transaction)
            activity = self._log_activity(
                group_id,
                "create_transaction",
                {"cur": transaction.model_dump(mode="json")},
                by,
            )

        self._invalidate(group_id)
        logger.info(f"Added transaction {transaction.id} to group {group_id}")
        return activity

    def update_transaction(
        self, group_id: str, transaction: Transaction, by: str | None = None
    ) -> Activity:
        """
        Replace a transaction's inputs and log the previous and new versions.

        Raises:
            TransactionNotFoundError: If the transaction does not exist
            InvalidSplitConfiguration: If the cost cannot be split
        """
        previous = self.db.get_transaction(group_id, transaction.id)
        if previous is None:
            raise TransactionNotFoundError(group_id, transaction.id)
        validate_transaction(transaction)

        with self.db.atomic():
            self.db.update_transaction(group_id, transaction)
            activity = self._log_activity(
                group_id,
                "update_transaction",
                {
                    "prev": previous.model_dump(mode="json"),
                    "cur": transaction.model_dump(mode="json"),
                },
                by,
            )

        self._invalidate(group_id)
        logger.info(f"Updated transaction {transaction.id} in group {group_id}")
        return activity

    def delete_transaction(
        self, group_id: str, transaction_id: str, by: str | None = None
    ) -> Activity:
        """
        Delete a transaction and log what it was.

        Raises:
            TransactionNotFoundError: If the transaction does not exist
        """
        previous = self.db.get_transaction(group_id, transaction_id)
        if previous is None:
            raise TransactionNotFoundError(group_id, transaction_id)

        with self.db.atomic():
            self.db.delete_transaction(group_id, transaction_id)
            activity = self._log_activity(
                group_id,
                "delete_transaction",
                {"prev": previous.model_dump(mode="json")},
                by,
            )

        self._invalidate(group_id)
        logger.info(f"Deleted transaction {transaction_id} from group {group_id}")
        return activity

    def resolve_transaction_id(self, group_id: str, ref: str) -> str:
        """
        Resolve a full transaction ID or a unique prefix of one.

        Raises:
            TransactionNotFoundError: If nothing matches
            AmbiguousTransactionError: If the prefix matches several transactions
        """
        group = self.get_group(group_id)
        if ref in group.transactions:
            return ref
        matches = [
            tx_id for tx_id in group.transactions if ref and tx_id.startswith(ref)
        ]
        if not matches:
            raise TransactionNotFoundError(group_id, ref)
        if len(matches) > 1:
            raise AmbiguousTransactionError(group_id, ref, matches)
        return matches[0]

    def get_transactions_by_month(
        self, group_id: str
    ) -> list[tuple[str, list[Transaction]]]:
        """
        Group transactions by month, newest first.

        Returns:
            List of (month label such as "January 2026", transactions)
        """
        group = self.get_group(group_id)
        months: list[tuple[str, list[Transaction]]] = []
        for transaction in reversed(list(group.transactions.values())):
            month = transaction.created_at.strftime("%B %Y")
            if months and months[-1][0] == month:
                months[-1][1].append(transaction)
            else:
                months.append((month, [transaction]))
        return months

    # ========================================================================
    # Balances and settlement
    # ========================================================================

    def get_balances(self, group_id: str) -> dict[str, Decimal]:
        """Get every member's net balance, in member ID order."""
        if group_id not in self._balances:
            group = self.get_group(group_id)
            self._balances[group_id] = aggregate_balances(
                group.members.keys(), group.transactions.values()
            )
            logger.debug(f"Computed balances for group {group_id}")
        return dict(self._balances[group_id])

    def get_member_balance(self, group_id: str, member_id: str) -> Decimal:
        """Get one member's net balance."""
        return member_balance(self.get_balances(group_id), member_id)

    def get_payments(self, group_id: str) -> list[Payment]:
        """Get suggested payments that would settle the group."""
        if group_id not in self._payments:
            self._payments[group_id] = settle(self.get_balances(group_id))
            count = len(self._payments[group_id])
            logger.debug(f"Computed {count} payments for group {group_id}")
        return list(self._payments[group_id])

    # ========================================================================
    # Activity
    # ========================================================================

    def get_activity(self, group_id: str) -> list[Activity]:
        """Get a group's activity, newest first."""
        self.get_group(group_id)
        return list(reversed(self.db.get_activity(group_id)))

    def get_all_activity(self) -> list[Activity]:
        """Get activity across all groups, newest first."""
        activity = [
            entry
            for group_id in self.db.get_group_ids()
            for entry in self.db.get_activity(group_id)
        ]
        activity.sort(key=lambda entry: entry.created_at)
        return list(reversed(activity))
