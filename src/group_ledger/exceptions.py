"""Custom exceptions for GroupLedger."""


class GroupLedgerError(Exception):
    """Base exception for all GroupLedger errors."""

    pass


class ConfigurationError(GroupLedgerError):
    """Raised when configuration is invalid or missing."""

    pass


class InvalidSplitConfiguration(GroupLedgerError):
    """Raised when a transaction's cost cannot be divided among its splitters."""

    def __init__(self, transaction_id: str, message: str | None = None):
        self.transaction_id = transaction_id
        super().__init__(
            message
            or f"Transaction {transaction_id} has an invalid split configuration"
        )


class GroupNotFoundError(GroupLedgerError):
    """Raised when a group does not exist in the ledger store."""

    def __init__(self, group_id: str):
        self.group_id = group_id
        super().__init__(f"Group {group_id} not found")


class MemberNotFoundError(GroupLedgerError):
    """Raised when a member does not belong to the group."""

    def __init__(self, group_id: str, member_id: str):
        self.group_id = group_id
        self.member_id = member_id
        super().__init__(f"Member {member_id} not found in group {group_id}")


class TransactionNotFoundError(GroupLedgerError):
    """Raised when a transaction does not exist in the group."""

    def __init__(self, group_id: str, transaction_id: str):
        self.group_id = group_id
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} not found in group {group_id}")


class AmbiguousTransactionError(GroupLedgerError):
    """Raised when a transaction ID prefix matches more than one transaction."""

    def __init__(self, group_id: str, prefix: str, matches: list[str]):
        self.group_id = group_id
        self.prefix = prefix
        self.matches = matches
        super().__init__(
            f"Transaction ID '{prefix}' is ambiguous in group {group_id}: "
            f"matches {len(matches)} transactions"
        )


class DuplicateMemberError(GroupLedgerError):
    """Raised when adding a member whose ID is already taken in the group."""

    def __init__(self, group_id: str, member_id: str):
        self.group_id = group_id
        self.member_id = member_id
        super().__init__(f"Member {member_id} already exists in group {group_id}")
