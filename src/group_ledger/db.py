"""SQLite database operations for GroupLedger."""

import json
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from .models import Activity, Group, Member, SplitType, Transaction


class Database:
    """SQLite database manager.

    Only raw transaction inputs (payers and splitters) are stored; computed
    splits are always rederived.
    """

    def __init__(self, db_path: Path):
        """Initialize database connection."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self._in_atomic = False
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()

        # Groups table
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS ledger_groups (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                currency TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        # Members table
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS members (
                id TEXT NOT NULL,
                group_id TEXT NOT NULL,
                name TEXT NOT NULL,
                site_id TEXT,
                PRIMARY KEY (group_id, id)
            )
        """
        )

        # Transactions table
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS transactions (
                id TEXT NOT NULL,
                group_id TEXT NOT NULL,
                type TEXT NOT NULL,
                description TEXT NOT NULL,
                split_type INTEGER NOT NULL,
                data TEXT NOT NULL,
                position INTEGER NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (group_id, id)
            )
        """
        )

        # Activity log table (append-only)
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS activity (
                id TEXT PRIMARY KEY,
                group_id TEXT NOT NULL,
                type TEXT NOT NULL,
                data TEXT NOT NULL,
                actor TEXT NOT NULL DEFAULT '',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Run several operations in one database transaction."""
        self._in_atomic = True
        try:
            yield
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        finally:
            self._in_atomic = False

    def _commit(self):
        """Commit unless an atomic block will commit for us."""
        if not self._in_atomic:
            self.conn.commit()

    # ========================================================================
    # Group operations
    # ========================================================================

    def save_group(self, group: Group):
        """Insert a group (without its members or transactions)."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO ledger_groups (id, name, currency, created_at)
            VALUES (?, ?, ?, ?)
            """,
            (group.id, group.name, group.currency, group.created_at.isoformat()),
        )
        self._commit()

    def update_group(self, group_id: str, name: str, currency: str):
        """Update a group's name and currency."""
        cursor = self.conn.cursor()
        cursor.execute(
            "UPDATE ledger_groups SET name = ?, currency = ? WHERE id = ?",
            (name, currency, group_id),
        )
        self._commit()

    def get_group(self, group_id: str) -> Group | None:
        """Load a group with its members, transactions and activity."""
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT id, name, currency, created_at FROM ledger_groups WHERE id = ?",
            (group_id,),
        )
        row = cursor.fetchone()
        if not row:
            return None

        return Group(
            id=row["id"],
            name=row["name"],
            currency=row["currency"],
            created_at=datetime.fromisoformat(row["created_at"]),
            members={member.id: member for member in self.get_members(group_id)},
            transactions={tx.id: tx for tx in self.get_transactions(group_id)},
            activity=self.get_activity(group_id),
        )

    def get_group_ids(self) -> list[str]:
        """Get all group IDs in creation order."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT id FROM ledger_groups ORDER BY created_at, rowid")
        return [row["id"] for row in cursor.fetchall()]

    # ========================================================================
    # Member operations
    # ========================================================================

    def save_member(self, group_id: str, member: Member):
        """Insert or update a member."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO members (id, group_id, name, site_id)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(group_id, id) DO UPDATE SET
                name = excluded.name,
                site_id = excluded.site_id
            """,
            (member.id, group_id, member.name, member.site_id),
        )
        self._commit()

    def delete_member(self, group_id: str, member_id: str):
        """Delete a member."""
        cursor = self.conn.cursor()
        cursor.execute(
            "DELETE FROM members WHERE group_id = ? AND id = ?", (group_id, member_id)
        )
        self._commit()

    def get_members(self, group_id: str) -> list[Member]:
        """Get all members of a group."""
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT id, name, site_id FROM members WHERE group_id = ? ORDER BY rowid",
            (group_id,),
        )
        return [
            Member(id=row["id"], name=row["name"], site_id=row["site_id"])
            for row in cursor.fetchall()
        ]

    # ========================================================================
    # Transaction operations
    # ========================================================================

    def save_transaction(self, group_id: str, transaction: Transaction):
        """Append a transaction at the end of the group's order."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT COALESCE(MAX(position), -1) + 1
            FROM transactions
            WHERE group_id = ?
            """,
            (group_id,),
        )
        position = cursor.fetchone()[0]
        cursor.execute(
            """
            INSERT INTO transactions (
                id, group_id, type, description, split_type, data,
                position, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                transaction.id,
                group_id,
                transaction.type,
                transaction.description,
                int(transaction.split_type),
                _encode_split_data(transaction),
                position,
                transaction.created_at.isoformat(),
            ),
        )
        self._commit()

    def update_transaction(self, group_id: str, transaction: Transaction):
        """Update a transaction in place, keeping its position."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            UPDATE transactions
            SET type = ?, description = ?, split_type = ?, data = ?
            WHERE group_id = ? AND id = ?
            """,
            (
                transaction.type,
                transaction.description,
                int(transaction.split_type),
                _encode_split_data(transaction),
                group_id,
                transaction.id,
            ),
        )
        self._commit()

    def delete_transaction(self, group_id: str, transaction_id: str):
        """Delete a transaction."""
        cursor = self.conn.cursor()
        cursor.execute(
            "DELETE FROM transactions WHERE group_id = ? AND id = ?",
            (group_id, transaction_id),
        )
        self._commit()

    def get_transaction(self, group_id: str, transaction_id: str) -> Transaction | None:
        """Get a transaction by ID."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT id, type, description, split_type, data, created_at
            FROM transactions
            WHERE group_id = ? AND id = ?
            """,
            (group_id, transaction_id),
        )
        row = cursor.fetchone()
        return _row_to_transaction(row) if row else None

    def get_transactions(self, group_id: str) -> list[Transaction]:
        """Get all transactions of a group in insertion order."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT id, type, description, split_type, data, created_at
            FROM transactions
            WHERE group_id = ?
            ORDER BY position
            """,
            (group_id,),
        )
        return [_row_to_transaction(row) for row in cursor.fetchall()]

    # ========================================================================
    # Activity operations
    # ========================================================================

    def save_activity(self, activity: Activity):
        """Append an activity log entry."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO activity (id, group_id, type, data, actor, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                activity.id,
                activity.group_id,
                activity.type,
                json.dumps(activity.data),
                activity.by,
                activity.created_at.isoformat(),
            ),
        )
        self._commit()

    def get_activity(self, group_id: str) -> list[Activity]:
        """Get a group's activity log, oldest first."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT id, group_id, type, data, actor, created_at
            FROM activity
            WHERE group_id = ?
            ORDER BY created_at, rowid
            """,
            (group_id,),
        )
        return [
            Activity(
                id=row["id"],
                group_id=row["group_id"],
                type=row["type"],
                data=json.loads(row["data"]),
                by=row["actor"],
                created_at=datetime.fromisoformat(row["created_at"]),
            )
            for row in cursor.fetchall()
        ]


def _encode_split_data(transaction: Transaction) -> str:
    """Serialize payer and splitter inputs as JSON with string amounts."""
    return json.dumps(
        {
            "payers": {k: str(v) for k, v in transaction.payers.items()},
            "splitters": {k: str(v) for k, v in transaction.splitters.items()},
        }
    )


def _row_to_transaction(row: sqlite3.Row) -> Transaction:
    """Build a Transaction from a database row."""
    data = json.loads(row["data"])
    return Transaction(
        id=row["id"],
        type=row["type"],
        description=row["description"],
        split_type=SplitType(row["split_type"]),
        payers={k: Decimal(v) for k, v in data.get("payers", {}).items()},
        splitters={k: Decimal(v) for k, v in data.get("splitters", {}).items()},
        created_at=datetime.fromisoformat(row["created_at"]),
    )
