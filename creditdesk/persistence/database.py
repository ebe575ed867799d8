"""SQLite database for CreditDesk persistence."""

import os
import sqlite3
from pathlib import Path
from typing import Optional, Dict, Any, List
from datetime import datetime, timezone
from contextlib import contextmanager


def _resolve_db_path() -> Path:
    """Resolve DB file path from CREDITDESK_DB_URL (sqlite:///path) or CREDITDESK_DATABASE_PATH."""
    url = os.getenv("CREDITDESK_DB_URL", "").strip()
    if url and url.startswith("sqlite:///"):
        return Path(url.replace("sqlite:///", "", 1))
    return Path(os.getenv("CREDITDESK_DATABASE_PATH", "creditdesk.db"))


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class DuplicatePaymentError(RuntimeError):
    """A ledger entry already exists for this Stripe payment id."""


class Database:
    """SQLite database for users, credit balances and the credit ledger."""

    def __init__(self, db_path: Path = Path("creditdesk.db")):
        """Initialize database.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    email TEXT NOT NULL UNIQUE,
                    name TEXT,
                    email_verified_at TEXT,
                    stripe_customer_id TEXT UNIQUE,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS credit_balances (
                    user_id TEXT PRIMARY KEY,
                    balance INTEGER NOT NULL DEFAULT 0 CHECK (balance >= 0),
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
                )
            """)

            # One row per balance change; stripe_payment_id is the purchase idempotency key
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS credit_transactions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    type TEXT NOT NULL,  -- PURCHASE, BONUS, REFUND, SUBSCRIPTION, USAGE
                    amount INTEGER NOT NULL,
                    balance INTEGER NOT NULL,
                    description TEXT NOT NULL,
                    stripe_payment_id TEXT UNIQUE,
                    bot_id TEXT,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
                )
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_credit_transactions_user
                ON credit_transactions(user_id)
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS action_costs (
                    action_type TEXT PRIMARY KEY,
                    credits INTEGER NOT NULL CHECK (credits >= 0),
                    updated_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS verification_tokens (
                    token TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    email TEXT NOT NULL,
                    expires_at TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
                )
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_verification_tokens_user
                ON verification_tokens(user_id)
            """)

            conn.commit()

        from .schema_version import check_schema_version, set_schema_version, SCHEMA_VERSION
        if not check_schema_version(self):
            set_schema_version(self, SCHEMA_VERSION)

    @contextmanager
    def _get_connection(self):
        """Get database connection with proper error handling."""
        conn = sqlite3.connect(str(self.db_path), timeout=10.0)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")
        try:
            yield conn
        except sqlite3.Error as e:
            conn.rollback()
            raise RuntimeError(f"Database error: {str(e)}") from e
        finally:
            conn.close()

    # User methods
    def create_user(self, user_id: str, email: str, name: Optional[str] = None,
                    email_verified: bool = False) -> str:
        """Create a user.

        Args:
            user_id: Internal user id (generated by caller)
            email: User email address
            name: Optional display name
            email_verified: Mark the email as already verified

        Returns:
            user_id
        """
        now = _now()
        with self._get_connection() as conn:
            conn.execute("""
                INSERT INTO users (id, email, name, email_verified_at, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (user_id, email, name, now if email_verified else None, now, now))
            conn.commit()
        return user_id

    def _user_from_row(self, row: sqlite3.Row) -> Dict[str, Any]:
        return {
            "id": row["id"],
            "email": row["email"],
            "name": row["name"],
            "email_verified": row["email_verified_at"] is not None,
            "email_verified_at": row["email_verified_at"],
            "stripe_customer_id": row["stripe_customer_id"],
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        }

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            return self._user_from_row(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
            return self._user_from_row(row) if row else None

    def set_stripe_customer_id(self, user_id: str, stripe_customer_id: str):
        with self._get_connection() as conn:
            conn.execute("""
                UPDATE users SET stripe_customer_id = ?, updated_at = ? WHERE id = ?
            """, (stripe_customer_id, _now(), user_id))
            conn.commit()

    def mark_email_verified(self, user_id: str):
        now = _now()
        with self._get_connection() as conn:
            conn.execute("""
                UPDATE users SET email_verified_at = ?, updated_at = ? WHERE id = ?
            """, (now, now, user_id))
            conn.execute("DELETE FROM verification_tokens WHERE user_id = ?", (user_id,))
            conn.commit()

    # Verification tokens
    def replace_verification_token(self, user_id: str, email: str, token: str, expires_at: str):
        """Store a new verification token, discarding any earlier ones for the user."""
        with self._get_connection() as conn:
            conn.execute("DELETE FROM verification_tokens WHERE user_id = ?", (user_id,))
            conn.execute("""
                INSERT INTO verification_tokens (token, user_id, email, expires_at, created_at)
                VALUES (?, ?, ?, ?, ?)
            """, (token, user_id, email, expires_at, _now()))
            conn.commit()

    def get_verification_token(self, token: str) -> Optional[Dict[str, Any]]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM verification_tokens WHERE token = ?", (token,)).fetchone()
            if row:
                return {
                    "token": row["token"],
                    "user_id": row["user_id"],
                    "email": row["email"],
                    "expires_at": row["expires_at"],
                    "created_at": row["created_at"],
                }
            return None

    def list_verification_tokens(self, user_id: str) -> List[Dict[str, Any]]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT token FROM verification_tokens WHERE user_id = ?", (user_id,)
            ).fetchall()
        return [self.get_verification_token(r["token"]) for r in rows]

    # Credit ledger
    def get_balance(self, user_id: str) -> int:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT balance FROM credit_balances WHERE user_id = ?", (user_id,)
            ).fetchone()
            return row["balance"] if row else 0

    def add_credits(self, user_id: str, amount: int, tx_type: str, description: str,
                    stripe_payment_id: Optional[str] = None) -> int:
        """Increase a balance and record the ledger entry in one transaction.

        Returns:
            New balance

        Raises:
            DuplicatePaymentError: If stripe_payment_id was already recorded
        """
        now = _now()
        with self._get_connection() as conn:
            try:
                conn.execute("""
                    INSERT INTO credit_balances (user_id, balance, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(user_id) DO UPDATE SET
                        balance = balance + excluded.balance,
                        updated_at = excluded.updated_at
                """, (user_id, amount, now))
                balance = conn.execute(
                    "SELECT balance FROM credit_balances WHERE user_id = ?", (user_id,)
                ).fetchone()["balance"]
                conn.execute("""
                    INSERT INTO credit_transactions
                    (user_id, type, amount, balance, description, stripe_payment_id, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                """, (user_id, tx_type, amount, balance, description, stripe_payment_id, now))
            except sqlite3.IntegrityError as e:
                conn.rollback()
                if stripe_payment_id and "stripe_payment_id" in str(e):
                    raise DuplicatePaymentError(
                        f"Payment {stripe_payment_id} already credited"
                    ) from e
                raise
            conn.commit()
        return balance

    def deduct_credits(self, user_id: str, amount: int, description: str,
                       bot_id: Optional[str] = None) -> bool:
        """Decrease a balance if it covers the amount.

        Returns:
            True if deducted, False if the balance was insufficient
        """
        now = _now()
        with self._get_connection() as conn:
            cursor = conn.execute("""
                UPDATE credit_balances
                SET balance = balance - ?, updated_at = ?
                WHERE user_id = ? AND balance >= ?
            """, (amount, now, user_id, amount))
            if cursor.rowcount == 0:
                conn.rollback()
                return False
            balance = conn.execute(
                "SELECT balance FROM credit_balances WHERE user_id = ?", (user_id,)
            ).fetchone()["balance"]
            conn.execute("""
                INSERT INTO credit_transactions
                (user_id, type, amount, balance, description, bot_id, created_at)
                VALUES (?, 'USAGE', ?, ?, ?, ?, ?)
            """, (user_id, -amount, balance, description, bot_id, now))
            conn.commit()
        return True

    def _transaction_from_row(self, row: sqlite3.Row) -> Dict[str, Any]:
        return {
            "id": row["id"],
            "user_id": row["user_id"],
            "type": row["type"],
            "amount": row["amount"],
            "balance": row["balance"],
            "description": row["description"],
            "stripe_payment_id": row["stripe_payment_id"],
            "bot_id": row["bot_id"],
            "created_at": row["created_at"],
        }

    def get_transaction_by_payment_id(self, stripe_payment_id: str) -> Optional[Dict[str, Any]]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM credit_transactions WHERE stripe_payment_id = ?",
                (stripe_payment_id,),
            ).fetchone()
            return self._transaction_from_row(row) if row else None

    def list_transactions(self, user_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        with self._get_connection() as conn:
            rows = conn.execute("""
                SELECT * FROM credit_transactions WHERE user_id = ?
                ORDER BY id DESC LIMIT ?
            """, (user_id, limit)).fetchall()
            return [self._transaction_from_row(r) for r in rows]

    # Action cost overrides
    def get_action_cost(self, action_type: str) -> Optional[int]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT credits FROM action_costs WHERE action_type = ?", (action_type,)
            ).fetchone()
            return row["credits"] if row else None

    def set_action_cost(self, action_type: str, credits: int):
        with self._get_connection() as conn:
            conn.execute("""
                INSERT INTO action_costs (action_type, credits, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(action_type) DO UPDATE SET
                    credits = excluded.credits,
                    updated_at = excluded.updated_at
            """, (action_type, credits, _now()))
            conn.commit()


# Global database instance
_db_instance: Optional[Database] = None


def get_db() -> Database:
    """Get global database instance."""
    global _db_instance
    if _db_instance is None:
        _db_instance = Database(db_path=_resolve_db_path())
    return _db_instance
