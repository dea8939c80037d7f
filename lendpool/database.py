"""Database management module for LendPool.

DatabaseManager is the persistence gateway for the lending engine: it loads
and saves whole Lender and Borrower aggregates, and offers a transaction
context so that a loan or repayment touching several entities commits as one
unit.
"""
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime

import pandas as pd

from lendpool.config import DEFAULT_DB_NAME
from lendpool.exceptions import TransactionError
from lendpool.logging import get_logger
from lendpool.models import (
    Borrower,
    Lender,
    LenderContribution,
    Loan,
    Repayment,
    make_transaction,
)
from lendpool.result import ErrorType, Result

logger = get_logger(__name__)


class DatabaseManager:
    """Handles all SQLite database operations."""

    def __init__(self, db_name=DEFAULT_DB_NAME):
        self.db_name = db_name
        self.conn = sqlite3.connect(db_name)
        self.conn.execute("PRAGMA foreign_keys = ON")
        self._closed = False
        self._transaction_depth = 0
        self.create_tables()

    def close(self):
        """Close the database connection."""
        if self.conn and not self._closed:
            self.conn.close()
            self._closed = True

    def __del__(self):
        """Ensure connection is closed on garbage collection."""
        self.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @property
    def in_transaction(self):
        return self._transaction_depth > 0

    @contextmanager
    def transaction(self):
        """Context manager for multi-entity writes with automatic rollback on failure.

        Usage:
            with db.transaction():
                db.save_lender(lender)
                db.save_borrower(borrower)

        Saves made inside the block are not committed individually. If any
        exception occurs, everything written in the block is rolled back.
        Nested blocks join the outermost one.
        """
        self._transaction_depth += 1
        try:
            yield
        except sqlite3.Error as e:
            self._transaction_depth -= 1
            if not self.in_transaction:
                self.conn.rollback()
            raise TransactionError(f"Transaction failed: {str(e)}")
        except Exception:
            self._transaction_depth -= 1
            if not self.in_transaction:
                self.conn.rollback()
            raise
        else:
            self._transaction_depth -= 1
            if not self.in_transaction:
                try:
                    self.conn.commit()
                except sqlite3.Error as e:
                    self.conn.rollback()
                    raise TransactionError(f"Commit failed: {str(e)}")

    def _finish_write(self):
        if not self.in_transaction:
            self.conn.commit()

    def _abort_write(self):
        if not self.in_transaction and not self._closed:
            self.conn.rollback()

    def create_tables(self):
        cursor = self.conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS lenders (
                id TEXT PRIMARY KEY,
                full_name TEXT NOT NULL,
                created_at TEXT
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS lender_transactions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                lender_id TEXT NOT NULL,
                seq INTEGER NOT NULL,
                tx_type TEXT NOT NULL,
                amount REAL NOT NULL,
                timestamp TEXT NOT NULL,
                note TEXT DEFAULT '',
                loan_id TEXT,
                auto_generated INTEGER DEFAULT 0,
                FOREIGN KEY(lender_id) REFERENCES lenders(id) ON DELETE CASCADE
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS borrowers (
                id TEXT PRIMARY KEY,
                full_name TEXT NOT NULL
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS loans (
                id TEXT PRIMARY KEY,
                borrower_id TEXT NOT NULL,
                seq INTEGER NOT NULL,
                amount REAL NOT NULL,
                monthly_rate REAL NOT NULL,
                loan_date TEXT NOT NULL,
                note TEXT DEFAULT '',
                status TEXT NOT NULL,
                FOREIGN KEY(borrower_id) REFERENCES borrowers(id) ON DELETE CASCADE
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS loan_contributions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                loan_id TEXT NOT NULL,
                seq INTEGER NOT NULL,
                lender_id TEXT NOT NULL,
                lender_name TEXT,
                amount_given REAL NOT NULL,
                percentage REAL NOT NULL,
                FOREIGN KEY(loan_id) REFERENCES loans(id) ON DELETE CASCADE
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS repayments (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                loan_id TEXT NOT NULL,
                seq INTEGER NOT NULL,
                amount REAL NOT NULL,
                repayment_date TEXT NOT NULL,
                months_duration REAL NOT NULL,
                calculated_interest REAL NOT NULL,
                expected_total REAL NOT NULL,
                actual_vs_expected REAL NOT NULL,
                note TEXT DEFAULT '',
                FOREIGN KEY(loan_id) REFERENCES loans(id) ON DELETE CASCADE
            )
        """)
        self.conn.commit()

    # =========================================================================
    # LENDERS
    # =========================================================================

    def load_lenders(self):
        """Load every lender with its full transaction history."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT id, full_name, created_at FROM lenders ORDER BY rowid")
        lenders = []
        for lender_id, full_name, created_at in cursor.fetchall():
            lenders.append(Lender(
                full_name=full_name,
                id=lender_id,
                created_at=datetime.fromisoformat(created_at),
                transactions=self._load_transactions(lender_id),
            ))
        return lenders

    def _load_transactions(self, lender_id):
        cursor = self.conn.cursor()
        cursor.execute("""
            SELECT tx_type, amount, timestamp, note, loan_id
            FROM lender_transactions WHERE lender_id = ? ORDER BY seq
        """, (lender_id,))
        return [
            make_transaction(tx_type, amount, datetime.fromisoformat(timestamp), note or "", loan_id)
            for tx_type, amount, timestamp, note, loan_id in cursor.fetchall()
        ]

    def save_lender(self, lender):
        """Insert or replace a lender and its transactions.

        Returns:
            Result.ok(lender.id) or Result.fail with the database error.
        """
        try:
            cursor = self.conn.cursor()
            cursor.execute("""
                INSERT INTO lenders (id, full_name, created_at) VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET full_name = excluded.full_name, created_at = excluded.created_at
            """, (lender.id, lender.full_name, lender.created_at.isoformat()))
            cursor.execute("DELETE FROM lender_transactions WHERE lender_id = ?", (lender.id,))
            cursor.executemany("""
                INSERT INTO lender_transactions (
                    lender_id, seq, tx_type, amount, timestamp, note, loan_id, auto_generated
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, [
                (lender.id, seq, tx.tx_type, tx.amount, tx.timestamp.isoformat(), tx.note,
                 tx.loan_id, int(tx.auto_generated))
                for seq, tx in enumerate(lender.transactions)
            ])
            self._finish_write()
        except sqlite3.Error as e:
            self._abort_write()
            logger.error("Could not save lender %s: %s", lender.id, e)
            return Result.fail(str(e), ErrorType.DATABASE)
        return Result.ok(lender.id)

    def delete_lender(self, lender_id):
        try:
            self.conn.execute("DELETE FROM lenders WHERE id = ?", (lender_id,))
            self._finish_write()
        except sqlite3.Error as e:
            self._abort_write()
            return Result.fail(str(e), ErrorType.DATABASE)
        return Result.ok(lender_id)

    def get_lender_ledger(self, lender_id, start_date=None, end_date=None):
        """Transactions of one lender as a DataFrame, oldest first."""
        query = """
            SELECT seq, tx_type, amount, timestamp, note, loan_id, auto_generated
            FROM lender_transactions WHERE lender_id = ?
        """
        params = [lender_id]

        if start_date:
            query += " AND timestamp >= ?"
            params.append(_as_iso(start_date))
        if end_date:
            query += " AND substr(timestamp, 1, 10) <= ?"
            params.append(_as_iso(end_date)[:10])

        query += " ORDER BY seq"

        return pd.read_sql_query(query, self.conn, params=tuple(params))

    # =========================================================================
    # BORROWERS
    # =========================================================================

    def load_borrowers(self):
        """Load every borrower with loans, contributions and repayments."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT id, full_name FROM borrowers ORDER BY rowid")
        return [
            Borrower(full_name=full_name, id=borrower_id, loans=self._load_loans(borrower_id))
            for borrower_id, full_name in cursor.fetchall()
        ]

    def _load_loans(self, borrower_id):
        cursor = self.conn.cursor()
        cursor.execute("""
            SELECT id, amount, monthly_rate, loan_date, note, status
            FROM loans WHERE borrower_id = ? ORDER BY seq
        """, (borrower_id,))
        loans = []
        for loan_id, amount, monthly_rate, loan_date, note, status in cursor.fetchall():
            loans.append(Loan(
                amount=amount,
                monthly_rate=monthly_rate,
                loan_date=date.fromisoformat(loan_date),
                lenders=self._load_contributions(loan_id),
                note=note or "",
                status=status,
                repayments=self._load_repayments(loan_id),
                id=loan_id,
            ))
        return loans

    def _load_contributions(self, loan_id):
        cursor = self.conn.cursor()
        cursor.execute("""
            SELECT lender_id, lender_name, amount_given, percentage
            FROM loan_contributions WHERE loan_id = ? ORDER BY seq
        """, (loan_id,))
        return [LenderContribution(*row) for row in cursor.fetchall()]

    def _load_repayments(self, loan_id):
        cursor = self.conn.cursor()
        cursor.execute("""
            SELECT amount, repayment_date, months_duration, calculated_interest,
                   expected_total, actual_vs_expected, note
            FROM repayments WHERE loan_id = ? ORDER BY seq
        """, (loan_id,))
        return [
            Repayment(
                amount=amount,
                repayment_date=date.fromisoformat(repayment_date),
                months_duration=months,
                calculated_interest=interest,
                expected_total=expected_total,
                actual_vs_expected=difference,
                note=note or "",
            )
            for amount, repayment_date, months, interest, expected_total, difference, note
            in cursor.fetchall()
        ]

    def save_borrower(self, borrower):
        """Insert or replace a borrower and everything it owns.

        Returns:
            Result.ok(borrower.id) or Result.fail with the database error.
        """
        try:
            cursor = self.conn.cursor()
            cursor.execute("""
                INSERT INTO borrowers (id, full_name) VALUES (?, ?)
                ON CONFLICT(id) DO UPDATE SET full_name = excluded.full_name
            """, (borrower.id, borrower.full_name))
            # Children go with their loans through ON DELETE CASCADE
            cursor.execute("DELETE FROM loans WHERE borrower_id = ?", (borrower.id,))
            for seq, loan in enumerate(borrower.loans):
                cursor.execute("""
                    INSERT INTO loans (id, borrower_id, seq, amount, monthly_rate, loan_date, note, status)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """, (loan.id, borrower.id, seq, loan.amount, loan.monthly_rate,
                      loan.loan_date.isoformat(), loan.note, loan.status))
                cursor.executemany("""
                    INSERT INTO loan_contributions (loan_id, seq, lender_id, lender_name, amount_given, percentage)
                    VALUES (?, ?, ?, ?, ?, ?)
                """, [
                    (loan.id, c_seq, c.lender_id, c.lender_name, c.amount_given, c.percentage)
                    for c_seq, c in enumerate(loan.lenders)
                ])
                cursor.executemany("""
                    INSERT INTO repayments (
                        loan_id, seq, amount, repayment_date, months_duration,
                        calculated_interest, expected_total, actual_vs_expected, note
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, [
                    (loan.id, r_seq, r.amount, r.repayment_date.isoformat(), r.months_duration,
                     r.calculated_interest, r.expected_total, r.actual_vs_expected, r.note)
                    for r_seq, r in enumerate(loan.repayments)
                ])
            self._finish_write()
        except sqlite3.Error as e:
            self._abort_write()
            logger.error("Could not save borrower %s: %s", borrower.id, e)
            return Result.fail(str(e), ErrorType.DATABASE)
        return Result.ok(borrower.id)

    def delete_borrower(self, borrower_id):
        try:
            self.conn.execute("DELETE FROM borrowers WHERE id = ?", (borrower_id,))
            self._finish_write()
        except sqlite3.Error as e:
            self._abort_write()
            return Result.fail(str(e), ErrorType.DATABASE)
        return Result.ok(borrower_id)

    def get_borrower_loans(self, borrower_id):
        """Loans of one borrower as a DataFrame with their repaid totals."""
        query = """
            SELECT l.id AS loan_id, l.amount, l.monthly_rate, l.loan_date, l.status, l.note,
                   COALESCE(SUM(r.amount), 0) AS total_repaid
            FROM loans l LEFT JOIN repayments r ON r.loan_id = l.id
            WHERE l.borrower_id = ?
            GROUP BY l.id
            ORDER BY l.seq
        """
        return pd.read_sql_query(query, self.conn, params=(borrower_id,))

    # =========================================================================
    # MAINTENANCE
    # =========================================================================

    def clear_all_data(self):
        """Remove every lender and borrower."""
        try:
            self.conn.execute("DELETE FROM lenders")
            self.conn.execute("DELETE FROM borrowers")
            self._finish_write()
        except sqlite3.Error as e:
            self._abort_write()
            return Result.fail(str(e), ErrorType.DATABASE)
        return Result.ok()


def _as_iso(value):
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)
