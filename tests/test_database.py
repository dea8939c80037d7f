"""Tests for the SQLite persistence gateway."""
import sqlite3
import unittest
from datetime import date, datetime

from lendpool.database import DatabaseManager
from lendpool.exceptions import TransactionError
from lendpool.models import Borrower, Lender, LenderContribution


def sample_lender():
    lender = Lender(full_name="Asha", created_at=datetime(2024, 1, 1, 8, 0))
    lender.invest(1000, "seed", datetime(2024, 1, 1, 9, 0))
    lender.add_lending(600, "loan-1", "Chris", datetime(2024, 2, 1))
    lender.add_interest_credit(30, "loan-1", "Chris", datetime(2024, 4, 1))
    lender.add_repayment_received(600, "loan-1", "Chris", datetime(2024, 4, 1))
    return lender


def sample_borrower(lender):
    borrower = Borrower(full_name="Chris")
    loan = borrower.add_loan(600, 2.5, "2024-02-01", "stock", [
        LenderContribution(lender.id, lender.full_name, 600, 100.0)
    ])
    borrower.add_repayment(loan.id, 630, "2024-04-01", "settled")
    borrower.add_loan(200, 1, "2024-05-01", "", [
        LenderContribution(lender.id, lender.full_name, 200, 100.0)
    ])
    return borrower


class TestRoundTrip(unittest.TestCase):

    def setUp(self):
        self.db = DatabaseManager(":memory:")

    def tearDown(self):
        self.db.close()

    def test_lender_round_trip(self):
        lender = sample_lender()
        self.assertTrue(self.db.save_lender(lender))

        loaded = self.db.load_lenders()
        self.assertEqual(loaded, [lender])
        self.assertEqual(loaded[0].available_funds, 1030)

    def test_borrower_round_trip(self):
        lender = sample_lender()
        borrower = sample_borrower(lender)
        self.db.save_lender(lender)
        self.assertTrue(self.db.save_borrower(borrower))

        loaded = self.db.load_borrowers()
        self.assertEqual(loaded, [borrower])
        self.assertEqual(loaded[0].loans[0].repayments[0].repayment_date, date(2024, 4, 1))

    def test_saving_twice_is_idempotent(self):
        lender = sample_lender()
        borrower = sample_borrower(lender)
        for _ in range(2):
            self.db.save_lender(lender)
            self.db.save_borrower(borrower)

        self.assertEqual(self.db.load_lenders(), [lender])
        self.assertEqual(self.db.load_borrowers(), [borrower])
        count = self.db.conn.execute("SELECT COUNT(*) FROM lender_transactions").fetchone()[0]
        self.assertEqual(count, 4)

    def test_save_result_carries_id(self):
        lender = Lender(full_name="Ben")
        result = self.db.save_lender(lender)
        self.assertEqual(result.unwrap(), lender.id)

    def test_delete_cascades(self):
        lender = sample_lender()
        borrower = sample_borrower(lender)
        self.db.save_lender(lender)
        self.db.save_borrower(borrower)

        self.assertTrue(self.db.delete_lender(lender.id))
        self.assertTrue(self.db.delete_borrower(borrower.id))
        for table in ("lender_transactions", "loans", "loan_contributions", "repayments"):
            count = self.db.conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
            self.assertEqual(count, 0, table)

    def test_clear_all_data(self):
        lender = sample_lender()
        self.db.save_lender(lender)
        self.db.save_borrower(sample_borrower(lender))
        self.assertTrue(self.db.clear_all_data())
        self.assertEqual(self.db.load_lenders(), [])
        self.assertEqual(self.db.load_borrowers(), [])


class TestTransactions(unittest.TestCase):

    def setUp(self):
        self.db = DatabaseManager(":memory:")

    def tearDown(self):
        self.db.close()

    def test_commit(self):
        with self.db.transaction():
            self.db.save_lender(Lender(full_name="Asha"))
            self.assertTrue(self.db.in_transaction)
        self.assertFalse(self.db.in_transaction)
        self.assertEqual(len(self.db.load_lenders()), 1)

    def test_rollback_on_error(self):
        with self.assertRaises(RuntimeError):
            with self.db.transaction():
                self.db.save_lender(Lender(full_name="Asha"))
                self.db.save_borrower(Borrower(full_name="Chris"))
                raise RuntimeError("boom")
        self.assertEqual(self.db.load_lenders(), [])
        self.assertEqual(self.db.load_borrowers(), [])
        self.assertFalse(self.db.in_transaction)

    def test_nested_blocks_join_outer(self):
        with self.assertRaises(ValueError):
            with self.db.transaction():
                self.db.save_lender(Lender(full_name="Asha"))
                with self.db.transaction():
                    self.db.save_lender(Lender(full_name="Ben"))
                raise ValueError("outer failure")
        self.assertEqual(self.db.load_lenders(), [])

    def test_sqlite_error_becomes_transaction_error(self):
        with self.assertRaises(TransactionError):
            with self.db.transaction():
                self.db.conn.execute("INSERT INTO missing_table VALUES (1)")

    def test_failed_save_returns_result(self):
        self.db.conn.execute("DROP TABLE lender_transactions")
        result = self.db.save_lender(sample_lender())
        self.assertFalse(result)
        self.assertEqual(result.error_type, "DATABASE")
        self.assertIn("lender_transactions", result.error)

    def test_context_manager_closes(self):
        with DatabaseManager(":memory:") as db:
            db.save_lender(Lender(full_name="Asha"))
        self.assertTrue(db._closed)
        with self.assertRaises(sqlite3.ProgrammingError):
            db.conn.execute("SELECT 1")


class TestQueries(unittest.TestCase):

    def setUp(self):
        self.db = DatabaseManager(":memory:")
        self.lender = sample_lender()
        self.borrower = sample_borrower(self.lender)
        self.db.save_lender(self.lender)
        self.db.save_borrower(self.borrower)

    def tearDown(self):
        self.db.close()

    def test_lender_ledger(self):
        df = self.db.get_lender_ledger(self.lender.id)
        self.assertEqual(list(df["tx_type"]), ["invest", "lend", "interest", "repayment_received"])
        self.assertEqual(list(df["auto_generated"]), [0, 1, 1, 1])

    def test_lender_ledger_date_range(self):
        df = self.db.get_lender_ledger(self.lender.id, "2024-02-01", "2024-03-31")
        self.assertEqual(list(df["tx_type"]), ["lend"])

        df = self.db.get_lender_ledger(self.lender.id, end_date=date(2024, 1, 1))
        self.assertEqual(list(df["tx_type"]), ["invest"])

    def test_borrower_loans(self):
        df = self.db.get_borrower_loans(self.borrower.id)
        self.assertEqual(list(df["status"]), ["completed", "pending"])
        self.assertEqual(list(df["total_repaid"]), [630, 0])
        self.assertEqual(list(df["loan_date"]), ["2024-02-01", "2024-05-01"])


if __name__ == "__main__":
    unittest.main(verbosity=2)
