"""Tests for the ledger entities."""
import unittest
from dataclasses import FrozenInstanceError
from datetime import date, datetime

from lendpool.config import LOAN_COMPLETED, LOAN_PENDING
from lendpool.exceptions import (
    DistributionMismatchError,
    InsufficientFundsError,
    InvalidInputError,
    LoanAlreadyCompletedError,
    LoanNotFoundError,
)
from lendpool.models import (
    Borrower,
    Lender,
    LenderContribution,
    Loan,
    ManualInvestment,
    SystemInterestCredit,
    SystemLendAllocation,
    SystemPrincipalReturn,
    make_transaction,
)


class TestLender(unittest.TestCase):

    def setUp(self):
        self.lender = Lender(full_name="Asha")

    def test_new_lender_has_zero_balances(self):
        self.assertEqual(self.lender.total_invested, 0)
        self.assertEqual(self.lender.total_interest_earned, 0)
        self.assertEqual(self.lender.total_lent, 0)
        self.assertEqual(self.lender.available_funds, 0)
        self.assertEqual(self.lender.utilization_rate, 0.0)

    def test_totals_follow_transactions(self):
        self.lender.invest(1000, "seed")
        self.lender.add_lending(400, "loan-1", "Chris")
        self.assertEqual(self.lender.total_lent, 400)
        self.assertEqual(self.lender.available_funds, 600)
        self.assertEqual(self.lender.utilization_rate, 40.0)

        self.lender.add_interest_credit(50, "loan-1", "Chris")
        self.lender.add_repayment_received(400, "loan-1", "Chris")
        self.assertEqual(self.lender.total_invested, 1000)
        self.assertEqual(self.lender.total_interest_earned, 50)
        self.assertEqual(self.lender.total_lent, 0)
        self.assertEqual(self.lender.available_funds, 1050)
        self.assertEqual(self.lender.total_portfolio_value, 1050)
        self.assertEqual(len(self.lender.transactions), 4)

    def test_utilization_rounds_half_up(self):
        self.lender.invest(800)
        self.lender.add_lending(1, "loan-1", "Chris")
        # 1 / 800 is 0.125%
        self.assertEqual(self.lender.utilization_rate, 0.13)

    def test_cannot_lend_more_than_available(self):
        self.lender.invest(100)
        with self.assertRaises(InsufficientFundsError) as context:
            self.lender.add_lending(150, "loan-1", "Chris")
        self.assertEqual(context.exception.available, 100)
        self.assertEqual(len(self.lender.transactions), 1)

    def test_cannot_receive_more_principal_than_lent(self):
        self.lender.invest(100)
        self.lender.add_lending(50, "loan-1", "Chris")
        with self.assertRaises(InvalidInputError):
            self.lender.add_repayment_received(60, "loan-1", "Chris")

    def test_non_positive_investment_rejected(self):
        with self.assertRaises(InvalidInputError):
            self.lender.invest(0)
        with self.assertRaises(InvalidInputError):
            self.lender.invest(-10)


class TestTransactions(unittest.TestCase):

    def test_variants_carry_type_and_origin(self):
        now = datetime(2024, 1, 1)
        invest = ManualInvestment(amount=10, timestamp=now, note="")
        lend = SystemLendAllocation(amount=10, timestamp=now, note="", related_loan_id="L1")
        self.assertEqual(invest.tx_type, "invest")
        self.assertFalse(invest.auto_generated)
        self.assertIsNone(invest.loan_id)
        self.assertEqual(lend.tx_type, "lend")
        self.assertTrue(lend.auto_generated)
        self.assertEqual(lend.loan_id, "L1")

    def test_transactions_are_immutable(self):
        tx = ManualInvestment(amount=10, timestamp=datetime(2024, 1, 1), note="")
        with self.assertRaises(FrozenInstanceError):
            tx.amount = 20

    def test_make_transaction(self):
        now = datetime(2024, 1, 1)
        self.assertIsInstance(make_transaction("interest", 5, now, "", "L1"), SystemInterestCredit)
        self.assertIsInstance(make_transaction("repayment_received", 5, now, "", "L1"), SystemPrincipalReturn)
        self.assertIsInstance(make_transaction("invest", 5, now), ManualInvestment)

    def test_make_transaction_rejects_unknown_or_unlinked(self):
        now = datetime(2024, 1, 1)
        with self.assertRaises(InvalidInputError):
            make_transaction("withdraw", 5, now)
        with self.assertRaises(InvalidInputError):
            make_transaction("lend", 5, now)


def _loan(amount=100000, rate=1.5, loan_date="2024-01-01"):
    return Loan(
        amount=amount,
        monthly_rate=rate,
        loan_date=loan_date,
        lenders=[
            LenderContribution("L1", "Asha", amount * 0.7, 70.0),
            LenderContribution("L2", "Ben", amount * 0.3, 30.0),
        ],
    )


class TestLoan(unittest.TestCase):

    def test_contributions_must_cover_principal(self):
        with self.assertRaises(DistributionMismatchError):
            Loan(amount=1000, monthly_rate=1, loan_date="2024-01-01",
                 lenders=[LenderContribution("L1", "Asha", 900, 90.0)])

    def test_loan_date_is_coerced(self):
        self.assertEqual(_loan().loan_date, date(2024, 1, 1))
        self.assertEqual(_loan().status, LOAN_PENDING)

    def test_record_repayment_completes_loan(self):
        loan = _loan()
        repayment = loan.record_repayment(110000, "2024-06-01", "settled")
        self.assertEqual(loan.status, LOAN_COMPLETED)
        self.assertEqual(repayment.months_duration, 5.0)
        self.assertEqual(repayment.calculated_interest, 7500)
        self.assertEqual(repayment.expected_total, 107500)
        self.assertEqual(repayment.actual_vs_expected, 2500)
        self.assertEqual(loan.actual_repayment_date, date(2024, 6, 1))
        self.assertEqual(loan.total_repaid, 110000)

    def test_second_repayment_fails(self):
        loan = _loan()
        loan.record_repayment(110000, "2024-06-01")
        with self.assertRaises(LoanAlreadyCompletedError):
            loan.record_repayment(1000, "2024-07-01")
        self.assertEqual(len(loan.repayments), 1)

    def test_repayment_before_loan_date_fails(self):
        loan = _loan()
        with self.assertRaises(InvalidInputError):
            loan.record_repayment(110000, "2023-12-01")
        self.assertTrue(loan.is_pending)

    def test_outstanding(self):
        loan = _loan(amount=10000, rate=2)
        self.assertEqual(loan.outstanding("2024-04-01"), 10600)
        loan.record_repayment(10600, "2024-04-01")
        self.assertEqual(loan.outstanding("2024-05-01"), 0)


class TestBorrower(unittest.TestCase):

    def test_totals(self):
        borrower = Borrower(full_name="Chris")
        first = borrower.add_loan(10000, 2, "2024-01-01", lenders=[
            LenderContribution("L1", "Asha", 10000, 100.0)
        ])
        borrower.add_loan(5000, 1, "2024-02-01", lenders=[
            LenderContribution("L1", "Asha", 5000, 100.0)
        ])
        self.assertEqual(borrower.total_borrowed, 15000)
        # 10000 * 1.06 + 5000 * 1.02
        self.assertAlmostEqual(borrower.outstanding_amount("2024-04-01"), 15700)

        borrower.add_repayment(first.id, 10600, "2024-04-01")
        self.assertEqual(borrower.total_repaid, 10600)
        self.assertEqual(len(borrower.pending_loans), 1)
        self.assertAlmostEqual(borrower.outstanding_amount("2024-04-01"), 5100)

    def test_unknown_loan(self):
        with self.assertRaises(LoanNotFoundError):
            Borrower(full_name="Chris").get_loan("missing")


if __name__ == "__main__":
    unittest.main(verbosity=2)
