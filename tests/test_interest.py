"""Tests for interest, EMI and maturity calculations."""
import math
import unittest
from datetime import date

from lendpool.exceptions import InvalidInputError
from lendpool.interest import (
    annualized_roi,
    calculate_roi,
    check_number,
    compound_interest_monthly,
    current_outstanding,
    emi,
    loan_maturity,
    round_currency,
    simple_interest,
    total_repayment,
)


class TestSimpleAndCompound(unittest.TestCase):

    def test_simple_interest(self):
        self.assertEqual(simple_interest(100000, 2, 3), 6000)
        self.assertAlmostEqual(simple_interest(100000, 1.5, 0.97), 1455.0)

    def test_simple_interest_zero_months(self):
        self.assertEqual(simple_interest(5000, 2, 0), 0)

    def test_compound_interest(self):
        self.assertAlmostEqual(compound_interest_monthly(1000, 10, 2), 210.0)

    def test_total_repayment(self):
        self.assertEqual(total_repayment(10000, 2, 6), 11200)

    def test_rejects_non_numeric(self):
        with self.assertRaises(InvalidInputError):
            simple_interest("1000", 2, 3)
        with self.assertRaises(InvalidInputError):
            simple_interest(1000, 2, -1)


class TestEMI(unittest.TestCase):

    def test_matches_closed_form(self):
        principal, rate, n = 500000, 1.5, 60
        r = rate / 100
        expected = principal * r * (1 + r) ** n / ((1 + r) ** n - 1)
        self.assertAlmostEqual(emi(principal, rate, n), expected, delta=0.005)
        self.assertAlmostEqual(emi(principal, rate, n), 12696.7, delta=0.5)

    def test_result_is_rounded_to_cents(self):
        value = emi(500000, 1.5, 60)
        self.assertEqual(value, round_currency(value))

    def test_zero_rate_is_straight_line(self):
        self.assertEqual(emi(1200, 0, 12), 100.0)

    def test_non_positive_tenure_fails(self):
        with self.assertRaises(InvalidInputError):
            emi(1000, 1, 0)
        with self.assertRaises(InvalidInputError):
            emi(1000, 1, -3)

    def test_rate_at_or_below_minus_100_fails(self):
        with self.assertRaises(InvalidInputError):
            emi(1000, -100, 12)


class TestMaturityAndOutstanding(unittest.TestCase):

    def test_loan_maturity(self):
        result = loan_maturity(10000, 2, "2024-01-31", 1)
        self.assertEqual(result.maturity_date, date(2024, 2, 29))
        self.assertEqual(result.start_date, date(2024, 1, 31))
        self.assertEqual(result.interest, 200)
        self.assertEqual(result.total_amount, 10200)
        self.assertEqual(result.monthly_interest, 200)

    def test_loan_maturity_rejects_zero_duration(self):
        with self.assertRaises(InvalidInputError):
            loan_maturity(10000, 2, "2024-01-01", 0)

    def test_current_outstanding(self):
        self.assertEqual(current_outstanding(10000, 2, "2024-01-01", "2024-04-01"), 10600)

    def test_current_outstanding_before_loan_date(self):
        self.assertEqual(current_outstanding(10000, 2, "2024-05-01", "2024-04-01"), 10000)


class TestROI(unittest.TestCase):

    def test_roi(self):
        self.assertEqual(calculate_roi(1000, 50), 5.0)
        self.assertEqual(calculate_roi(0, 50), 0.0)

    def test_annualized(self):
        self.assertEqual(annualized_roi(1.25), 15.0)


class TestHelpers(unittest.TestCase):

    def test_round_currency_half_up(self):
        self.assertEqual(round_currency(2.675), 2.68)
        self.assertEqual(round_currency(0.125), 0.13)

    def test_check_number(self):
        self.assertEqual(check_number("amount", 5), 5.0)
        self.assertEqual(check_number("amount", 0, allow_zero=True), 0.0)
        for bad in (True, None, "5", math.nan, math.inf, -1, 0):
            with self.assertRaises(InvalidInputError):
                check_number("amount", bad)


if __name__ == "__main__":
    unittest.main(verbosity=2)
