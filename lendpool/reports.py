"""
Report generation module for LendPool.
Builds the portfolio summary and the per-lender / per-borrower history tables.
"""
from datetime import date

import pandas as pd

from lendpool.config import LOAN_PENDING, TRANSACTION_TYPES, TX_LEND, TX_REPAYMENT_RECEIVED
from lendpool.date_math import months_between, to_date
from lendpool.interest import calculate_roi, current_outstanding, round_half_up


class ReportGenerator:
    def __init__(self, db_manager):
        self.db = db_manager

    def portfolio_summary(self, as_of=None):
        """Totals across every lender and borrower.

        Args:
            as_of: Date used to value pending loans (default today).

        Returns:
            dict with "lenders", "borrowers" and "overall" sections.
        """
        lenders = self.db.load_lenders()
        borrowers = self.db.load_borrowers()

        total_invested = sum(l.total_invested for l in lenders)
        total_interest = sum(l.total_interest_earned for l in lenders)
        total_lent = sum(l.total_lent for l in lenders)
        lendable = total_invested + total_interest

        return {
            "lenders": {
                "count": len(lenders),
                "total_invested": total_invested,
                "interest_earned": total_interest,
                "active_lending": total_lent,
                "available_funds": sum(l.available_funds for l in lenders),
                "portfolio_value": lendable,
            },
            "borrowers": {
                "count": len(borrowers),
                "total_borrowed": sum(b.total_borrowed for b in borrowers),
                "total_repaid": sum(b.total_repaid for b in borrowers),
                "outstanding": sum(b.outstanding_amount(as_of) for b in borrowers),
            },
            "overall": {
                "total_transactions": sum(len(l.transactions) for l in lenders)
                                      + sum(len(b.loans) for b in borrowers),
                "active_loans": sum(len(b.pending_loans) for b in borrowers),
                "roi": calculate_roi(total_invested, total_interest),
                "fund_utilization": round_half_up(total_lent / lendable * 100, 2) if lendable else 0.0,
            },
        }

    def lender_overview(self):
        """One row per lender with its derived balances."""
        rows = [
            {
                "lender_id": l.id,
                "full_name": l.full_name,
                "total_invested": l.total_invested,
                "interest_earned": l.total_interest_earned,
                "total_lent": l.total_lent,
                "available_funds": l.available_funds,
                "utilization_rate": l.utilization_rate,
                "roi": calculate_roi(l.total_invested, l.total_interest_earned),
            }
            for l in self.db.load_lenders()
        ]
        return pd.DataFrame(rows, columns=[
            "lender_id", "full_name", "total_invested", "interest_earned",
            "total_lent", "available_funds", "utilization_rate", "roi",
        ])

    def lender_ledger(self, lender_id, start_date=None, end_date=None):
        """Transaction history of a lender with timestamps parsed."""
        df = self.db.get_lender_ledger(lender_id, start_date, end_date)
        if not df.empty:
            df["timestamp"] = pd.to_datetime(df["timestamp"], format="ISO8601")
            df["auto_generated"] = df["auto_generated"].astype(bool)
        return df

    def ledger_totals(self, ledger_df):
        """Per-type totals of a lender ledger plus the amount still lent out."""
        totals = {tx_type: 0.0 for tx_type in TRANSACTION_TYPES}
        if not ledger_df.empty:
            sums = ledger_df.groupby("tx_type")["amount"].sum()
            for tx_type, amount in sums.items():
                totals[tx_type] = float(amount)
        totals["net_lent"] = totals[TX_LEND] - totals[TX_REPAYMENT_RECEIVED]
        return totals

    def borrower_loans(self, borrower_id, as_of=None):
        """Loans of a borrower valued at ``as_of`` (default today).

        Pending loans show the months elapsed so far, the amount expected if
        settled now and what remains outstanding; completed loans show zero
        outstanding.
        """
        as_of = to_date(as_of) if as_of is not None else date.today()
        df = self.db.get_borrower_loans(borrower_id)
        if df.empty:
            return df

        pending = df["status"] == LOAN_PENDING
        df["months_so_far"] = df["loan_date"].apply(lambda d: max(0.0, months_between(d, as_of)))
        df["current_expected_total"] = df.apply(
            lambda row: current_outstanding(row["amount"], row["monthly_rate"], row["loan_date"], as_of),
            axis=1,
        )
        df["outstanding"] = (df["current_expected_total"] - df["total_repaid"]).clip(lower=0)
        df.loc[~pending, "outstanding"] = 0.0
        return df
