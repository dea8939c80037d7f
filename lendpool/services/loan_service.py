"""Loan lifecycle service for LendPool.

This service handles the two operations that touch several entities at once:
- Loan creation (borrower gets a loan, every funding lender gets a lend entry)
- Repayment processing (loan is closed, every funding lender gets its
  principal back plus its share of the interest)

Each operation loads fresh copies of the lenders and borrowers, applies all
changes to those copies in memory, and only then writes them back inside a
single database transaction. A failure at any step leaves storage untouched.
"""
from datetime import datetime

from lendpool.date_math import to_date
from lendpool.exceptions import BorrowerNotFoundError, LenderNotFoundError, PersistenceError
from lendpool.interest import check_number
from lendpool.logging import get_logger
from lendpool.services.allocation import (
    build_manual_distribution,
    calculate_repayment_distribution,
    distribute_loan,
    validate_distribution,
)

logger = get_logger(__name__)


def _start_of_day(value):
    return datetime.combine(value, datetime.min.time())


class LoanService:
    """Handles loan creation and repayment processing."""

    def __init__(self, db_manager):
        """Initialize LoanService.

        Args:
            db_manager: DatabaseManager instance for data persistence.
        """
        self.db = db_manager

    def _find_borrower(self, borrowers, borrower_id):
        for borrower in borrowers:
            if borrower.id == borrower_id:
                return borrower
        raise BorrowerNotFoundError(borrower_id)

    def _find_lender(self, lenders, lender_id):
        for lender in lenders:
            if lender.id == lender_id:
                return lender
        raise LenderNotFoundError(lender_id)

    def _commit(self, lenders, borrower, operation):
        """Write the touched lenders and the borrower as one unit of work."""
        with self.db.transaction():
            for lender in lenders:
                result = self.db.save_lender(lender)
                if not result:
                    raise PersistenceError("lender", lender.id, operation, result.error)
            result = self.db.save_borrower(borrower)
            if not result:
                raise PersistenceError("borrower", borrower.id, operation, result.error)

    def preview_distribution(self, amount, distribution=None):
        """Compute or validate a distribution against the current lenders without saving anything.

        Args:
            amount: Loan principal.
            distribution: None for the proportional split, a ``{lender_id: amount}``
                mapping for manual shares, or a list of LenderContribution.

        Returns:
            List of LenderContribution.
        """
        lenders = self.db.load_lenders()
        return self._resolve_distribution(amount, lenders, distribution)

    def _resolve_distribution(self, amount, lenders, distribution):
        if distribution is None:
            return distribute_loan(amount, lenders)
        if isinstance(distribution, dict):
            return build_manual_distribution(amount, lenders, distribution)
        return validate_distribution(amount, lenders, list(distribution))

    def create_loan(self, borrower_id, amount, monthly_rate, loan_date, note="", distribution=None):
        """Issue a loan funded by the lender pool.

        Args:
            borrower_id: ID of the borrower receiving the loan.
            amount: Loan principal.
            monthly_rate: Monthly interest rate in percent.
            loan_date: Date the loan is issued.
            note: Optional free-text note.
            distribution: See preview_distribution.

        Returns:
            The new Loan, status pending.

        Raises:
            InvalidInputError, InsufficientFundsError, DistributionMismatchError,
            NotFoundError, PersistenceError, TransactionError
        """
        amount = check_number("amount", amount)
        monthly_rate = check_number("monthly_rate", monthly_rate)
        loan_date = to_date(loan_date)

        lenders = self.db.load_lenders()
        borrower = self._find_borrower(self.db.load_borrowers(), borrower_id)
        contributions = self._resolve_distribution(amount, lenders, distribution)

        loan = borrower.add_loan(amount, monthly_rate, loan_date, note, contributions)
        touched = []
        for contribution in contributions:
            lender = self._find_lender(lenders, contribution.lender_id)
            lender.add_lending(contribution.amount_given, loan.id, borrower.full_name, _start_of_day(loan_date))
            touched.append(lender)

        try:
            self._commit(touched, borrower, "create loan")
        except Exception:
            logger.warning("Loan for borrower %s rolled back", borrower_id)
            raise

        logger.info(
            "Loan %s of %s created for %s, funded by %d lender(s)",
            loan.id, amount, borrower.full_name, len(contributions)
        )
        return loan

    def preview_repayment(self, borrower_id, loan_id, amount, repayment_date):
        """Show how a repayment would be split without recording it."""
        borrower = self._find_borrower(self.db.load_borrowers(), borrower_id)
        loan = borrower.get_loan(loan_id)
        return calculate_repayment_distribution(loan, amount, repayment_date)

    def process_repayment(self, borrower_id, loan_id, amount, repayment_date, note=""):
        """Close a loan and pay every funding lender its principal and interest share.

        Returns:
            RepaymentSummary with the per-lender breakdown.

        Raises:
            LoanAlreadyCompletedError: If the loan was already repaid.
            InvalidInputError, NotFoundError, PersistenceError, TransactionError
        """
        lenders = self.db.load_lenders()
        borrower = self._find_borrower(self.db.load_borrowers(), borrower_id)
        loan = borrower.get_loan(loan_id)

        summary = calculate_repayment_distribution(loan, amount, repayment_date)
        repayment = loan.record_repayment(amount, repayment_date, note)
        stamp = _start_of_day(repayment.repayment_date)

        touched = []
        for share in summary.distribution:
            lender = self._find_lender(lenders, share.lender_id)
            if share.interest_earned > 0:
                lender.add_interest_credit(share.interest_earned, loan.id, borrower.full_name, stamp)
            lender.add_repayment_received(share.principal_return, loan.id, borrower.full_name, stamp)
            touched.append(lender)

        try:
            self._commit(touched, borrower, "process repayment")
        except Exception:
            logger.warning("Repayment of loan %s rolled back", loan_id)
            raise

        logger.info(
            "Loan %s repaid with %s (%s interest over %s months)",
            loan.id, summary.actual_repayment, summary.actual_interest, summary.months_duration
        )
        return summary
