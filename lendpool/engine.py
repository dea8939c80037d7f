"""Business logic engine for LendPool.

This module provides the LendingEngine class which acts as a facade over
the focused service classes in lendpool/services/. A caller (typically a UI
layer) works through this one object.

Service Classes:
    - LenderService: Lender registration, investments, removal
    - BorrowerService: Borrower registration, removal
    - LoanService: Loan creation and repayment processing
    - ReportGenerator: Portfolio summary and history tables
"""
from lendpool.reports import ReportGenerator
from lendpool.services import BorrowerService, LenderService, LoanService


class LendingEngine:
    """Handles business logic, interfacing with DatabaseManager.

    Attributes:
        db: DatabaseManager instance for data persistence.
        lender_service: LenderService instance (lazy-loaded).
        borrower_service: BorrowerService instance (lazy-loaded).
        loan_service: LoanService instance (lazy-loaded).
        reports: ReportGenerator instance (lazy-loaded).
    """

    def __init__(self, db_manager):
        self.db = db_manager
        self._lender_service = None
        self._borrower_service = None
        self._loan_service = None
        self._reports = None

    @property
    def lender_service(self):
        """Lazy-load LenderService instance."""
        if self._lender_service is None:
            self._lender_service = LenderService(self.db)
        return self._lender_service

    @property
    def borrower_service(self):
        """Lazy-load BorrowerService instance."""
        if self._borrower_service is None:
            self._borrower_service = BorrowerService(self.db)
        return self._borrower_service

    @property
    def loan_service(self):
        """Lazy-load LoanService instance."""
        if self._loan_service is None:
            self._loan_service = LoanService(self.db)
        return self._loan_service

    @property
    def reports(self):
        """Lazy-load ReportGenerator instance."""
        if self._reports is None:
            self._reports = ReportGenerator(self.db)
        return self._reports

    # --- Lenders ---

    def get_lenders(self):
        return self.lender_service.get_lenders()

    def get_lender(self, lender_id):
        return self.lender_service.get_lender(lender_id)

    def add_lender(self, full_name):
        return self.lender_service.add_lender(full_name)

    def invest(self, lender_id, amount, note="", timestamp=None):
        """Record a capital investment. Delegates to LenderService."""
        return self.lender_service.invest(lender_id, amount, note, timestamp)

    def delete_lender(self, lender_id):
        return self.lender_service.delete_lender(lender_id)

    # --- Borrowers ---

    def get_borrowers(self):
        return self.borrower_service.get_borrowers()

    def get_borrower(self, borrower_id):
        return self.borrower_service.get_borrower(borrower_id)

    def add_borrower(self, full_name):
        return self.borrower_service.add_borrower(full_name)

    def delete_borrower(self, borrower_id):
        return self.borrower_service.delete_borrower(borrower_id)

    # --- Loans ---

    def preview_distribution(self, amount, distribution=None):
        """Compute or validate a loan distribution without saving.

        Delegates to LoanService.
        """
        return self.loan_service.preview_distribution(amount, distribution)

    def create_loan(self, borrower_id, amount, monthly_rate, loan_date, note="", distribution=None):
        """Issue a loan funded by the pool.

        Delegates to LoanService.
        """
        return self.loan_service.create_loan(
            borrower_id, amount, monthly_rate, loan_date, note, distribution
        )

    def preview_repayment(self, borrower_id, loan_id, amount, repayment_date):
        return self.loan_service.preview_repayment(borrower_id, loan_id, amount, repayment_date)

    def process_repayment(self, borrower_id, loan_id, amount, repayment_date, note=""):
        """Close a loan and distribute the repayment to its lenders.

        Delegates to LoanService.
        """
        return self.loan_service.process_repayment(
            borrower_id, loan_id, amount, repayment_date, note
        )

    # --- Reports ---

    def portfolio_summary(self, as_of=None):
        return self.reports.portfolio_summary(as_of)

    def get_lender_ledger_df(self, lender_id, start_date=None, end_date=None):
        return self.reports.lender_ledger(lender_id, start_date, end_date)

    def get_borrower_loans_df(self, borrower_id, as_of=None):
        return self.reports.borrower_loans(borrower_id, as_of)
