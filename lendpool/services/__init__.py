"""Services package for LendPool business logic.

This package contains the focused service classes the LendingEngine facade
delegates to, plus the pure allocation rules they share.
"""

from .allocation import (
    build_manual_distribution,
    calculate_repayment_distribution,
    distribute_loan,
    validate_distribution,
)
from .borrower_service import BorrowerService
from .lender_service import LenderService
from .loan_service import LoanService

__all__ = ['LoanService', 'LenderService', 'BorrowerService',
           'distribute_loan', 'validate_distribution', 'build_manual_distribution',
           'calculate_repayment_distribution']
