"""Ledger entities for LendPool.

Lenders own an append-only list of transactions and every running total is
derived from that list. Borrowers own their loans, and each loan owns its
lender contribution snapshot and its repayments.
"""
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import ClassVar, Dict, List, Optional, Tuple, Type

from lendpool.config import (
    CAPACITY_EPSILON,
    DISTRIBUTION_TOLERANCE,
    LOAN_COMPLETED,
    LOAN_PENDING,
    TX_INTEREST,
    TX_INVEST,
    TX_LEND,
    TX_REPAYMENT_RECEIVED,
)
from lendpool.date_math import months_between, to_date
from lendpool.exceptions import (
    DistributionMismatchError,
    InsufficientFundsError,
    InvalidInputError,
    LoanAlreadyCompletedError,
    LoanNotFoundError,
)
from lendpool.interest import check_number, current_outstanding, round_half_up, simple_interest


def generate_id() -> str:
    """Opaque unique identifier for a new entity."""
    return uuid.uuid4().hex


# =============================================================================
# TRANSACTIONS
# =============================================================================

@dataclass(frozen=True)
class Transaction:
    """Immutable ledger entry on a lender's account."""
    amount: float
    timestamp: datetime
    note: str

    tx_type: ClassVar[str] = ""
    auto_generated: ClassVar[bool] = False

    def __post_init__(self):
        check_number("amount", self.amount)

    @property
    def loan_id(self) -> Optional[str]:
        return None


@dataclass(frozen=True)
class ManualInvestment(Transaction):
    """Capital contributed by the lender."""
    tx_type: ClassVar[str] = TX_INVEST


@dataclass(frozen=True)
class SystemTransaction(Transaction):
    """Entry produced by the engine on behalf of a loan."""
    related_loan_id: str

    auto_generated: ClassVar[bool] = True

    @property
    def loan_id(self) -> Optional[str]:
        return self.related_loan_id


@dataclass(frozen=True)
class SystemInterestCredit(SystemTransaction):
    """Lender's share of the interest paid on a loan."""
    tx_type: ClassVar[str] = TX_INTEREST


@dataclass(frozen=True)
class SystemLendAllocation(SystemTransaction):
    """Capital tied up when the lender funds a loan."""
    tx_type: ClassVar[str] = TX_LEND


@dataclass(frozen=True)
class SystemPrincipalReturn(SystemTransaction):
    """Capital released when the funded loan is repaid."""
    tx_type: ClassVar[str] = TX_REPAYMENT_RECEIVED


TRANSACTION_CLASSES: Dict[str, Type[Transaction]] = {
    cls.tx_type: cls
    for cls in (ManualInvestment, SystemInterestCredit, SystemLendAllocation, SystemPrincipalReturn)
}


def make_transaction(tx_type: str, amount: float, timestamp: datetime, note: str = "",
                     loan_id: Optional[str] = None) -> Transaction:
    """Build the transaction variant matching a stored type tag.
    
    Raises:
        InvalidInputError: For an unknown type, or a system entry without a loan id.
    """
    cls = TRANSACTION_CLASSES.get(tx_type)
    if cls is None:
        raise InvalidInputError("transaction type", tx_type, "is not recognised")
    if issubclass(cls, SystemTransaction):
        if not loan_id:
            raise InvalidInputError("loan_id", loan_id, f"is required for '{tx_type}' entries")
        return cls(amount=amount, timestamp=timestamp, note=note, related_loan_id=loan_id)
    return cls(amount=amount, timestamp=timestamp, note=note)


# =============================================================================
# LENDERS
# =============================================================================

@dataclass
class Lender:
    """Capital provider whose invested funds and earned interest back loans."""
    full_name: str
    id: str = field(default_factory=generate_id)
    created_at: datetime = field(default_factory=datetime.now)
    transactions: List[Transaction] = field(default_factory=list)

    def _sum(self, tx_type: str) -> float:
        return sum(tx.amount for tx in self.transactions if tx.tx_type == tx_type)

    @property
    def total_invested(self) -> float:
        return self._sum(TX_INVEST)

    @property
    def total_interest_earned(self) -> float:
        return self._sum(TX_INTEREST)

    @property
    def total_lent(self) -> float:
        """Capital currently tied up in active loans."""
        return self._sum(TX_LEND) - self._sum(TX_REPAYMENT_RECEIVED)

    @property
    def available_funds(self) -> float:
        return self.total_invested + self.total_interest_earned - self.total_lent

    @property
    def total_lendable_funds(self) -> float:
        """Invested capital plus interest earned."""
        return self.total_invested + self.total_interest_earned

    # Same figure under the name the portfolio view uses
    total_portfolio_value = total_lendable_funds

    @property
    def utilization_rate(self) -> float:
        """Percentage of lendable funds currently lent out."""
        total = self.total_lendable_funds
        if total == 0:
            return 0.0
        return round_half_up(self.total_lent / total * 100, 2)

    def add_transaction(self, transaction: Transaction) -> Transaction:
        """Append a transaction, enforcing the lender's balance invariants."""
        if transaction.tx_type == TX_LEND:
            available = self.available_funds
            if transaction.amount > available + CAPACITY_EPSILON:
                raise InsufficientFundsError(transaction.amount, available, self.id)
        elif transaction.tx_type == TX_REPAYMENT_RECEIVED:
            lent = self.total_lent
            if transaction.amount > lent + CAPACITY_EPSILON:
                raise InvalidInputError(
                    "amount", transaction.amount, f"exceeds the {lent} currently lent by '{self.id}'"
                )
        self.transactions.append(transaction)
        return transaction

    def invest(self, amount: float, note: str = "", timestamp: datetime = None) -> Transaction:
        """Record new capital contributed by the lender."""
        return self.add_transaction(ManualInvestment(
            amount=amount, timestamp=timestamp or datetime.now(), note=note
        ))

    def add_interest_credit(self, amount: float, loan_id: str, borrower_name: str,
                            timestamp: datetime = None) -> Transaction:
        return self.add_transaction(SystemInterestCredit(
            amount=amount,
            timestamp=timestamp or datetime.now(),
            note=f"Auto-generated interest from {borrower_name} (Loan: {loan_id})",
            related_loan_id=loan_id,
        ))

    def add_lending(self, amount: float, loan_id: str, borrower_name: str,
                    timestamp: datetime = None) -> Transaction:
        return self.add_transaction(SystemLendAllocation(
            amount=amount,
            timestamp=timestamp or datetime.now(),
            note=f"Lent to {borrower_name} (Loan: {loan_id})",
            related_loan_id=loan_id,
        ))

    def add_repayment_received(self, amount: float, loan_id: str, borrower_name: str,
                               timestamp: datetime = None) -> Transaction:
        return self.add_transaction(SystemPrincipalReturn(
            amount=amount,
            timestamp=timestamp or datetime.now(),
            note=f"Principal repayment from {borrower_name} (Loan: {loan_id})",
            related_loan_id=loan_id,
        ))


# =============================================================================
# LOANS
# =============================================================================

@dataclass(frozen=True)
class LenderContribution:
    """Snapshot of one lender's stake in a loan, taken when the loan is created."""
    lender_id: str
    lender_name: str
    amount_given: float
    percentage: float


@dataclass(frozen=True)
class Repayment:
    """Settlement of a loan, with what was contractually expected at that date."""
    amount: float
    repayment_date: date
    months_duration: float
    calculated_interest: float
    expected_total: float
    actual_vs_expected: float
    note: str = ""


@dataclass
class Loan:
    """Interest-bearing loan funded by one or more lenders."""
    amount: float
    monthly_rate: float
    loan_date: date
    lenders: List[LenderContribution] = field(default_factory=list)
    note: str = ""
    status: str = LOAN_PENDING
    repayments: List[Repayment] = field(default_factory=list)
    id: str = field(default_factory=generate_id)

    def __post_init__(self):
        self.loan_date = to_date(self.loan_date)
        if self.status not in (LOAN_PENDING, LOAN_COMPLETED):
            raise InvalidInputError("status", self.status, "is not a loan state")
        if self.lenders:
            funded = self.total_lent_amount
            if abs(funded - self.amount) >= DISTRIBUTION_TOLERANCE:
                raise DistributionMismatchError(self.amount, funded)

    @property
    def is_pending(self) -> bool:
        return self.status == LOAN_PENDING

    @property
    def is_completed(self) -> bool:
        return self.status == LOAN_COMPLETED

    @property
    def total_lent_amount(self) -> float:
        return sum(c.amount_given for c in self.lenders)

    @property
    def total_repaid(self) -> float:
        return sum(r.amount for r in self.repayments)

    @property
    def actual_repayment_date(self) -> Optional[date]:
        return self.repayments[-1].repayment_date if self.repayments else None

    @property
    def actual_months_duration(self) -> Optional[float]:
        return self.repayments[-1].months_duration if self.repayments else None

    def months_elapsed(self, as_of=None) -> float:
        return months_between(self.loan_date, as_of if as_of is not None else date.today())

    def current_expected_total(self, as_of=None) -> float:
        return current_outstanding(self.amount, self.monthly_rate, self.loan_date, as_of)

    def outstanding(self, as_of=None) -> float:
        """What is still owed on a pending loan; 0 once completed."""
        if not self.is_pending:
            return 0.0
        return max(0.0, self.current_expected_total(as_of) - self.total_repaid)

    def record_repayment(self, amount: float, repayment_date, note: str = "") -> Repayment:
        """Settle the loan. The first repayment closes it.

        Raises:
            LoanAlreadyCompletedError: If the loan is already completed.
            InvalidInputError: For a non-positive amount or a date before the loan date.
        """
        if not self.is_pending:
            raise LoanAlreadyCompletedError(self.id, self.status)
        amount = check_number("amount", amount)
        repayment_date = to_date(repayment_date)
        months = months_between(self.loan_date, repayment_date)
        if months < 0:
            raise InvalidInputError("repayment_date", repayment_date, "is earlier than the loan date")

        interest = simple_interest(self.amount, self.monthly_rate, months)
        expected_total = self.amount + interest
        repayment = Repayment(
            amount=amount,
            repayment_date=repayment_date,
            months_duration=months,
            calculated_interest=interest,
            expected_total=expected_total,
            actual_vs_expected=amount - expected_total,
            note=note,
        )
        self.repayments.append(repayment)
        self.status = LOAN_COMPLETED
        return repayment


# =============================================================================
# BORROWERS
# =============================================================================

@dataclass
class Borrower:
    """Recipient of pooled lender capital through one or more loans."""
    full_name: str
    id: str = field(default_factory=generate_id)
    loans: List[Loan] = field(default_factory=list)

    def add_loan(self, amount: float, monthly_rate: float, loan_date, note: str = "",
                 lenders: List[LenderContribution] = None) -> Loan:
        loan = Loan(
            amount=amount,
            monthly_rate=monthly_rate,
            loan_date=loan_date,
            note=note,
            lenders=list(lenders or []),
        )
        self.loans.append(loan)
        return loan

    def get_loan(self, loan_id: str) -> Loan:
        for loan in self.loans:
            if loan.id == loan_id:
                return loan
        raise LoanNotFoundError(loan_id, self.id)

    def add_repayment(self, loan_id: str, amount: float, repayment_date, note: str = "") -> Repayment:
        return self.get_loan(loan_id).record_repayment(amount, repayment_date, note)

    @property
    def pending_loans(self) -> List[Loan]:
        return [loan for loan in self.loans if loan.is_pending]

    @property
    def total_borrowed(self) -> float:
        return sum(loan.amount for loan in self.loans)

    @property
    def total_repaid(self) -> float:
        return sum(loan.total_repaid for loan in self.loans)

    def outstanding_amount(self, as_of=None) -> float:
        """Sum over pending loans of the expected total to date less repayments."""
        return sum(loan.outstanding(as_of) for loan in self.pending_loans)


# =============================================================================
# REPAYMENT DISTRIBUTION
# =============================================================================

@dataclass(frozen=True)
class RepaymentShare:
    """One lender's part of a repayment."""
    lender_id: str
    lender_name: str
    original_contribution: float
    principal_return: float
    interest_earned: float
    total_return: float
    expected_interest: float
    interest_difference: float
    percentage_share: float


@dataclass(frozen=True)
class RepaymentSummary:
    """How a repayment splits back across the lenders who funded the loan."""
    loan_id: str
    loan_amount: float
    expected_interest: float
    expected_total: float
    actual_repayment: float
    actual_interest: float
    months_duration: float
    monthly_rate: float
    distribution: Tuple[RepaymentShare, ...]

    @property
    def total_principal_returned(self) -> float:
        return sum(share.principal_return for share in self.distribution)

    @property
    def total_returned(self) -> float:
        return sum(share.total_return for share in self.distribution)
