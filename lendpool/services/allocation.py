"""Allocation rules for LendPool.

Two directions of the same proportional split:
- A new loan's principal is spread over the lenders that still have
  available funds, in proportion to those funds.
- A repayment is spread back over the lenders that funded the loan, in
  proportion to what each of them contributed.

These functions only compute; applying the result to lenders and borrowers
is the job of LoanService.
"""
from typing import Dict, Iterable, List, Mapping

from lendpool.config import CAPACITY_EPSILON, DISTRIBUTION_TOLERANCE
from lendpool.date_math import months_between, to_date
from lendpool.exceptions import (
    DistributionMismatchError,
    InsufficientFundsError,
    InvalidInputError,
    LenderNotFoundError,
    LoanAlreadyCompletedError,
)
from lendpool.interest import check_number, round_currency, round_half_up, simple_interest
from lendpool.logging import get_logger
from lendpool.models import Lender, LenderContribution, Loan, RepaymentShare, RepaymentSummary

logger = get_logger(__name__)


def _contribution(lender: Lender, amount: float, total_amount: float) -> LenderContribution:
    return LenderContribution(
        lender_id=lender.id,
        lender_name=lender.full_name,
        amount_given=amount,
        percentage=(amount / total_amount) * 100,
    )


def distribute_loan(total_amount, lenders: Iterable[Lender]) -> List[LenderContribution]:
    """Split a loan's principal across lenders in proportion to their available funds.

    Every lender except the last receives its proportional share rounded to
    a whole currency unit, capped by its available funds and by what is
    left to allocate. The last lender takes whatever remains, so the
    contributions always add up to exactly ``total_amount``. If that
    remainder is more than the last lender can cover, the excess goes to
    the earlier lenders' unused capacity in order.

    Args:
        total_amount: Loan principal.
        lenders: Candidate lenders; those without available funds are skipped.

    Returns:
        Contributions in lender order, omitting zero allocations.

    Raises:
        InvalidInputError: If total_amount is not a positive number.
        InsufficientFundsError: If the lenders cannot cover total_amount.
    """
    total_amount = check_number("amount", total_amount)
    funded = [lender for lender in lenders if lender.available_funds > 0]
    total_available = sum(lender.available_funds for lender in funded)

    if not funded or total_available + CAPACITY_EPSILON < total_amount:
        raise InsufficientFundsError(total_amount, total_available)

    allocations: Dict[str, float] = {}
    remaining = total_amount
    last_index = len(funded) - 1

    for index, lender in enumerate(funded):
        available = lender.available_funds
        if index == last_index:
            allocation = remaining
        else:
            proportion = available / total_available
            allocation = min(round_half_up(total_amount * proportion, 0), available, remaining)
        allocations[lender.id] = allocation
        remaining = round_currency(remaining - allocation)

    last = funded[last_index]
    overflow = allocations[last.id] - last.available_funds
    if overflow > CAPACITY_EPSILON:
        allocations[last.id] = last.available_funds
        for lender in funded[:last_index]:
            spare = lender.available_funds - allocations[lender.id]
            if spare <= 0:
                continue
            extra = min(spare, overflow)
            allocations[lender.id] += extra
            overflow -= extra
            if overflow <= CAPACITY_EPSILON:
                break

    distribution = [
        _contribution(lender, allocations[lender.id], total_amount)
        for lender in funded
        if allocations[lender.id] > 0
    ]
    logger.debug("Distributed %s over %d lenders", total_amount, len(distribution))
    return validate_distribution(total_amount, funded, distribution)


def validate_distribution(total_amount, lenders: Iterable[Lender],
                          distribution: List[LenderContribution]) -> List[LenderContribution]:
    """Check that a distribution can fund a loan of ``total_amount``.

    The same rules apply whether the distribution was computed or entered
    by hand: every lender must exist and be able to cover its share, and
    the shares must add up to the loan amount within one hundredth of a
    currency unit.

    Returns:
        The distribution, unchanged.

    Raises:
        InvalidInputError: Non-positive amounts or a lender listed twice.
        LenderNotFoundError: A contribution names an unknown lender.
        InsufficientFundsError: The pool or a single lender cannot cover its share.
        DistributionMismatchError: The shares do not add up to the loan amount.
    """
    total_amount = check_number("amount", total_amount)
    by_id = {lender.id: lender for lender in lenders}

    pool_available = sum(max(0.0, lender.available_funds) for lender in by_id.values())
    if pool_available + CAPACITY_EPSILON < total_amount:
        raise InsufficientFundsError(total_amount, pool_available)

    if not distribution:
        raise DistributionMismatchError(total_amount, 0.0)

    seen = set()
    for contribution in distribution:
        if contribution.lender_id in seen:
            raise InvalidInputError("lender_id", contribution.lender_id, "appears more than once")
        seen.add(contribution.lender_id)

        lender = by_id.get(contribution.lender_id)
        if lender is None:
            raise LenderNotFoundError(contribution.lender_id)
        check_number("amount_given", contribution.amount_given)
        if contribution.amount_given > lender.available_funds + CAPACITY_EPSILON:
            raise InsufficientFundsError(contribution.amount_given, lender.available_funds, lender.id)

    allocated = sum(c.amount_given for c in distribution)
    if abs(allocated - total_amount) >= DISTRIBUTION_TOLERANCE:
        raise DistributionMismatchError(total_amount, allocated)
    return distribution


def build_manual_distribution(total_amount, lenders: Iterable[Lender],
                              amounts: Mapping[str, float]) -> List[LenderContribution]:
    """Turn hand-entered ``{lender_id: amount}`` shares into a validated distribution.

    Zero amounts are dropped. Contributions follow the order of ``lenders``.
    """
    total_amount = check_number("amount", total_amount)
    lenders = list(lenders)
    known = {lender.id for lender in lenders}
    for lender_id in amounts:
        if lender_id not in known:
            raise LenderNotFoundError(lender_id)

    distribution = []
    for lender in lenders:
        amount = amounts.get(lender.id, 0)
        if amount == 0:
            continue
        check_number("amount_given", amount)
        distribution.append(_contribution(lender, float(amount), total_amount))
    return validate_distribution(total_amount, lenders, distribution)


def calculate_repayment_distribution(loan: Loan, actual_amount, repayment_date) -> RepaymentSummary:
    """Split a repayment back across the loan's contributing lenders.

    Principal is returned in full to each lender before anything counts as
    interest; a repayment below the principal yields no interest at all.
    Interest is shared in exact proportion to the original contributions,
    without rounding.

    Raises:
        LoanAlreadyCompletedError: If the loan has already been repaid.
        InvalidInputError: For a non-positive amount or a date before the loan date.
    """
    if not loan.is_pending:
        raise LoanAlreadyCompletedError(loan.id, loan.status)
    actual_amount = check_number("amount", actual_amount)
    repayment_date = to_date(repayment_date)

    months_actual = months_between(loan.loan_date, repayment_date)
    if months_actual < 0:
        raise InvalidInputError("repayment_date", repayment_date, "is earlier than the loan date")

    expected_interest = simple_interest(loan.amount, loan.monthly_rate, months_actual)
    expected_total = loan.amount + expected_interest
    actual_interest = max(0.0, actual_amount - loan.amount)
    total_lent_amount = loan.total_lent_amount

    shares = []
    for contribution in loan.lenders:
        proportion = contribution.amount_given / total_lent_amount
        interest_share = actual_interest * proportion
        expected_share = expected_interest * proportion
        shares.append(RepaymentShare(
            lender_id=contribution.lender_id,
            lender_name=contribution.lender_name,
            original_contribution=contribution.amount_given,
            principal_return=contribution.amount_given,
            interest_earned=interest_share,
            total_return=contribution.amount_given + interest_share,
            expected_interest=expected_share,
            interest_difference=interest_share - expected_share,
            percentage_share=proportion * 100,
        ))

    return RepaymentSummary(
        loan_id=loan.id,
        loan_amount=loan.amount,
        expected_interest=expected_interest,
        expected_total=expected_total,
        actual_repayment=actual_amount,
        actual_interest=actual_interest,
        months_duration=months_actual,
        monthly_rate=loan.monthly_rate,
        distribution=tuple(shares),
    )
