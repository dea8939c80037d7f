"""Interest, EMI and maturity calculations for LendPool.

All rates are monthly percentages (1.5 means 1.5% per month), never
annualized.
"""
import math
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from numbers import Real

from lendpool.config import CURRENCY_DECIMALS
from lendpool.date_math import add_months, months_between, to_date
from lendpool.exceptions import InvalidInputError


def round_half_up(value: float, places: int = CURRENCY_DECIMALS) -> float:
    """Round half away from zero to the given number of decimal places."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def round_currency(value: float) -> float:
    """Round an amount to cents."""
    return round_half_up(value, CURRENCY_DECIMALS)


def check_number(field: str, value, allow_zero: bool = False, allow_negative: bool = False) -> float:
    """Validate a numeric input and return it as float.
    
    Args:
        field: Name reported in the error.
        value: Value to check.
        allow_zero: Accept 0.
        allow_negative: Accept negative values.
        
    Raises:
        InvalidInputError: If the value is not a finite number or is out of range.
    """
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidInputError(field, value, "is not a number")
    value = float(value)
    if not math.isfinite(value):
        raise InvalidInputError(field, value, "is not finite")
    if allow_negative:
        return value
    if value < 0 or (value == 0 and not allow_zero):
        raise InvalidInputError(field, value, "must be positive" if not allow_zero else "must not be negative")
    return value


def simple_interest(principal, monthly_rate, months) -> float:
    """Simple interest: principal x rate x months / 100."""
    principal = check_number("principal", principal, allow_zero=True)
    monthly_rate = check_number("monthly_rate", monthly_rate, allow_zero=True)
    months = check_number("months", months, allow_zero=True)
    return (principal * monthly_rate * months) / 100


def compound_interest_monthly(principal, monthly_rate, months) -> float:
    """Interest from compounding once per month."""
    principal = check_number("principal", principal, allow_zero=True)
    monthly_rate = check_number("monthly_rate", monthly_rate, allow_zero=True)
    months = check_number("months", months, allow_zero=True)
    amount = principal * math.pow(1 + monthly_rate / 100, months)
    return amount - principal


def emi(principal, monthly_rate, tenure_months) -> float:
    """Equal monthly installment for a fully amortizing loan.
    
    EMI = P * r * (1 + r)^n / ((1 + r)^n - 1), with r = monthly_rate / 100,
    rounded to cents. A zero rate degenerates to P / n.
    
    Raises:
        InvalidInputError: If tenure_months <= 0 or the rate is -100% or lower.
    """
    principal = check_number("principal", principal, allow_zero=True)
    monthly_rate = check_number("monthly_rate", monthly_rate, allow_negative=True)
    tenure_months = check_number("tenure_months", tenure_months)
    
    rate = monthly_rate / 100
    if rate <= -1:
        raise InvalidInputError("monthly_rate", monthly_rate, "must be greater than -100")
    if rate == 0:
        return round_currency(principal / tenure_months)
    
    growth = math.pow(1 + rate, tenure_months)
    return round_currency((principal * rate * growth) / (growth - 1))


def total_repayment(principal, monthly_rate, months) -> float:
    """Principal plus simple interest for the given number of months."""
    return check_number("principal", principal, allow_zero=True) + simple_interest(principal, monthly_rate, months)


def current_outstanding(principal, monthly_rate, loan_date, as_of=None) -> float:
    """Amount expected if a pending loan were settled on ``as_of`` (default today).
    
    A loan dated after ``as_of`` has accrued nothing yet.
    """
    as_of = to_date(as_of) if as_of is not None else date.today()
    months = max(0.0, months_between(loan_date, as_of))
    return total_repayment(principal, monthly_rate, months)


@dataclass(frozen=True)
class LoanMaturity:
    """Projection of a simple-interest loan held for a fixed number of months."""
    principal: float
    monthly_rate: float
    duration_months: float
    interest: float
    total_amount: float
    start_date: date
    maturity_date: date
    monthly_interest: float


def loan_maturity(principal, monthly_rate, start_date, duration_months) -> LoanMaturity:
    """Project the maturity of a loan held for ``duration_months`` calendar months."""
    principal = check_number("principal", principal)
    duration_months = check_number("duration_months", duration_months)
    start = to_date(start_date)
    
    interest = simple_interest(principal, monthly_rate, duration_months)
    return LoanMaturity(
        principal=principal,
        monthly_rate=float(monthly_rate),
        duration_months=duration_months,
        interest=interest,
        total_amount=principal + interest,
        start_date=start,
        maturity_date=add_months(start, duration_months),
        monthly_interest=interest / duration_months,
    )


def calculate_roi(invested, earned) -> float:
    """Interest earned as a percentage of capital invested."""
    if not invested:
        return 0.0
    return round_currency((earned / invested) * 100)


def annualized_roi(monthly_roi) -> float:
    """Scale a monthly ROI percentage to a year."""
    return round_currency(monthly_roi * 12)
