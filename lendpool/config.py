"""Centralized configuration for LendPool.

This module contains the magic numbers, default values, and business rule
constants used by the lending ledger and allocation engine.
"""

# =============================================================================
# ROUNDING & TOLERANCES
# =============================================================================

# Currency amounts are rounded to cents
CURRENCY_DECIMALS = 2

# Fractional month durations are rounded to two places
MONTHS_DECIMALS = 2

# Distributions that differ from the loan amount by less than this are equal
DISTRIBUTION_TOLERANCE = 0.01

# Slack allowed when comparing an allocation against a lender's capacity
CAPACITY_EPSILON = 1e-9

# =============================================================================
# TRANSACTION TYPES
# =============================================================================

TX_INVEST = "invest"
TX_INTEREST = "interest"
TX_LEND = "lend"
TX_REPAYMENT_RECEIVED = "repayment_received"

TRANSACTION_TYPES = (TX_INVEST, TX_INTEREST, TX_LEND, TX_REPAYMENT_RECEIVED)

# =============================================================================
# LOAN STATES
# =============================================================================

LOAN_PENDING = "pending"
LOAN_COMPLETED = "completed"

# =============================================================================
# STORAGE FORMATS
# =============================================================================

# Date format for storage (ISO 8601)
DATE_FORMAT_STORAGE = "%Y-%m-%d"

# Default SQLite journal
DEFAULT_DB_NAME = "lendpool.db"

# =============================================================================
# LOGGING
# =============================================================================

DEFAULT_LOG_LEVEL = "INFO"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
