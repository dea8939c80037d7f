"""LendPool: ledger and allocation engine for a peer-to-peer lending pool."""

__version__ = "1.0.0"
