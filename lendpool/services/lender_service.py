"""Lender service for LendPool.

This service handles lender accounts:
- Registration
- Capital investments
- Removal
"""
from lendpool.exceptions import InvalidInputError, LenderNotFoundError, PersistenceError
from lendpool.logging import get_logger
from lendpool.models import Lender

logger = get_logger(__name__)


class LenderService:
    """Handles lender account operations."""

    def __init__(self, db_manager):
        """Initialize LenderService.

        Args:
            db_manager: DatabaseManager instance for data persistence.
        """
        self.db = db_manager

    def get_lenders(self):
        return self.db.load_lenders()

    def get_lender(self, lender_id):
        """Fetch one lender.

        Raises:
            LenderNotFoundError: If no lender has this ID.
        """
        for lender in self.db.load_lenders():
            if lender.id == lender_id:
                return lender
        raise LenderNotFoundError(lender_id)

    def _save(self, lender, operation):
        result = self.db.save_lender(lender)
        if not result:
            raise PersistenceError("lender", lender.id, operation, result.error)
        return lender

    def add_lender(self, full_name):
        """Register a lender with zero balances."""
        full_name = (full_name or "").strip()
        if not full_name:
            raise InvalidInputError("full_name", full_name, "must not be empty")
        lender = self._save(Lender(full_name=full_name), "create")
        logger.info("Lender %s (%s) added", lender.id, lender.full_name)
        return lender

    def invest(self, lender_id, amount, note="", timestamp=None):
        """Record capital contributed by a lender.

        Returns:
            The updated Lender.
        """
        lender = self.get_lender(lender_id)
        lender.invest(amount, note, timestamp)
        self._save(lender, "invest")
        logger.info("Lender %s invested %s", lender_id, amount)
        return lender

    def delete_lender(self, lender_id):
        """Remove a lender that has no capital tied up in active loans.

        Raises:
            InvalidInputError: If the lender still has funds lent out.
        """
        lender = self.get_lender(lender_id)
        if lender.total_lent > 0:
            raise InvalidInputError(
                "lender_id", lender_id, f"still has {lender.total_lent} lent out"
            )
        result = self.db.delete_lender(lender_id)
        if not result:
            raise PersistenceError("lender", lender_id, "delete", result.error)
        logger.info("Lender %s deleted", lender_id)
        return True
