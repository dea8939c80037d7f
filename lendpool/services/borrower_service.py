"""Borrower service for LendPool."""
from lendpool.exceptions import BorrowerNotFoundError, InvalidInputError, PersistenceError
from lendpool.logging import get_logger
from lendpool.models import Borrower

logger = get_logger(__name__)


class BorrowerService:
    """Handles borrower registration, lookup and removal."""

    def __init__(self, db_manager):
        self.db = db_manager

    def get_borrowers(self):
        return self.db.load_borrowers()

    def get_borrower(self, borrower_id):
        """Fetch one borrower.

        Raises:
            BorrowerNotFoundError: If no borrower has this ID.
        """
        for borrower in self.db.load_borrowers():
            if borrower.id == borrower_id:
                return borrower
        raise BorrowerNotFoundError(borrower_id)

    def add_borrower(self, full_name):
        full_name = (full_name or "").strip()
        if not full_name:
            raise InvalidInputError("full_name", full_name, "must not be empty")
        borrower = Borrower(full_name=full_name)
        result = self.db.save_borrower(borrower)
        if not result:
            raise PersistenceError("borrower", borrower.id, "create", result.error)
        logger.info("Borrower %s (%s) added", borrower.id, borrower.full_name)
        return borrower

    def delete_borrower(self, borrower_id):
        """Remove a borrower whose loans are all completed.

        Raises:
            InvalidInputError: If the borrower still has pending loans.
        """
        borrower = self.get_borrower(borrower_id)
        if borrower.pending_loans:
            raise InvalidInputError(
                "borrower_id", borrower_id, f"has {len(borrower.pending_loans)} pending loan(s)"
            )
        result = self.db.delete_borrower(borrower_id)
        if not result:
            raise PersistenceError("borrower", borrower_id, "delete", result.error)
        logger.info("Borrower %s deleted", borrower_id)
        return True
