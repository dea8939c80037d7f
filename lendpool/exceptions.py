"""Custom exceptions for LendPool."""


class LendPoolError(Exception):
    """Base exception for all LendPool errors."""
    
    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
    
    def __str__(self):
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class InvalidInputError(LendPoolError, ValueError):
    """Raised when an amount, rate, duration or date is not acceptable."""
    
    def __init__(self, field: str, value, reason: str = "must be positive"):
        details = {
            'field': field,
            'value': value
        }
        message = f"Invalid {field}: {value!r} {reason}"
        super().__init__(message, details)
        self.field = field
        self.value = value


class InsufficientFundsError(LendPoolError):
    """Raised when lenders cannot cover the requested amount."""
    
    def __init__(self, required: float, available: float, lender_id: str = None):
        details = {
            'required': required,
            'available': available
        }
        if lender_id:
            details['lender_id'] = lender_id
        
        message = f"Insufficient funds: required {required}, available {available}"
        if lender_id:
            message = f"Insufficient funds for lender '{lender_id}': required {required}, available {available}"
        super().__init__(message, details)
        self.required = required
        self.available = available
        self.lender_id = lender_id


class DistributionMismatchError(LendPoolError):
    """Raised when a distribution does not add up to the loan amount."""
    
    def __init__(self, expected: float, actual: float):
        details = {
            'expected': expected,
            'actual': actual,
            'difference': round(expected - actual, 2)
        }
        message = f"Distribution total {actual} does not match loan amount {expected}"
        super().__init__(message, details)
        self.expected = expected
        self.actual = actual


class NotFoundError(LendPoolError):
    """Raised when a referenced entity is absent from the loaded collection."""
    pass


class LoanNotFoundError(NotFoundError):
    """Raised when a loan cannot be found."""
    
    def __init__(self, loan_id: str = None, borrower_id: str = None):
        details = {}
        if loan_id:
            details['loan_id'] = loan_id
        if borrower_id:
            details['borrower_id'] = borrower_id
        
        message = "Loan not found"
        if loan_id:
            message = f"Loan '{loan_id}' not found"
        
        super().__init__(message, details)


class LenderNotFoundError(NotFoundError):
    """Raised when a lender cannot be found."""
    
    def __init__(self, lender_id: str = None, name: str = None):
        details = {}
        if lender_id:
            details['lender_id'] = lender_id
        if name:
            details['name'] = name
        
        message = "Lender not found"
        if name:
            message = f"Lender '{name}' not found"
        elif lender_id:
            message = f"Lender with ID {lender_id} not found"
        
        super().__init__(message, details)


class BorrowerNotFoundError(NotFoundError):
    """Raised when a borrower cannot be found."""
    
    def __init__(self, borrower_id: str = None):
        details = {}
        if borrower_id:
            details['borrower_id'] = borrower_id
        message = "Borrower not found"
        if borrower_id:
            message = f"Borrower with ID {borrower_id} not found"
        super().__init__(message, details)


class LoanAlreadyCompletedError(LendPoolError):
    """Raised when a repayment is recorded against a loan that is already closed."""
    
    def __init__(self, loan_id: str, status: str):
        details = {
            'loan_id': loan_id,
            'status': status
        }
        message = f"Loan '{loan_id}' is already {status}"
        super().__init__(message, details)


class DatabaseError(LendPoolError):
    """Raised when a database operation fails."""
    pass


class PersistenceError(DatabaseError):
    """Raised when an entity could not be written to or read from storage."""
    
    def __init__(self, entity: str, entity_id: str, operation: str, reason: str = None):
        details = {
            'entity': entity,
            'entity_id': entity_id,
            'operation': operation
        }
        if reason:
            details['reason'] = reason
        message = f"Failed to {operation} {entity} '{entity_id}'"
        super().__init__(message, details)
        self.entity = entity
        self.entity_id = entity_id
        self.operation = operation


class TransactionError(DatabaseError):
    """Raised when a database transaction fails to complete."""
    pass
