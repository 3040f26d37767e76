"""
Domain errors raised by the services.

Each error carries the HTTP status and the public message used by the
exception handlers registered in main.py. Internal details stay in the logs.
"""
from typing import List, Optional


class RetailAPIError(Exception):
    """Base class for errors that map to a JSON error response"""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class DatabaseUnavailableError(RetailAPIError):
    status_code = 503
    message = "Database connection not available"


class InvalidRequestError(RetailAPIError):
    status_code = 400
    message = "Invalid request body"


class InvalidTransactionError(InvalidRequestError):
    """Transaction request failed validation; fields lists the offending names"""

    def __init__(self, message: str, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.fields = fields or []


class TransactionPersistenceError(RetailAPIError):
    message = "Failed to create transaction"


class ReconciliationError(RetailAPIError):
    """The transaction was saved but its distributions could not be updated"""

    message = "Failed to create transaction"

    def __init__(self, transaction_id, message: Optional[str] = None):
        super().__init__(message)
        self.transaction_id = transaction_id


class TransactionQueryError(RetailAPIError):
    message = "Failed to fetch transactions"


class DistributionNotFoundError(RetailAPIError):
    status_code = 404
    message = "Distribution not found"


class DistributionStateError(RetailAPIError):
    status_code = 409
    message = "Invalid distribution status change"


class DistributionPersistenceError(RetailAPIError):
    message = "Failed to save distribution"
