"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidLimitError(DomainException):
    """Limit definition is missing required fields or has a non-positive amount"""

    def __init__(self, message: str, limit_id: object = None):
        self.limit_id = limit_id
        super().__init__(message if limit_id is None else f"Limit {limit_id}: {message}")


class LedgerAPIError(DomainException):
    """Debt Manager API returned an error or is unavailable"""

    pass
