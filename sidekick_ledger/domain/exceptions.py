"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidOperationError(DomainException):
    """Operation is not allowed for the obligation in its current state"""

    pass


class ObligationNotFoundError(DomainException):
    """No obligation exists with the requested id"""

    def __init__(self, obligation_id: str):
        super().__init__(f"Obligation not found: {obligation_id}")
        self.obligation_id = obligation_id


class InvalidLogEventError(DomainException):
    """Transaction log event is missing fields or carries malformed values"""

    pass


class StorageError(DomainException):
    """Persistent key-value store failed to read or write"""

    pass


class TornAPIError(DomainException):
    """Torn API returned an error or is unavailable"""

    def __init__(self, message: str, code: int | None = None):
        super().__init__(message)
        self.code = code


class TornAuthError(TornAPIError):
    """Torn API rejected the API key"""

    pass


class MissingAPIKeyError(DomainException):
    """No Torn API key has been configured"""

    pass
