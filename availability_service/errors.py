class MalformedDateError(ValueError):
    """Raised when a calendar date string is not a usable YYYY-MM-DD value."""

    def __init__(self, value, reason: str = "expected YYYY-MM-DD"):
        self.value = value
        self.reason = reason
        super().__init__(f"Malformed date {value!r}: {reason}")


class SourceUnavailableError(Exception):
    """
    Raised when the ledger (events or listing reads) cannot be reached or
    returns something unusable. Retryable by the caller.
    """

    def __init__(self, operation: str, reason: str = ""):
        self.operation = operation
        self.reason = reason
        message = f"Ledger source unavailable during {operation}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
