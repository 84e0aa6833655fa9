class DomainError(Exception):
    """Base class for domain-specific errors."""

    pass


class InvalidInputError(DomainError):
    """Exception raised when request parameters fail validation."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"Invalid input: {detail}")
        self.detail = detail


class RequestFailedError(DomainError):
    """Exception describing an HTTP response with a non-success status."""

    def __init__(self, status: int, status_text: str) -> None:
        super().__init__(f"HTTP error! status: {status} {status_text}")
        self.status = status
        self.status_text = status_text
