"""
Custom exception hierarchy for the analytics engine.

Exception Hierarchy:
    StorePulseError (base)
    ├── MetricsStoreError      - Metrics store failed to answer a query
    │   └── QueryTimeoutError  - Query exceeded the storage timeout
    └── StoreNotFoundError     - Unknown store id

    ValidationError            - Input validation failed
"""


class StorePulseError(Exception):
    """Base exception for all engine errors."""

    def __init__(self, message: str, details: str = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class MetricsStoreError(StorePulseError):
    """
    The metrics store could not answer a query.

    Storage unavailable, malformed row, broken SQL. The engine never
    retries; the caller decides what to do.
    """

    def __init__(self, message: str, details: str = None, operation: str = None):
        super().__init__(message, details)
        self.operation = operation


class QueryTimeoutError(MetricsStoreError):
    """
    Database query exceeded timeout.

    Indicates a long-running query that should be investigated:
    - Missing index
    - Too much data being scanned
    """

    def __init__(self, query: str, timeout: float, details: str = None):
        self.query = query[:200] + "..." if len(query) > 200 else query
        self.timeout = timeout
        message = f"Query timed out after {timeout}s"
        super().__init__(message, details, operation="query")

    def __str__(self) -> str:
        return f"QueryTimeoutError: Query timed out after {self.timeout}s - {self.query}"


class StoreNotFoundError(StorePulseError):
    """Store id does not exist in the metrics store."""

    def __init__(self, store_id: str):
        self.store_id = store_id
        super().__init__("Store not found", store_id)


class ValidationError(Exception):
    """
    Input validation failed.

    Used for validating user input before processing.
    """

    def __init__(self, field: str, message: str, value: any = None):
        self.field = field
        self.message = message
        self.value = value
        super().__init__(f"{field}: {message}")

    def __str__(self) -> str:
        if self.value is not None:
            return f"{self.field}: {self.message} (got: {self.value!r})"
        return f"{self.field}: {self.message}"
