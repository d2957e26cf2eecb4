"""Exceptions raised by the repository to its callers."""


class RepositoryError(Exception):
    """Base class for repository errors."""


class RepositoryIOError(RepositoryError, OSError):
    """
    Generic I/O failure of the repository.

    Backing store failures and unknown revisions are re-raised as this
    error with the original exception chained as ``__cause__``.
    """


class InvalidVersionFormat(RepositoryIOError, ValueError):
    """A version token that is not an integer revision number."""

    def __init__(self, token: str):
        super().__init__("Project version must be a number.")
        self.token = token


class UnsupportedOperationError(RepositoryError, NotImplementedError):
    """The repository is read-only; mutating operations always fail."""

    def __init__(self, operation: str):
        super().__init__(f"Operation '{operation}' is not supported by a read-only repository")
        self.operation = operation
