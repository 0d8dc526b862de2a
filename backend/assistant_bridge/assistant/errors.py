"""Exceptions raised by the assistant backend layer."""


class BackendError(Exception):
    """Base exception for assistant backend failures."""

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message)
        self.operation = operation


class ThreadCreationError(BackendError):
    """A new thread could not be created."""

    pass
