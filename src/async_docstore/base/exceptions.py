# src/async_docstore/base/exceptions.py


class ObjectNotFoundException(Exception):
    """Exception raised when a document with the specified identifier does not exist."""

    def __init__(self, message: str = "The requested document was not found."):
        super().__init__(message)


class StoreNotInitializedException(Exception):
    """Exception raised when the process-wide gateway is used before initialize()."""

    def __init__(
        self,
        message: str = "The document store has not been initialized. Call initialize() first.",
    ):
        super().__init__(message)
