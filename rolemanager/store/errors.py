"""Custom exceptions for the data access layer."""


class OperationFailedError(Exception):
    """Raised when a store operation fails; the message is shown to the user."""

    pass


class UserNotFoundError(OperationFailedError):
    """Raised when an update targets a user id that does not exist."""

    def __init__(self, user_id: str) -> None:
        super().__init__("User not found")
        self.user_id = user_id


class SimulatedFailureError(OperationFailedError):
    """Raised when the fault injector decides a call should fail."""

    pass


class SourceUnavailableError(OperationFailedError):
    """Raised when a backing source cannot be read, parsed or written."""

    pass
