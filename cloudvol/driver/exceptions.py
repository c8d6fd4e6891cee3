"""Custom exceptions for the cloudvol volume driver."""

from typing import Optional


class CloudvolException(Exception):
    """Base exception for cloudvol driver errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class NotFoundError(CloudvolException):
    """Named volume or disk type does not exist."""

    pass


class AlreadyMountedError(CloudvolException):
    """Volume is already mounted; no new side effect occurred.

    Attributes:
        volume: Volume name
        path: The existing mount point
    """

    def __init__(self, volume: str, path: str):
        super().__init__(f"volume '{volume}' already mounted on '{path}'")
        self.volume = volume
        self.path = path


class NotMountedError(CloudvolException):
    """Volume is not mounted; nothing to undo."""

    def __init__(self, volume: str):
        super().__init__(f"volume '{volume}' not mounted")
        self.volume = volume


class InvalidOptionError(CloudvolException):
    """A create option is not recognized or has a malformed value."""

    def __init__(self, key: str, message: Optional[str] = None):
        super().__init__(message or f"unrecognized option '{key}'")
        self.key = key


class ProviderError(CloudvolException):
    """A remote API call or asynchronous operation failed.

    Attributes:
        volume: Volume name the failure relates to (if any)
        stage: Transition stage that failed (attach, mount, detach, ...)
    """

    def __init__(self, message: str, volume: Optional[str] = None, stage: Optional[str] = None):
        super().__init__(message)
        self.volume = volume
        self.stage = stage


class OperationTimeoutError(ProviderError):
    """Polling an operation exceeded its deadline."""

    pass


class ExecutionError(CloudvolException):
    """A local filesystem command failed."""

    def __init__(self, command: str, output: str = ""):
        super().__init__(f"{command} failed\noutput: {output}")
        self.command = command
        self.output = output


class NotSupportedError(CloudvolException):
    """Operation is unavailable on this backend."""

    pass
