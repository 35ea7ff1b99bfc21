"""Exception types raised by the FluxJP core."""


class FluxError(Exception):
    """Base class for all FluxJP errors."""


class StoreError(FluxError):
    """Raised when the item store fails to read or write.

    Recoverable: the operation that raised it has not been applied.
    """


class SessionError(FluxError):
    """Raised when a study session is driven in an invalid state."""


class BackupFormatError(FluxError):
    """Raised when a backup document cannot be understood at all."""


class MergeError(FluxError):
    """Raised when a merge fails. The store has been rolled back."""
