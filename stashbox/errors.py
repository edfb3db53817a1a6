"""Error taxonomy for StashBox."""


class StashBoxError(Exception):
    """Base exception for all StashBox operations.

    Every error carries a machine-readable ``kind`` and a human-readable
    ``message`` that is safe to show to the caller.
    """

    kind = "error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFound(StashBoxError):
    """Raised when a key or share token does not exist."""

    kind = "not_found"


class QuotaExceeded(StashBoxError):
    """Raised when a write would push an owner past the storage limit."""

    kind = "quota_exceeded"

    def __init__(self, owner_id: str, requested: int, used: int, limit: int):
        self.owner_id = owner_id
        self.requested = requested
        self.used = used
        self.limit = limit
        super().__init__(
            "Storage quota exceeded. Please delete some files or upgrade your plan."
        )


class StoreUnavailable(StashBoxError):
    """Raised when the backing object store cannot be reached or fails."""

    kind = "store_unavailable"


class InvalidName(StashBoxError):
    """Raised for empty names or names containing a path separator."""

    kind = "invalid_name"

    def __init__(self, name: str, reason: str = "must not be empty or contain '/'"):
        self.name = name
        super().__init__(f"Invalid name {name!r}: {reason}")


class InvalidRequest(StashBoxError):
    """Raised when a request is well formed but cannot be carried out as asked."""

    kind = "invalid_request"


class FileTooLarge(StashBoxError):
    """Raised when an upload exceeds the configured per-file size limit."""

    kind = "file_too_large"

    def __init__(self, size: int, max_size: int):
        self.size = size
        self.max_size = max_size
        super().__init__(
            f"File size ({size} bytes) exceeds maximum allowed size ({max_size} bytes)"
        )
