"""Exception hierarchy for prompt versioning.

The storage layer raises these; VersionCore turns the expected ones into
structured results so batch callers can continue past individual misses.
StoreCorruptionError is the exception that is allowed to propagate.
"""


class PromptVersionError(Exception):
    """Base class for all prompt versioning errors."""

    pass


class NotInitializedError(PromptVersionError):
    """Raised when the workspace has not been initialized."""

    def __init__(self, message: str = 'Not initialized. Run "prompt-version init" first.'):
        super().__init__(message)


class CollisionError(PromptVersionError):
    """Raised when a branch, tag or version id already exists."""

    pass


class StorageIOError(PromptVersionError):
    """Raised when reading or writing the object or index store fails."""

    pass


class StoreCorruptionError(PromptVersionError):
    """Raised when persisted data cannot be parsed or decoded."""

    pass


class IndexLockError(PromptVersionError):
    """Raised when the index lock cannot be acquired in time."""

    pass
