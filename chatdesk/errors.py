class StorageError(Exception):
    """Base class for conversation/preference storage failures."""


class NotFoundError(StorageError):
    """The requested file does not exist."""


class StorageIOError(StorageError):
    """Disk or transport failure, or a file that could not be decoded."""


class InvalidFilenameError(StorageError):
    """A filename that cannot be used inside a storage directory."""
