"""Domain exceptions.

HTTP-level failures are raised as ``HTTPException`` by dependencies and
routers; the classes here describe failures below the HTTP boundary.
"""


class KidPointsError(Exception):
    """Base class for all KidPoints errors."""


class StorageError(KidPointsError):
    """Raised when a durable blob cannot be read, decoded or written."""


class CredentialsError(StorageError):
    """Raised when the credential blob is unreadable or out of contract."""
