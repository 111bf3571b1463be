class StoreError(Exception):
    """Read or write against the match store failed."""


class NotFoundError(LookupError):
    pass


class ConflictError(ValueError):
    """The request contradicts the current state of the records it names."""
