class BundleIndexError(Exception):
    """Base class for all errors raised by the bundle index engine."""


class ValidationError(BundleIndexError):
    """A mutation would break a structural invariant of the bundle index.

    Raised for non-permutation reorders, page counts below 1 and duplicate
    sequence orders. The offending operation is never partially applied.
    """

    def __init__(self, message="Bundle index validation failed.", field: str | None = None):
        self.field = field
        super().__init__(message)


class NotFoundError(BundleIndexError):
    def __init__(self, entry_id: str, what: str = "entry"):
        self.entry_id = entry_id
        super().__init__(f"No {what} with id '{entry_id}' in the store")


class MeasurementError(BundleIndexError):
    """An external height or page-count signal was malformed or unavailable."""

    def __init__(self, message="Measurement failed.", value: object = None):
        self.value = value
        super().__init__(message)


class EvidenceError(MeasurementError):
    def __init__(self, file_ref: str, details: str):
        self.file_ref = file_ref
        super().__init__(f"Could not read page count of '{file_ref}': {details}", value=file_ref)
