class CaseStoreError(Exception):
    """Base error; ``status`` is the HTTP status the router answers with."""

    status = 500


class CallerError(CaseStoreError):
    """Malformed request: bad action, collection name or payload."""

    status = 400


class StoreUnavailableError(CaseStoreError):
    """Remote storage failed for a reason other than the file being absent."""

    status = 502


class StoreCorruptionError(CaseStoreError):
    """A collection file exists but does not hold a JSON array of objects."""

    status = 500


class WriteConflictError(CaseStoreError):
    """The collection file changed between our read and our conditional write."""

    status = 409
