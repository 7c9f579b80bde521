class PhoneLocationError(Exception):
    """Base class for errors raised by the location store."""


class SchemaError(PhoneLocationError):
    """The database could not be opened at the requested schema version."""


class QueryError(PhoneLocationError):
    """A read could not be served (unknown address or bad projection)."""


class UnsupportedOperationError(PhoneLocationError):
    """The caller combined arguments the store never accepts.

    Raised for programming errors such as a where clause on a number-keyed
    update; the façade lets it propagate.
    """
