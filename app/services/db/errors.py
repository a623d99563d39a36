class StorageError(Exception):
    """Any failure raised while talking to the configured storage engine."""


class ConstraintViolation(StorageError):
    """The engine rejected a write (check, unique or not-null constraint).

    Retrying will not help: the input itself is the problem.
    """


class StorageUnavailable(StorageError):
    """The engine could not be reached or did not answer in time.

    Callers may retry; nothing here does it for them.
    """


class SchemaInitFailure(StorageError):
    """Tables could not be created at startup. Fatal."""
