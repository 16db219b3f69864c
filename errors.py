"""
Error kinds raised by the member data-access layer.

Callers catch ``DataAccessError`` for anything raised here; the subclasses
carry the business meaning (a lookup that found nothing, a rejected login,
a table name outside the allow-list, ...).
"""


class DataAccessError(Exception):
    """Base class for every error raised by the data-access layer."""


class NotFound(DataAccessError):
    """No row matched a unique lookup."""


class InvalidIdentifier(DataAccessError):
    """A realm or table name is not in the allow-list."""


class InvalidArgument(DataAccessError):
    """Malformed input: empty required field, negative pagination, unknown column."""


class AuthRejected(DataAccessError):
    EMAIL_DOES_NOT_EXIST = "email_does_not_exist"
    PASSWORD_DOES_NOT_EXIST = "password_does_not_exist"
    INVALID_CREDENTIALS = "invalid_credentials"

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class Conflict(DataAccessError):
    """Unique constraint violation (email or username already taken)."""


class Forbidden(DataAccessError):
    """Operation is never allowed, e.g. deleting the ghost user."""


class CacheUnavailable(DataAccessError):
    """Soft failure: the cache could not be reached, callers continue uncached."""


class DatabaseUnavailable(DataAccessError):
    """Hard failure: the database could not be reached."""
