from typing import Any


class PaginationError(Exception):
    """Base class for errors raised by fetchpage itself"""


class InvalidPaginationParameter(PaginationError, ValueError):
    """
    Raised before any query is executed when a pagination or sort parameter
    is out of range or cannot be read as the expected type.

    .field is the name of the offending parameter, .value is what the caller passed
    """

    def __init__(self, field: str, value: Any, message: str):
        self.field = field
        self.value = value
        super().__init__(f"Requested {field}: {value!r}. {message}")


class QueryModifierError(PaginationError, TypeError):
    """A query modifier returned something other than a select"""


class UnknownSubject(PaginationError, ValueError):
    """The table or primary key a select is paging over could not be determined"""
