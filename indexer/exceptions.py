"""Exceptions raised by the pointer index service."""

from common.exceptions import PrivShareError


class PointerExistsError(PrivShareError):
    """
    Raised when a different record is already stored under a share code.
    """
    pass


class PointerNotFoundError(PrivShareError):
    """
    Raised when no record is stored under a share code.
    """
    pass


class InvalidPointerRecordError(PrivShareError):
    """
    Raised when a submitted record fails validation or names another code.
    """
    pass
