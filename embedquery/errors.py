"""
Bad Request errors raised while compiling a query.

Both errors subclass FastAPI's HTTPException with status 400 so an HTTP layer
can let them propagate unchanged.
"""

from enum import Enum
from typing import Optional

from fastapi import HTTPException, status


class ResolutionFailure(str, Enum):
    """Why a dotted embed path could not be resolved."""
    NOT_FOUND = "cannot be found in the schema"
    NOT_A_REFERENCE = "is not a reference field in the schema"
    NO_TARGET = "is a reference field that does not declare any collection"
    TARGET_NOT_REGISTERED = "is a reference field to a collection that cannot be found"


class BadRequestError(HTTPException):
    """The request does not match the schema or is malformed."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

    def __str__(self) -> str:
        return str(self.detail)


class EmbedResolutionError(BadRequestError):
    """A path requested in $embed does not resolve to a reference chain."""

    def __init__(self, path: str, sub_path: str, reason: ResolutionFailure):
        self.path = path
        self.sub_path = sub_path
        self.reason = reason
        super().__init__(f'cannot embed "{path}" because "{sub_path}" {reason.value}')


class InvalidQueryError(BadRequestError):
    """A reserved query key carries a value of the wrong shape."""

    def __init__(self, key: str, message: str, value: Optional[object] = None):
        self.key = key
        self.value = value
        super().__init__(f'invalid "{key}": {message}')
