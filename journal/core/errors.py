from enum import Enum


class ErrorKind(str, Enum):
    """Kinds of request-scoped rejections"""

    INVALID_INPUT = "invalid_input"
    INVALID_DATE = "invalid_date"
    NOT_FOUND = "not_found"
    PARENT_NOT_FOUND = "parent_not_found"
    UNAUTHORIZED = "unauthorized"
    SELF_PARENT = "self_parent"
    NESTING_TOO_DEEP = "nesting_too_deep"
    CIRCULAR_PARENT = "circular_parent"
    CHAIN_TOO_DEEP = "chain_too_deep"


HTTP_STATUS = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.INVALID_DATE: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.PARENT_NOT_FOUND: 404,
    ErrorKind.UNAUTHORIZED: 403,
    ErrorKind.SELF_PARENT: 409,
    ErrorKind.NESTING_TOO_DEEP: 409,
    ErrorKind.CIRCULAR_PARENT: 409,
    ErrorKind.CHAIN_TOO_DEEP: 409,
}


class JournalError(Exception):
    """Structured rejection raised by the store and the hierarchy guard"""

    def __init__(self, kind: ErrorKind, message: str | None = None):
        self.kind = kind
        self.message = message or kind.value.replace("_", " ")
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.kind]

    def to_dict(self) -> dict[str, str]:
        return {"error": self.kind.value, "detail": self.message}
