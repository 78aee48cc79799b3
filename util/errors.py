# util/errors.py
from typing import Optional
from util.enums import ErrorMessage


class ApiError(Exception):
    # Flow: raised by the backend client; services catch it and record `message` on scoped state.
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @classmethod
    def of(cls, error: ErrorMessage, status_code: Optional[int] = None) -> "ApiError":
        return cls(error.value.message, status_code)


def message_or(exc: BaseException, fallback: ErrorMessage) -> str:
    """Human-readable text for `exc`, or the fallback message when it has none."""
    text = getattr(exc, "message", None) or str(exc)
    return text or fallback.value.message
