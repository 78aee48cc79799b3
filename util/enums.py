# util/enums.py
from enum import Enum
from typing import NamedTuple


class Color(str, Enum):
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"

    def __str__(self):
        return self.value


class Environment(str, Enum):
    DEV = "dev"
    PROD = "prod"


class HydrationState(str, Enum):
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class ErrorInfo(NamedTuple):
    message: str


class ErrorMessage(Enum):
    """Fallback user-facing messages when the backend gives no usable text."""

    MANIFEST_LOAD_FAILED = ErrorInfo("Failed to load previous uploads.")
    UPLOAD_FAILED = ErrorInfo("Upload failed")
    DELETE_FAILED = ErrorInfo("Unable to delete")
    JOB_START_FAILED = ErrorInfo("Failed to start form filling")
    JOB_POLL_FAILED = ErrorInfo("Polling failed")
    JOB_PIPELINE_ERROR = ErrorInfo("Pipeline reported an error.")
    UNEXPECTED_RESPONSE = ErrorInfo("Unexpected response from server")
    NETWORK_ERROR = ErrorInfo("Network error, backend unreachable")
    TIMEOUT = ErrorInfo("Request timed out")
