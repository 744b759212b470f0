# util/enums.py
from enum import Enum
from typing import NamedTuple
from fastapi import status


class Color(str, Enum):
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"

    def __str__(self):
        return self.value


class Environment(str, Enum):
    DEV = "dev"
    PROD = "prod"


class Stage(str, Enum):
    PARSING = "parsing"
    DOWNLOADING = "downloading"
    TRANSCRIBING = "transcribing"
    SUMMARIZING = "summarizing"
    DONE = "done"
    ERROR = "error"

    @property
    def terminal(self) -> bool:
        return self in (Stage.DONE, Stage.ERROR)

    @property
    def rank(self) -> int:
        # error sits outside the linear order
        return _STAGE_ORDER.index(self) if self in _STAGE_ORDER else len(_STAGE_ORDER)


_STAGE_ORDER = (
    Stage.PARSING,
    Stage.DOWNLOADING,
    Stage.TRANSCRIBING,
    Stage.SUMMARIZING,
    Stage.DONE,
)


class ErrorInfo(NamedTuple):
    message: str
    http_status: int


class ErrorMessage(Enum):
    INVALID_API_KEY = ErrorInfo(
        "Invalid or expired API key, please check it and retry (401 Unauthorized)",
        status.HTTP_401_UNAUTHORIZED,
    )
    MISSING_API_KEY = ErrorInfo("Please provide an API key", status.HTTP_401_UNAUTHORIZED)
    INVALID_URL = ErrorInfo("Invalid podcast link", status.HTTP_400_BAD_REQUEST)
    INTERNAL_ERROR = ErrorInfo("Internal Error", status.HTTP_502_BAD_GATEWAY)
    UPSTREAM_AUDIO = ErrorInfo("Failed to fetch audio", status.HTTP_502_BAD_GATEWAY)
