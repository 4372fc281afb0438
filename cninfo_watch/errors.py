from __future__ import annotations

from pathlib import Path


class CninfoError(Exception):
    """Base class for every failure raised by cninfo_watch."""


class InvalidRange(CninfoError):
    pass


class RangeTooLarge(CninfoError):
    pass


class UpstreamError(CninfoError):
    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message if cause is None else f"{message}: {cause}")
        self.cause = cause


class NotFound(CninfoError):
    def __init__(self, code: str) -> None:
        super().__init__(f"stock not found. code={code}")
        self.code = code


class PersistenceError(CninfoError):
    pass


class MalformedRecord(PersistenceError):
    def __init__(self, path: Path, line_no: int, detail: str) -> None:
        super().__init__(f"invalid line in {path}:{line_no}, {detail}")
        self.path = path
        self.line_no = line_no


class NotificationError(CninfoError):
    pass
