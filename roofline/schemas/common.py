"""Common schema module."""

from __future__ import annotations

from pydantic import BaseModel

from roofline.core.enums import NoticeLevel


class Notice(BaseModel):
    """A user-facing message produced by a core operation."""

    level: NoticeLevel = NoticeLevel.INFO
    message: str

    @classmethod
    def info(cls, message: str) -> "Notice":
        return cls(level=NoticeLevel.INFO, message=message)

    @classmethod
    def success(cls, message: str) -> "Notice":
        return cls(level=NoticeLevel.SUCCESS, message=message)

    @classmethod
    def warning(cls, message: str) -> "Notice":
        return cls(level=NoticeLevel.WARNING, message=message)

    @classmethod
    def error(cls, message: str) -> "Notice":
        return cls(level=NoticeLevel.ERROR, message=message)
