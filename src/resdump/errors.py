"""Exception types raised by resdump."""

from __future__ import annotations


class ResdumpError(Exception):
    """Base class for all resdump errors."""


class FormatError(ResdumpError):
    """The stream is not a readable resource container."""

    def __init__(self, message: str, offset: int | None = None):
        self.offset = offset
        if offset is not None:
            message = f"{message} (offset {offset:#x})"
        super().__init__(message)


class ExportError(ResdumpError):
    """Saving a container failed and nothing usable was written."""


class ResXError(ExportError):
    """A value has no representation in the ResX format."""

    def __init__(self, key: str, value: object, reason: str | None = None):
        self.key = key
        self.value_type = type(value)
        if reason is None:
            reason = (
                f"cannot write value of type "
                f"{self.value_type.__module__}.{self.value_type.__qualname__} to ResX"
            )
        super().__init__(f"{key!r}: {reason}")
