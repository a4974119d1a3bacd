"""Saving a container, either verbatim or re-encoded as ResX."""

from __future__ import annotations

import re
import shutil
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Callable, Mapping, Optional, Union

from loguru import logger

from .container.reader import UserTypeDecoder, open_container
from .errors import ExportError, FormatError
from .resx import build_resx

StreamOpener = Callable[[], Optional[BinaryIO]]
Destination = Union[str, Path, BinaryIO, None]


class ExportFormat(str, Enum):
    RESOURCES = "resources"  # verbatim copy
    RESX = "resx"

    @property
    def suffix(self) -> str:
        return f".{self.value}"


class SaveStatus(Enum):
    SAVED = "saved"
    CANCELLED = "cancelled"  # no destination chosen
    NOT_HANDLED = "not-handled"  # source stream unavailable

    @property
    def ok(self) -> bool:
        return self is not SaveStatus.NOT_HANDLED


_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def suggest_file_name(name: str, fmt: ExportFormat) -> str:
    """Turn a resource name into a file name for ``fmt``."""
    base = _UNSAFE_CHARS.sub("-", name).strip(" .") or "resources"
    if base.lower().endswith(".resources"):
        base = base[: -len(".resources")]
    return base + fmt.suffix


def try_open(opener: StreamOpener) -> Optional[BinaryIO]:
    try:
        return opener()
    except OSError as e:
        logger.warning(f"cannot open source stream: {e}")
        return None


def save(
    opener: StreamOpener,
    fmt: ExportFormat,
    destination: Destination,
    decoders: Optional[Mapping[str, UserTypeDecoder]] = None,
) -> SaveStatus:
    """Export the container produced by ``opener`` to ``destination``.

    Returns ``NOT_HANDLED`` when the source cannot be opened and ``CANCELLED``
    when ``destination`` is None. Raises :class:`ExportError` for failures that
    leave nothing usable behind.
    """
    try:
        fmt = ExportFormat(fmt)
    except ValueError:
        raise ExportError(f"unknown export format {fmt!r}") from None
    source = try_open(opener)
    if source is None:
        return SaveStatus.NOT_HANDLED
    with source:
        if destination is None:
            return SaveStatus.CANCELLED
        try:
            source.seek(0)
        except (OSError, ValueError) as e:
            raise ExportError(f"cannot rewind source stream: {e}") from e

        if fmt is ExportFormat.RESOURCES:
            _write(destination, lambda sink: shutil.copyfileobj(source, sink))
        else:
            payload = _build_resx(source, decoders)
            _write(destination, lambda sink: sink.write(payload))
    logger.info(f"saved {fmt.value} export to {_describe(destination)}")
    return SaveStatus.SAVED


def _build_resx(source: BinaryIO, decoders: Optional[Mapping[str, UserTypeDecoder]]) -> bytes:
    # a fresh parse; records go through as read, without classification
    try:
        payload = build_resx(open_container(source, decoders))
    except FormatError as e:
        raise ExportError(f"source is not a readable container: {e}") from e
    logger.debug(f"built {len(payload)} bytes of ResX")
    return payload


def _write(destination: Union[str, Path, BinaryIO], emit: Callable[[BinaryIO], object]) -> None:
    if isinstance(destination, (str, Path)):
        path = Path(destination)
        try:
            with open(path, "wb") as sink:
                emit(sink)
        except OSError as e:
            raise ExportError(f"cannot write {path}: {e}") from e
    else:
        emit(destination)


def _describe(destination: Destination) -> str:
    if isinstance(destination, (str, Path)):
        return str(destination)
    return getattr(destination, "name", type(destination).__name__)
