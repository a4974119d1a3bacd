"""Collecting classified entries into a :class:`ResourceSet`."""

from __future__ import annotations

from typing import BinaryIO, Iterable, Mapping, Optional

from loguru import logger

from .classifier import EntryClassifier
from .container.reader import UserTypeDecoder, open_container
from .errors import FormatError
from .exporter import Destination, ExportFormat, SaveStatus, StreamOpener, save, try_open
from .model import BlobEntry, ComplexEntry, RawRecord, ResourceSet, TextEntry

RESOURCES_SUFFIX = ".resources"


def collect(records: Iterable[RawRecord], classifier: EntryClassifier) -> ResourceSet:
    """Sort ``records`` by key, then classify them in that order.

    The sort is stable, so records sharing a key stay in reader order and all
    of them are kept.
    """
    texts: list[TextEntry] = []
    objects: list[ComplexEntry] = []
    children: list = []
    for record in sorted(records, key=lambda r: r.key):
        entry = classifier.classify(record)
        if isinstance(entry, TextEntry):
            texts.append(entry)
        elif isinstance(entry, BlobEntry):
            children.append(entry.node)
        else:
            objects.append(entry)
    return ResourceSet(tuple(texts), tuple(objects), tuple(children))


def load_resource_set(
    stream: Optional[BinaryIO],
    classifier: EntryClassifier,
    decoders: Optional[Mapping[str, UserTypeDecoder]] = None,
) -> ResourceSet:
    """Read and classify a whole container; an unreadable one gives an empty set."""
    if stream is None:
        return ResourceSet()
    try:
        stream.seek(0)
        records = list(open_container(stream, decoders))
    except FormatError as e:
        logger.warning(f"not a readable resources container: {e}")
        return ResourceSet()
    except (OSError, ValueError) as e:
        logger.warning(f"cannot read resources stream: {e}")
        return ResourceSet()
    result = collect(records, classifier)
    logger.debug(
        f"loaded {len(records)} resources: {len(result.text_entries)} strings, "
        f"{len(result.complex_entries)} objects, {len(result.child_nodes)} children"
    )
    return result


class ResourcesFile:
    """One container, loaded lazily from a reopenable stream.

    ``opener`` must return a fresh binary stream on every call, or ``None``
    when the data is unavailable.
    """

    def __init__(
        self,
        name: str,
        opener: StreamOpener,
        classifier: Optional[EntryClassifier] = None,
        decoders: Optional[Mapping[str, UserTypeDecoder]] = None,
    ):
        self.name = name
        self.opener = opener
        self.classifier = classifier or EntryClassifier()
        self.decoders = dict(decoders or {})
        self._resources: Optional[ResourceSet] = None

    @property
    def resources(self) -> ResourceSet:
        if self._resources is None:
            stream = try_open(self.opener)
            if stream is None:
                self._resources = ResourceSet()
            else:
                with stream:
                    self._resources = load_resource_set(stream, self.classifier, self.decoders)
        return self._resources

    @property
    def is_loaded(self) -> bool:
        return self._resources is not None

    def reload(self) -> ResourceSet:
        self._resources = None
        return self.resources

    def save(self, fmt: ExportFormat, destination: Destination) -> SaveStatus:
        return save(self.opener, fmt, destination, self.decoders)


def resources_file_for(
    name: str,
    opener: StreamOpener,
    classifier: Optional[EntryClassifier] = None,
) -> Optional[ResourcesFile]:
    """Return a :class:`ResourcesFile` for ``*.resources`` names, else None."""
    if name.lower().endswith(RESOURCES_SUFFIX):
        return ResourcesFile(name, opener, classifier)
    return None
