"""resdump - read, classify and export .resources containers.

Entries are sorted into strings, embedded blobs (handed to a resolver) and
other objects; containers can be saved verbatim or converted to ResX.
"""

__version__ = "0.1.0"

from .classifier import EntryClassifier
from .collector import ResourcesFile, collect, load_resource_set, resources_file_for
from .container import build_container, open_container
from .errors import ExportError, FormatError, ResdumpError, ResXError
from .exporter import ExportFormat, SaveStatus, save
from .model import (
    BlobEntry,
    ComplexEntry,
    RawRecord,
    ResourceSet,
    SerializedObject,
    TextEntry,
)

__all__ = [
    "EntryClassifier",
    "ResourcesFile",
    "collect",
    "load_resource_set",
    "resources_file_for",
    "build_container",
    "open_container",
    "ExportError",
    "FormatError",
    "ResdumpError",
    "ResXError",
    "ExportFormat",
    "SaveStatus",
    "save",
    "BlobEntry",
    "ComplexEntry",
    "RawRecord",
    "ResourceSet",
    "SerializedObject",
    "TextEntry",
]
