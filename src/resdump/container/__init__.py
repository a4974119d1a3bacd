"""Reading and writing of ``.resources`` containers."""

from .reader import ContainerReader, open_container
from .writer import build_container, write_container

__all__ = ["ContainerReader", "open_container", "build_container", "write_container"]
