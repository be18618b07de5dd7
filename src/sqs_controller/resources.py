"""Lazily readable content used for policy bodies.

A Resource is anything that can be opened as a binary stream. Policy
documents are passed around as resources rather than raw strings so a
large body can stay on disk until a renderer actually needs it.
"""

from __future__ import annotations

import io
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO


class Resource(ABC):
    """Byte-producing content that can be read on demand."""

    @abstractmethod
    def open(self) -> BinaryIO:
        """Open the content for reading. Callers close the returned stream."""


class BytesResource(Resource):
    """Resource backed by an in-memory byte string."""

    def __init__(self, data: bytes) -> None:
        self._data = data

    def open(self) -> BinaryIO:
        return io.BytesIO(self._data)

    def __repr__(self) -> str:
        return f"BytesResource({len(self._data)} bytes)"


class StringResource(Resource):
    """Resource backed by a text string (encoded as UTF-8)."""

    def __init__(self, text: str) -> None:
        self._text = text

    @property
    def text(self) -> str:
        return self._text

    def open(self) -> BinaryIO:
        return io.BytesIO(self._text.encode("utf-8"))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StringResource):
            return NotImplemented
        return self._text == other._text

    def __hash__(self) -> int:
        return hash(self._text)

    def __repr__(self) -> str:
        return f"StringResource({self._text!r})"


class FileResource(Resource):
    """Resource read from a file on disk each time it is opened."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def open(self) -> BinaryIO:
        return self._path.open("rb")

    def __repr__(self) -> str:
        return f"FileResource({str(self._path)!r})"


def resource_as_bytes(resource: Resource) -> bytes:
    """Read a resource fully."""
    with resource.open() as stream:
        return stream.read()


def resource_as_string(resource: Resource | None) -> str:
    """Read a resource fully as UTF-8 text.

    A missing resource reads as the empty string.

    Raises:
        OSError: If the underlying content cannot be read.
        UnicodeDecodeError: If the content is not valid UTF-8.
    """
    if resource is None:
        return ""
    return resource_as_bytes(resource).decode("utf-8")
