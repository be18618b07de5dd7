"""Path-based transforms over parsed JSON documents.

Documents are the plain values json.loads produces: dicts, lists and
scalars. The transformer walks a document depth-first and tracks a path
string for every node:

- an object member "Key" below path P has path "P.Key"
- a list found at path P is addressed as "P[]", and so are its elements

So the list of service principals in an IAM policy sits at
".Statement[].Principal.Service[]". Transforms are registered for exact
path strings and are compared literally; there is no pattern matching.

Registering a transform also pins the container types along its path:
for ".Statement[].Principal.Service[]" the walker expects a list at
".Statement", an object for each statement, an object at ".Principal"
and a list at ".Service". A string at one of those positions is IAM
shorthand (Principal "*", a single Service) and is left untouched; any
other type mismatch raises JSONTransformError.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

SliceTransform = Callable[[str, list[Any]], list[Any]]


class JSONTransformError(Exception):
    """Raised when a document cannot be walked or transformed."""

    pass


class NodeKind(str, Enum):
    """Container kinds a path position can be pinned to."""

    OBJECT = "object"
    ARRAY = "array"


def _expected_kinds(path: str) -> dict[str, NodeKind]:
    """Derive the container kind expected at each prefix of a slice path.

    ".Statement[].Principal.Service[]" yields:
        ".Statement" -> ARRAY, ".Statement[]" -> OBJECT,
        ".Statement[].Principal" -> OBJECT, ".Statement[].Principal.Service" -> ARRAY
    """
    if not path.endswith("[]"):
        raise JSONTransformError(f"slice transform path must end with '[]': {path!r}")

    kinds: dict[str, NodeKind] = {}
    prefix = ""
    for segment in path.lstrip(".").split("."):
        name = segment
        depth = 0
        while name.endswith("[]"):
            name = name[:-2]
            depth += 1
        if not name:
            raise JSONTransformError(f"empty path segment in {path!r}")

        # The parent of this member is an object
        if prefix:
            kinds.setdefault(prefix, NodeKind.OBJECT)
        prefix = f"{prefix}.{name}"
        for _ in range(depth):
            kinds[prefix] = NodeKind.ARRAY
            prefix = f"{prefix}[]"
    return kinds


class Transformer:
    """Applies registered slice transforms to a JSON document in place."""

    def __init__(self) -> None:
        self._slice_transforms: dict[str, list[SliceTransform]] = {}
        self._expected: dict[str, NodeKind] = {}

    def add_slice_transform(self, path: str, fn: SliceTransform) -> None:
        """Register fn for the list at path (e.g. ".Statement[].Principal.Service[]")."""
        for prefix, kind in _expected_kinds(path).items():
            existing = self._expected.get(prefix)
            if existing is not None and existing != kind:
                raise JSONTransformError(
                    f"conflicting container kinds at {prefix!r}: {existing.value} vs {kind.value}"
                )
            self._expected[prefix] = kind
        self._slice_transforms.setdefault(path, []).append(fn)

    def transform(self, document: Any) -> Any:
        """Walk document depth-first, replacing transformed lists in place.

        Returns:
            The document (the same object for dict/list roots).

        Raises:
            JSONTransformError: On a type mismatch along a registered path,
                or when a transform rejects its input.
        """
        return self._visit("", document)

    def _check_kind(self, path: str, value: Any) -> None:
        kind = self._expected.get(path)
        if kind is None or isinstance(value, str):
            return
        if kind is NodeKind.ARRAY and not isinstance(value, list):
            raise JSONTransformError(f"expected array at {path!r}, got {type(value).__name__}")
        if kind is NodeKind.OBJECT and not isinstance(value, dict):
            raise JSONTransformError(f"expected object at {path!r}, got {type(value).__name__}")

    def _visit(self, path: str, value: Any) -> Any:
        self._check_kind(path, value)

        if isinstance(value, dict):
            for key in list(value):
                value[key] = self._visit(f"{path}.{key}", value[key])
            return value

        if isinstance(value, list):
            slice_path = f"{path}[]"
            for i, item in enumerate(value):
                value[i] = self._visit(slice_path, item)
            for fn in self._slice_transforms.get(slice_path, ()):
                replaced = fn(slice_path, value)
                # Keep list identity so callers holding the parent see the change
                value[:] = replaced
            return value

        return value


def sort_slice(values: list[Any]) -> list[Any]:
    """Return values sorted, for homogeneous lists of strings or numbers.

    Raises:
        JSONTransformError: If the list mixes types or holds containers.
    """
    if not values:
        return list(values)

    if all(isinstance(v, str) for v in values):
        return sorted(values)
    if all(isinstance(v, int | float) and not isinstance(v, bool) for v in values):
        return sorted(values)

    kinds = sorted({type(v).__name__ for v in values})
    raise JSONTransformError(f"cannot sort slice containing {', '.join(kinds)}")
