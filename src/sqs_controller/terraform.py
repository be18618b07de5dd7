"""Terraform export target.

Renders queues as Terraform resources in JSON syntax (main.tf.json) and
writes large values, such as policy bodies, as side files under data/.
Resources reference their side files with file() expressions so the
JSON stays small and the policy text is kept byte-for-byte.

Nothing touches the disk until finish() is called; a render that fails
leaves no partial block behind.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .errors import RenderError
from .resources import Resource, resource_as_bytes
from .target import Target

if TYPE_CHECKING:
    from .sqs import SQSQueue

logger = logging.getLogger(__name__)

MAIN_FILENAME = "main.tf.json"
DATA_DIRNAME = "data"


def sanitize_name(name: str) -> str:
    """Make a name usable as a Terraform resource name.

    Letters, digits and dashes pass through. "_" is the escape character:
    a literal underscore becomes "__", a dot becomes "_dot_", and any
    other character becomes "_x<hex>_". Distinct names therefore never
    collide, so "jobs.fifo" and "jobs-fifo" stay separate resources.
    A name that does not start with a letter gets a leading "_".
    """
    out: list[str] = []
    for ch in name:
        if ch.isascii() and (ch.isalnum() or ch == "-"):
            out.append(ch)
        elif ch == "_":
            out.append("__")
        elif ch == ".":
            out.append("_dot_")
        else:
            out.append(f"_x{ord(ch):x}_")
    sanitized = "".join(out)
    if not sanitized[:1].isalpha() and not sanitized.startswith("_"):
        sanitized = "_" + sanitized
    return sanitized


@dataclass(frozen=True)
class Literal:
    """A raw Terraform expression, emitted as an interpolation string."""

    value: str

    def to_json(self) -> str:
        return self.value


def literal_property(resource_type: str, resource_name: str, prop: str) -> Literal:
    """Build a reference to an attribute of another rendered resource."""
    return Literal(f"${{{resource_type}.{sanitize_name(resource_name)}.{prop}}}")


def literal_data_file(filename: str) -> Literal:
    return Literal(f'${{file("${{path.module}}/{DATA_DIRNAME}/{filename}")}}')


def tf_field(name: str) -> Any:
    """Declare the Terraform attribute name for a dataclass field."""
    return dataclasses.field(metadata={"tf": name})


def _to_tf_value(value: Any) -> Any:
    if isinstance(value, Literal):
        return value.to_json()
    if isinstance(value, dict):
        return {k: _to_tf_value(v) for k, v in sorted(value.items())}
    if isinstance(value, list | tuple):
        return [_to_tf_value(v) for v in value]
    return value


def to_tf_fields(obj: Any) -> dict[str, Any]:
    """Convert a dataclass with tf_field metadata to Terraform attributes.

    Unset (None) values are omitted.
    """
    if not dataclasses.is_dataclass(obj):
        raise TypeError(f"expected a dataclass instance, got {type(obj).__name__}")
    out: dict[str, Any] = {}
    for f in dataclasses.fields(obj):
        key = f.metadata.get("tf", f.name)
        value = getattr(obj, f.name)
        if value is None:
            continue
        out[key] = _to_tf_value(value)
    return out


class TerraformTarget(Target):
    """Collects Terraform resources and side files, written on finish()."""

    renders_unchanged = True

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)
        self._resources: dict[str, dict[str, dict[str, Any]]] = {}
        self._files: dict[str, bytes] = {}
        # Side files wait here until their resource block is accepted
        self._staged: dict[tuple[str, str], dict[str, bytes]] = {}

    @property
    def resources(self) -> dict[str, dict[str, dict[str, Any]]]:
        return self._resources

    @property
    def files(self) -> dict[str, bytes]:
        return dict(self._files)

    def render(
        self,
        task: SQSQueue,
        a: SQSQueue | None,
        e: SQSQueue,
        changes: SQSQueue | None,
    ) -> None:
        task.render_terraform(self, a, e, changes)

    def _check_unrendered(self, resource_type: str, name: str) -> None:
        if name in self._resources.get(resource_type, {}):
            raise RenderError(f"duplicate Terraform resource {resource_type}.{name}")

    def add_file_resource(
        self,
        resource_type: str,
        resource_name: str,
        key: str,
        resource: Resource | None,
    ) -> Literal | None:
        """Stage content as a side file and return a file() reference to it.

        The file only becomes part of the output once render_resource
        accepts the block for the same resource.

        Returns:
            A Literal for use as a field value, or None if resource is None.

        Raises:
            RenderError: If the resource was already rendered or the content
                cannot be read.
        """
        if resource is None:
            return None

        name = sanitize_name(resource_name)
        self._check_unrendered(resource_type, name)
        filename = f"{resource_type}_{name}_{key}"
        try:
            data = resource_as_bytes(resource)
        except OSError as e:
            raise RenderError(f"error reading {key} for {resource_type} {resource_name!r}: {e}") from e

        self._staged.setdefault((resource_type, name), {})[filename] = data
        return literal_data_file(filename)

    def render_resource(self, resource_type: str, resource_name: str, obj: Any) -> None:
        """Record one resource block and commit its staged side files.

        On failure the staged files are dropped and nothing recorded
        earlier changes.

        Raises:
            RenderError: If the block is a duplicate or cannot be converted.
        """
        name = sanitize_name(resource_name)
        staged = self._staged.pop((resource_type, name), {})
        self._check_unrendered(resource_type, name)
        try:
            fields = to_tf_fields(obj)
        except TypeError as e:
            raise RenderError(f"cannot render {resource_type}.{name}: {e}") from e
        self._resources.setdefault(resource_type, {})[name] = fields
        self._files.update(staged)
        logger.debug(
            "Rendered Terraform resource",
            extra={"resource_type": resource_type, "resource_name": name},
        )

    def document(self) -> dict[str, Any]:
        """The Terraform JSON document for everything rendered so far."""
        return {
            "resource": {
                resource_type: dict(sorted(blocks.items()))
                for resource_type, blocks in sorted(self._resources.items())
            }
        }

    def finish(self) -> None:
        """Write main.tf.json and all side files to output_dir.

        Raises:
            RenderError: If writing fails.
        """
        try:
            data_dir = self.output_dir / DATA_DIRNAME
            data_dir.mkdir(parents=True, exist_ok=True)
            for filename, data in sorted(self._files.items()):
                (data_dir / filename).write_bytes(data)
            main_path = self.output_dir / MAIN_FILENAME
            main_path.write_text(
                json.dumps(self.document(), indent=2, sort_keys=False) + "\n",
                encoding="utf-8",
            )
        except OSError as e:
            raise RenderError(f"error writing Terraform output to {self.output_dir}: {e}") from e

        logger.info(
            "Terraform output written",
            extra={
                "output_dir": str(self.output_dir),
                "resource_count": sum(len(b) for b in self._resources.values()),
                "file_count": len(self._files),
            },
        )
