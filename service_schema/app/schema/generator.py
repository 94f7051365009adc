"""
JSON Schema derivation for Helm values documents.

The generator works on files inside a private scratch directory: the raw
document is written to ``values.yaml`` and the result to
``values.schema.json``. The directory is removed on every exit path.
"""

from __future__ import annotations

import json
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator

import yaml

from shared.logging import get_logger
from shared.errors import TransformFailedError


DRAFT_URIS = {
    4: "http://json-schema.org/draft-04/schema#",
    6: "http://json-schema.org/draft-06/schema#",
    7: "http://json-schema.org/draft-07/schema#",
    2019: "https://json-schema.org/draft/2019-09/schema",
    2020: "https://json-schema.org/draft/2020-12/schema",
}


@dataclass(frozen=True)
class SchemaRoot:
    """Metadata placed on the root of every generated schema."""

    id: str = "https://example.com/schema"
    title: str = "Helm Values Schema"
    description_template: str = "Generated Helm Values Schema for {label}"
    additional_properties: bool = True


@contextmanager
def scratch_workspace(prefix: str = "values-") -> Iterator[Path]:
    """Yield a temporary directory that is deleted however the block exits."""
    with tempfile.TemporaryDirectory(prefix=prefix) as tmp:
        yield Path(tmp)


def infer_schema(value: Any) -> Dict[str, Any]:
    """Return the schema fragment describing ``value``."""
    # bool first: it is a subclass of int
    if isinstance(value, bool):
        return {"type": "boolean"}
    if isinstance(value, int):
        return {"type": "integer"}
    if isinstance(value, float):
        return {"type": "number"}
    if isinstance(value, str):
        return {"type": "string"}
    if value is None:
        return {"type": "null"}
    if isinstance(value, dict):
        return {
            "type": "object",
            "properties": {str(key): infer_schema(item) for key, item in value.items()},
        }
    if isinstance(value, (list, tuple)):
        schema: Dict[str, Any] = {"type": "array"}
        if value:
            schema["items"] = infer_schema(value[0])
        return schema
    # dates and other YAML scalars PyYAML resolves natively
    return {"type": "string"}


class SchemaGenerator:
    """Turns raw values documents into JSON Schema bytes."""

    def __init__(self, draft: int = 2020, indent: int = 4, root: SchemaRoot = SchemaRoot()):
        if draft not in DRAFT_URIS:
            raise ValueError(f"unsupported schema draft {draft}; expected one of {sorted(DRAFT_URIS)}")
        self.draft = draft
        self.indent = indent
        self.root = root
        self.logger = get_logger("schema.generator")

    def generate(self, raw: bytes, label: str) -> bytes:
        """Derive the schema for ``raw``; ``label`` only feeds the description."""
        with scratch_workspace() as workdir:
            input_path = workdir / "values.yaml"
            output_path = workdir / "values.schema.json"
            try:
                input_path.write_bytes(raw)
                self.generate_file(input_path, output_path, label)
                schema = output_path.read_bytes()
            except OSError as exc:
                raise TransformFailedError(f"scratch file error: {exc}") from exc

        self.logger.debug("Schema generated", label=label, bytes=len(schema))
        return schema

    def generate_file(self, input_path: Path, output_path: Path, label: str) -> None:
        """Read values from ``input_path`` and write the schema to ``output_path``."""
        with input_path.open("rb") as stream:
            try:
                values = yaml.safe_load(stream)
            except (yaml.YAMLError, ValueError) as exc:
                # bad scalars such as "2001-13-01" or "!!int abc" raise ValueError
                raise TransformFailedError(f"invalid values YAML: {exc}") from exc

        if values is None:
            values = {}
        if not isinstance(values, dict):
            raise TransformFailedError(
                f"values document must be a mapping, got {type(values).__name__}"
            )

        try:
            schema = self.build(values, label)
        except RecursionError as exc:
            # self-referencing anchors or absurd nesting depth
            raise TransformFailedError("values document is nested too deeply") from exc
        output_path.write_text(json.dumps(schema, indent=self.indent, ensure_ascii=False), encoding="utf-8")

    def build(self, values: Dict[str, Any], label: str) -> Dict[str, Any]:
        """Build the full root schema object for a parsed values mapping."""
        body = infer_schema(values)
        return {
            "$schema": DRAFT_URIS[self.draft],
            "$id": self.root.id,
            "title": self.root.title,
            "description": self.root.description_template.format(label=label),
            "type": "object",
            "additionalProperties": self.root.additional_properties,
            "properties": body["properties"],
        }
