"""
JSON Schema registry for call files.

Schemas ship inside the package under ``marble/calls/data``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import jsonschema
from jsonschema import FormatChecker

from ..errors import CallFileError

CALL_SCHEMA = "call.schema.json"


@dataclass(frozen=True)
class SchemaRegistry:
    schema_root: Path

    @staticmethod
    def discover_root() -> Path:
        root = Path(__file__).resolve().parent / "data"
        if not root.is_dir():
            raise FileNotFoundError(f"Unable to locate Marble schemas directory: {root}")
        return root

    @classmethod
    def default(cls) -> "SchemaRegistry":
        return cls(schema_root=cls.discover_root())

    def load_schema(self, schema_filename: str) -> dict[str, Any]:
        with (self.schema_root / schema_filename).open("r", encoding="utf-8") as f:
            return json.load(f)

    def validator_for(self, schema_filename: str) -> jsonschema.Validator:
        return _build_validator(self.schema_root, schema_filename)

    def validate_instance(self, instance: Any, schema_filename: str) -> None:
        """
        Raises:
            CallFileError: Listing every violation as ``<location>: <message>``
        """
        validator = self.validator_for(schema_filename)
        problems = [
            f"{'/'.join(str(part) for part in err.path) or '<root>'}: {err.message}"
            for err in sorted(validator.iter_errors(instance), key=lambda e: list(e.path))
        ]
        if problems:
            raise CallFileError(
                f"Invalid call file ({schema_filename}): " + "; ".join(problems),
                errors=problems,
            )


@lru_cache(maxsize=None)
def _build_validator(schema_root: Path, schema_filename: str) -> jsonschema.Validator:
    schema = SchemaRegistry(schema_root).load_schema(schema_filename)
    validator_cls = jsonschema.validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema, format_checker=FormatChecker())


def load_json(path: Path) -> Any:
    """Read a call file, reporting malformed JSON as a CallFileError."""
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise CallFileError(f"{path} is not valid JSON: {exc}") from exc
