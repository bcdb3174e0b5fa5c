"""
Minimal schema coercion for decoded JSON responses.

Checkers validate a decoded value and return a coerced copy, or raise
SchemaError naming the element that failed. Only what the session layer
needs is covered; per-resource parsing lives in the typed records.
"""

from typing import Any

from maas_client.core.errors import DeserializationError
from maas_client.core.types import JSONValue


class SchemaError(Exception):
    """A value did not match its declared shape."""

    def __init__(self, path: str, expected: str, got: Any = None, missing: bool = False):
        self.path = path
        self.expected = expected
        self.got = got
        label = path or "value"
        if missing:
            super().__init__(f"{label}: expected {expected}, got nothing")
        else:
            super().__init__(f"{label}: expected {expected}, got {type(got).__name__}({got!r})")


class Checker:
    """Base class for checkers."""

    expected = "value"

    def coerce(self, value: JSONValue, path: str = "") -> Any:
        raise NotImplementedError


class String(Checker):
    expected = "string"

    def coerce(self, value: JSONValue, path: str = "") -> str:
        if not isinstance(value, str):
            raise SchemaError(path, self.expected, value)
        return value


class Int(Checker):
    expected = "int"

    def coerce(self, value: JSONValue, path: str = "") -> int:
        # bool is an int subclass, reject it explicitly.
        if isinstance(value, bool):
            raise SchemaError(path, self.expected, value)
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        raise SchemaError(path, self.expected, value)


class Bool(Checker):
    expected = "bool"

    def coerce(self, value: JSONValue, path: str = "") -> bool:
        if not isinstance(value, bool):
            raise SchemaError(path, self.expected, value)
        return value


class List(Checker):
    """A list whose elements all satisfy the element checker."""

    def __init__(self, element: Checker):
        self.element = element
        self.expected = f"list of {element.expected}"

    def coerce(self, value: JSONValue, path: str = "") -> list[Any]:
        if not isinstance(value, list):
            raise SchemaError(path, self.expected, value)
        return [self.element.coerce(item, f"{path}[{i}]") for i, item in enumerate(value)]


class FieldMap(Checker):
    """
    A JSON object with declared fields.

    Every declared field is required unless it has an entry in ``defaults``.
    Undeclared fields are dropped from the result.
    """

    expected = "object"

    def __init__(self, fields: dict[str, Checker], defaults: dict[str, Any] | None = None):
        self.fields = fields
        self.defaults = defaults or {}

    def coerce(self, value: JSONValue, path: str = "") -> dict[str, Any]:
        if not isinstance(value, dict):
            raise SchemaError(path, self.expected, value)
        result: dict[str, Any] = {}
        for name, checker in self.fields.items():
            field_path = f"{path}.{name}" if path else name
            if name not in value:
                if name in self.defaults:
                    result[name] = self.defaults[name]
                    continue
                raise SchemaError(field_path, checker.expected, missing=True)
            result[name] = checker.coerce(value[name], field_path)
        return result


def coerce_response(checker: Checker, value: JSONValue, context: str) -> Any:
    """Coerce a decoded response, raising DeserializationError on mismatch."""
    try:
        return checker.coerce(value)
    except SchemaError as e:
        raise DeserializationError(
            f"{context} schema check failed: {e}",
            details={"field": e.path, "expected": e.expected},
        ) from e
