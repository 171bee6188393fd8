"""
Field validation for ResourceDB.

The store never interprets entity fields itself. Validation policy is
supplied by the caller as a validator: any callable that takes the fields
mapping and raises InvalidArgumentError when it is unacceptable.

This module provides:
- accept_any: the default, accepts every mapping
- RequiredFields: rejects payloads missing named attributes
- SchemaValidator: typed field specs with suggestions for unknown fields

Invariants:
    - Validators never mutate the fields they are given
    - Validation errors are deterministic
    - Unknown fields suggest similar valid fields
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from difflib import get_close_matches
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import InvalidArgumentError

Validator = Callable[[Mapping], None]


def accept_any(fields: Mapping) -> None:
    """Validator that accepts any mapping."""
    return None


def ensure_mapping(fields: Any) -> Dict[str, Any]:
    """Check that fields is a mapping and return it as a plain dict.

    Raises:
        InvalidArgumentError: If fields is None or not a mapping
    """
    if fields is None:
        raise InvalidArgumentError("fields are required")
    if not isinstance(fields, Mapping):
        raise InvalidArgumentError(
            f"fields must be a mapping, got {type(fields).__name__}"
        )
    return dict(fields)


class RequiredFields:
    """Validator that requires a fixed set of attributes.

    Example:
        >>> store = InMemoryResourceStore(validator=RequiredFields("name"))
    """

    def __init__(self, *names: str) -> None:
        self.names = tuple(names)

    def __call__(self, fields: Mapping) -> None:
        missing = [name for name in self.names if fields.get(name) is None]
        if missing:
            errors = [f"Field '{name}' is required" for name in missing]
            raise InvalidArgumentError(
                "; ".join(errors),
                field_name=missing[0],
                errors=errors,
            )

    def __repr__(self) -> str:
        return f"RequiredFields{self.names!r}"


class FieldKind(Enum):
    """Supported field value kinds."""

    STRING = "str"
    INTEGER = "int"
    FLOAT = "float"
    BOOLEAN = "bool"
    LIST_STRING = "list_str"


@dataclass(frozen=True)
class FieldSpec:
    """Specification of a single field.

    Attributes:
        name: Attribute name
        kind: Expected value kind
        required: Whether the field must be present and non-null
        gt: Exclusive lower bound for numeric kinds
    """

    name: str
    kind: FieldKind
    required: bool = False
    gt: Optional[float] = None


def _validate_field_value(spec: FieldSpec, value: Any) -> Optional[str]:
    """Validate a single field value.

    Returns error message if invalid, None if valid.
    """
    name = spec.name
    kind = spec.kind

    if kind == FieldKind.STRING:
        if not isinstance(value, str):
            return f"Field '{name}' must be a string, got {type(value).__name__}"

    elif kind == FieldKind.INTEGER:
        if not isinstance(value, int) or isinstance(value, bool):
            return f"Field '{name}' must be an integer, got {type(value).__name__}"

    elif kind == FieldKind.FLOAT:
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            return f"Field '{name}' must be a number, got {type(value).__name__}"

    elif kind == FieldKind.BOOLEAN:
        if not isinstance(value, bool):
            return f"Field '{name}' must be a boolean, got {type(value).__name__}"

    elif kind == FieldKind.LIST_STRING:
        if not isinstance(value, list):
            return f"Field '{name}' must be a list, got {type(value).__name__}"
        for i, item in enumerate(value):
            if not isinstance(item, str):
                return f"Field '{name}[{i}]' must be a string"

    if spec.gt is not None and kind in (FieldKind.INTEGER, FieldKind.FLOAT):
        if value <= spec.gt:
            return f"Field '{name}' must be greater than {spec.gt}"

    return None


def validate_fields(
    specs: Tuple[FieldSpec, ...],
    fields: Mapping,
    allow_unknown: bool = False,
) -> Tuple[bool, List[str]]:
    """Validate fields against a tuple of field specs.

    Args:
        specs: Field specifications
        fields: Fields to validate
        allow_unknown: Whether attributes without a spec are accepted

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors: List[str] = []

    known = [s.name for s in specs]
    if not allow_unknown:
        for field_name in sorted(set(fields.keys()) - set(known)):
            suggestions = get_close_matches(field_name, known, n=3)
            if suggestions:
                errors.append(f"Unknown field '{field_name}'. Did you mean: {suggestions}?")
            else:
                errors.append(f"Unknown field '{field_name}'")

    for spec in specs:
        value = fields.get(spec.name)

        if value is None:
            if spec.required:
                errors.append(f"Field '{spec.name}' is required")
            continue

        error = _validate_field_value(spec, value)
        if error:
            errors.append(error)

    return len(errors) == 0, errors


class SchemaValidator:
    """Validator backed by a tuple of FieldSpecs.

    Example:
        >>> product = SchemaValidator(
        ...     FieldSpec("name", FieldKind.STRING, required=True),
        ...     FieldSpec("price", FieldKind.FLOAT, required=True, gt=0),
        ... )
        >>> product({"name": "Lamp", "price": 0})
        Traceback (most recent call last):
        ...
        InvalidArgumentError: Field 'price' must be greater than 0
    """

    def __init__(self, *specs: FieldSpec, allow_unknown: bool = False) -> None:
        self.specs = tuple(specs)
        self.allow_unknown = allow_unknown

    def __call__(self, fields: Mapping) -> None:
        is_valid, errors = validate_fields(self.specs, fields, self.allow_unknown)
        if not is_valid:
            raise InvalidArgumentError("; ".join(errors), errors=errors)
