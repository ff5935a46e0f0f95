"""Conversion between JSON documents and in-memory values of schema types.

Byte strings are written as hex, structs as objects, and union values as
either the bare variant name or ``{"variant": name, "fields": {...}}``.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Any

from strictenc.codec.errors import InvalidValue
from strictenc.codec.registry import Registry
from strictenc.codec.types import FieldDescriptor, FieldRole, TypeRef
from strictenc.codec.values import Record, Variant

_INT_TYPES = frozenset(["u8", "u16", "u32", "u64", "i8", "i16", "i32", "i64"])


def _field_type(field: FieldDescriptor) -> TypeRef:
    if field.role == FieldRole.TLV_TAGGED:
        return field.type.args[0]
    return field.type


def _fields_from_json(registry: Registry, fields: tuple[FieldDescriptor, ...], doc: Any) -> Record:
    if not isinstance(doc, Mapping):
        raise InvalidValue(f"expected an object, got {doc!r}")
    known = {f.name: f for f in fields}
    unknown = set(doc) - set(known)
    if unknown:
        raise InvalidValue(f"unknown field(s) {', '.join(sorted(unknown))}")

    values: dict[str, Any] = {}
    for field in fields:
        if field.name in doc:
            item = doc[field.name]
            if field.role == FieldRole.TLV_TAGGED and item is None:
                values[field.name] = None
            else:
                values[field.name] = from_json(registry, _field_type(field), item)
        elif field.role == FieldRole.TLV_TAGGED:
            values[field.name] = None
        elif field.role == FieldRole.TLV_CAPTURE:
            values[field.name] = {}
    return Record(**values)


def from_json(registry: Registry, t: TypeRef, doc: Any) -> Any:
    """Build the in-memory value of type ``t`` from a JSON document."""
    if t.name == "bytes":
        if not isinstance(doc, str):
            raise InvalidValue(f"expected a hex string, got {doc!r}")
        try:
            return bytes.fromhex(doc)
        except ValueError as e:
            raise InvalidValue(f"invalid hex string {doc!r}") from e
    if t.name == "option":
        return None if doc is None else from_json(registry, t.args[0], doc)
    if t.name == "list":
        if not isinstance(doc, list):
            raise InvalidValue(f"expected a list, got {doc!r}")
        return [from_json(registry, t.args[0], item) for item in doc]
    if t.name == "map":
        if not isinstance(doc, Mapping):
            raise InvalidValue(f"expected an object, got {doc!r}")
        result = {}
        for k, v in doc.items():
            if t.args[0].name in _INT_TYPES:
                try:
                    k = int(k)
                except ValueError as e:
                    raise InvalidValue(f"invalid map key {k!r}") from e
            result[from_json(registry, t.args[0], k)] = from_json(registry, t.args[1], v)
        return result
    if t.name in registry:
        descriptor = registry.descriptor(t.name)
        if descriptor.is_struct:
            return _fields_from_json(registry, descriptor.fields, doc)
        if isinstance(doc, str):
            return Variant(doc)
        if not isinstance(doc, Mapping) or "variant" not in doc:
            raise InvalidValue(f"expected a variant name or object, got {doc!r}")
        variants = {v.name: v for v in descriptor.variants}
        if doc["variant"] not in variants:
            raise InvalidValue(f"{doc['variant']} is not a variant of {t.name}")
        fields = variants[doc["variant"]].fields
        return Variant(doc["variant"], _fields_from_json(registry, fields, doc.get("fields", {})))
    return doc


def to_json(value: Any) -> Any:
    """Convert a decoded value to a JSON-compatible document."""
    if isinstance(value, bytes | bytearray):
        return value.hex()
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, Variant):
        fields = vars(value.fields)
        if not fields:
            return value.name
        return {"variant": value.name, "fields": to_json(fields)}
    if isinstance(value, Record):
        return to_json(vars(value))
    if isinstance(value, Mapping):
        return {str(k): to_json(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [to_json(item) for item in value]
    return value
