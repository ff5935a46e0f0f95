"""Whole-value encoding and decoding driven by codec plans."""

from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from .errors import CodecError, InvalidValue, LengthMismatch, TrailingBytes, UnknownTag
from .fields import FieldPlan
from .plan import CodecPlan, StructPlan, UnionPlan
from .primitives import Codec, Reader, write_length, write_uint
from .values import Record, Variant


def _field_getter(value: Any) -> Callable[[str], Any]:
    def get(name: str) -> Any:
        try:
            if isinstance(value, Mapping):
                return value[name]
            return getattr(value, name)
        except (AttributeError, KeyError) as e:
            raise InvalidValue(f"{type(value).__name__} has no field {name}") from e

    return get


def _write_fields(fields: FieldPlan, get: Callable[[str], Any], out: bytearray) -> None:
    for step in fields.body:
        try:
            step.codec.encode(get(step.name), out)
        except CodecError as e:
            e.add_context(step.name)
            raise
    if fields.tlv is not None:
        fields.tlv.encode(get, out)


def _read_fields(fields: FieldPlan, reader: Reader) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for step in fields.body:
        try:
            values[step.name] = step.codec.decode(reader)
        except CodecError as e:
            e.add_context(step.name)
            raise
    if fields.tlv is not None:
        values.update(fields.tlv.decode(reader))
    # Skipped fields never touch the input
    for step in fields.skipped:
        values[step.name] = step.default()
    return values


def _build(binding: Any, values: dict[str, Any]) -> Any:
    if binding is None:
        return Record(**values)
    return binding(**values)


def write_struct(plan: StructPlan, value: Any, out: bytearray) -> None:
    _write_fields(plan.fields, _field_getter(value), out)


def read_struct(plan: StructPlan, reader: Reader) -> Any:
    return _build(plan.descriptor.binding, _read_fields(plan.fields, reader))


def write_union(plan: UnionPlan, value: Any, out: bytearray) -> None:
    variant = plan.variant_of(value)
    if variant is None:
        raise InvalidValue(f"{value!r} is not a variant of {plan.name}")
    write_uint(variant.tag, plan.tags.width, out)
    if variant.fields.steps:
        source = value.fields if isinstance(value, Variant) else value
        _write_fields(variant.fields, _field_getter(source), out)


def read_union(plan: UnionPlan, reader: Reader) -> Any:
    offset = reader.offset
    tag = reader.read_uint(plan.tags.width)
    variant = plan.by_tag.get(tag)
    if variant is None:
        raise UnknownTag(tag, plan.name, offset=offset)

    values = _read_fields(variant.fields, reader)
    binding = variant.variant.binding
    if binding is None:
        return Variant(variant.name, Record(**values))
    if isinstance(binding, Enum):
        return binding
    return binding(**values)


def write_value(plan: CodecPlan, value: Any, out: bytearray) -> None:
    if isinstance(plan, StructPlan):
        write_struct(plan, value, out)
    else:
        write_union(plan, value, out)


def read_value(plan: CodecPlan, reader: Reader) -> Any:
    if isinstance(plan, StructPlan):
        return read_struct(plan, reader)
    return read_union(plan, reader)


def default_value(plan: CodecPlan) -> Any:
    """Build the zero value of a type: every field defaulted, first variant for unions."""
    if isinstance(plan, StructPlan):
        values = {step.name: step.default() for step in plan.fields.steps}
        return _build(plan.descriptor.binding, values)

    first = plan.variants[0]
    binding = first.variant.binding
    if isinstance(binding, Enum):
        return binding
    values = {step.name: step.default() for step in first.fields.steps}
    if binding is None:
        return Variant(first.name, Record(**values))
    return binding(**values)


class CompositeCodec(Codec):
    """Codec for a field whose type is a named struct or union.

    The plan is looked up by name on use, which allows recursive types. A
    struct with a TLV region reads until its input runs out, so when nested it
    is framed with a u16 length prefix.
    """

    def __init__(self, registry: Any, name: str):
        self._registry = registry
        self.name = name

    @property
    def plan(self) -> CodecPlan:
        return self._registry.plan(self.name)

    def encode(self, value: Any, out: bytearray) -> None:
        plan = self.plan
        if not plan.use_tlv:
            write_value(plan, value, out)
            return
        body = bytearray()
        write_value(plan, value, body)
        write_length(len(body), out)
        out.extend(body)

    def decode(self, reader: Reader) -> Any:
        plan = self.plan
        if not plan.use_tlv:
            return read_value(plan, reader)
        window = reader.window(reader.read_length())
        value = read_value(plan, window)
        if not window.is_empty():
            raise LengthMismatch(
                f"{window.remaining} unread byte(s) in framed {self.name}", offset=window.offset
            )
        return value

    def default(self) -> Any:
        return default_value(self.plan)


def encode(plan: CodecPlan, value: Any) -> bytes:
    """Encode a value as the top-level value of a buffer."""
    out = bytearray()
    try:
        write_value(plan, value, out)
    except CodecError as e:
        e.add_context(plan.name)
        raise
    return bytes(out)


def decode(plan: CodecPlan, data: bytes | bytearray | memoryview) -> Any:
    """Decode a buffer holding exactly one value.

    Raises:
        DecodeError: If the input is malformed, or bytes remain after the value.
    """
    reader = Reader(data)
    try:
        value = read_value(plan, reader)
    except CodecError as e:
        e.add_context(plan.name)
        raise
    if not reader.is_empty():
        raise TrailingBytes(reader.remaining, offset=reader.offset)
    return value
