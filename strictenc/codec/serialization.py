"""Dataclass and Enum front-end for strict encoding.

Decorated classes are described as type descriptors, registered with a
registry and given ``strict_serialize``/``strict_deserialize`` methods.
"""

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import InvalidDirective
from .registry import Registry
from .types import (
    MISSING,
    FieldDescriptor,
    FieldRole,
    Kind,
    TypeConfig,
    TypeDescriptor,
    TypeRef,
    VariantDescriptor,
)

default_registry = Registry()

# Python annotations whose wire type is unambiguous
_INFERRED_TYPES = {
    bool: "bool",
    str: "string",
    bytes: "bytes",
    "bool": "bool",
    "str": "string",
    "bytes": "bytes",
}

_REPR_NAMES = {"u8": 1, "u16": 2, "u32": 4, "u64": 8}


@dataclass(frozen=True)
class StrictFieldInfo:
    """Metadata for a strictly encoded dataclass field."""

    type: TypeRef | None
    skip: bool = False
    tlv: int | None = None
    unknown_tlvs: bool = False

    @property
    def role(self) -> FieldRole:
        flags = [self.skip, self.tlv is not None, self.unknown_tlvs]
        if sum(flags) > 1:
            raise InvalidDirective("skip, tlv and unknown_tlvs are mutually exclusive")
        if self.skip:
            return FieldRole.SKIPPED
        if self.tlv is not None:
            return FieldRole.TLV_TAGGED
        if self.unknown_tlvs:
            return FieldRole.TLV_CAPTURE
        return FieldRole.NORMAL


def _type_ref(type: Any) -> TypeRef | None:
    if type is None or isinstance(type, TypeRef):
        return type
    if isinstance(type, str):
        from strictenc.schema.parser import parse_type

        return parse_type(type)
    name = getattr(type, "__strict_name__", None)
    if name is None:
        raise InvalidDirective(f"{type!r} is not a strictly encoded type")
    return TypeRef(name)


def strict_field(
    type: Any = None,
    *,
    skip: bool = False,
    tlv: int | None = None,
    unknown_tlvs: bool = False,
    default: Any = MISSING,
    default_factory: Any = MISSING,
) -> Any:
    """Define a dataclass field with strict encoding metadata.

    Args:
        type: Wire type as a string (e.g. "u16", "option<string>",
            "map<u16, bytes>"), a TypeRef, or a decorated class. None infers
            it from the annotation.
        skip: Leave the field out of the encoding; decode restores the default.
        tlv: Encode the field as a TLV entry with this id (field must be optional).
        unknown_tlvs: Collect unknown odd TLV entries into this field.
        default: Default value for the field.
        default_factory: Factory function for default value.

    Returns:
        A dataclass field with strictenc metadata attached.
    """
    metadata = {"strictenc": StrictFieldInfo(_type_ref(type), skip, tlv, unknown_tlvs)}

    if default is not MISSING:
        return field(default=default, metadata=metadata)
    if default_factory is not MISSING:
        return field(default_factory=default_factory, metadata=metadata)
    return field(metadata=metadata)


def _annotation_type(owner: type, f: dataclasses.Field) -> TypeRef:
    annotation = f.type
    if annotation in _INFERRED_TYPES:
        return TypeRef(_INFERRED_TYPES[annotation])
    name = getattr(annotation, "__strict_name__", None)
    if name is not None:
        return TypeRef(name)
    if isinstance(annotation, str) and annotation.isidentifier():
        return TypeRef(annotation)
    raise InvalidDirective(f"{owner.__name__}.{f.name}: wire type needed, use strict_field(type)")


def _describe_fields(cls: type) -> tuple[FieldDescriptor, ...]:
    if not dataclasses.is_dataclass(cls):
        raise TypeError(f"{cls.__name__} must be a dataclass")

    result: list[FieldDescriptor] = []
    for position, f in enumerate(dataclasses.fields(cls)):
        info = f.metadata.get("strictenc") or StrictFieldInfo(None)
        t = info.type if info.type is not None else _annotation_type(cls, f)
        result.append(
            FieldDescriptor(
                name=f.name,
                position=position,
                type=t,
                role=info.role,
                tlv_tag=info.tlv,
                default=MISSING if f.default is dataclasses.MISSING else f.default,
                default_factory=(
                    MISSING if f.default_factory is dataclasses.MISSING else f.default_factory
                ),
            )
        )
    return tuple(result)


def _attach(cls: type, name: str, registry: Registry) -> None:
    def strict_serialize(self: Any) -> bytes:
        """Encode this value to bytes."""
        return registry.encode(name, self)

    def strict_deserialize(klass: type, data: bytes | bytearray | memoryview) -> Any:
        """Decode a value from bytes holding exactly one encoded value."""
        return registry.decode(name, data)

    setattr(cls, "strict_serialize", strict_serialize)
    setattr(cls, "strict_deserialize", classmethod(strict_deserialize))


def strict_struct(
    cls: type | None = None, *, registry: Registry | None = None, use_tlv: bool = False
) -> Any:
    """Register a dataclass as a strictly encoded struct.

    Example:
        @strict_struct(use_tlv=True)
        @dataclass
        class Channel:
            id: int = strict_field("u32")
            alias: str | None = strict_field("option<string>", tlv=1, default=None)
    """

    def wrap(cls: type) -> type:
        reg = registry if registry is not None else default_registry
        descriptor = TypeDescriptor(
            name=cls.__name__,
            kind=Kind.STRUCT,
            fields=_describe_fields(cls),
            config=TypeConfig(use_tlv=use_tlv),
            binding=cls,
        )
        reg.register(descriptor)
        setattr(cls, "__strict_name__", cls.__name__)
        setattr(cls, "__strict_registry__", reg)
        _attach(cls, cls.__name__, reg)
        return cls

    if cls is None:
        return wrap
    return wrap(cls)


def strict_variant(
    cls: type | None = None, *, value: int | None = None, discriminant: int | None = None
) -> Any:
    """Give a nested variant dataclass a tag value.

    Args:
        value: Explicit tag, used whatever the union's tag strategy.
        discriminant: Intrinsic value, used as the tag by by_value unions.
    """

    def wrap(cls: type) -> type:
        setattr(cls, "__strict_value__", value)
        setattr(cls, "__strict_discriminant__", discriminant)
        return cls

    if cls is None:
        return wrap
    return wrap(cls)


def _enum_variants(
    cls: type[Enum], values: dict[str, int], by_value: bool
) -> tuple[VariantDescriptor, ...]:
    result: list[VariantDescriptor] = []
    for ordinal, member in enumerate(cls):
        intrinsic = member.value if isinstance(member.value, int) else None
        if by_value and intrinsic is None and member.name not in values:
            raise InvalidDirective(f"{cls.__name__}.{member.name}: by_value needs an int value")
        result.append(
            VariantDescriptor(
                name=member.name,
                ordinal=ordinal,
                value=intrinsic,
                explicit_value=values.get(member.name),
                binding=member,
            )
        )
    return tuple(result)


def _class_variants(cls: type, values: dict[str, int]) -> tuple[VariantDescriptor, ...]:
    nested = [v for v in vars(cls).values() if isinstance(v, type) and dataclasses.is_dataclass(v)]
    result: list[VariantDescriptor] = []
    for ordinal, variant in enumerate(nested):
        explicit = getattr(variant, "__strict_value__", None)
        result.append(
            VariantDescriptor(
                name=variant.__name__,
                ordinal=ordinal,
                value=getattr(variant, "__strict_discriminant__", None),
                explicit_value=values.get(variant.__name__, explicit),
                fields=_describe_fields(variant),
                binding=variant,
            )
        )
    return tuple(result)


def strict_union(
    cls: type | None = None,
    *,
    registry: Registry | None = None,
    by_order: bool = False,
    by_value: bool = False,
    repr: int | str | None = None,
    values: dict[str, int] | None = None,
) -> Any:
    """Register an Enum, or a class holding nested variant dataclasses, as a tagged union.

    Args:
        registry: Registry to add the type to, the default registry if None.
        by_order: Tag variants by declaration order (the default).
        by_value: Tag variants by their value (enum member values).
        repr: Tag width, in bytes (1, 2, 4, 8) or as "u8".."u64".
        values: Explicit tag values by variant name.

    Example:
        @strict_union(by_value=True, repr="u32", values={"Bit16": 0x10})
        class CustomValues(Enum):
            Bit8 = 1
            Bit16 = 2
    """

    def wrap(cls: type) -> type:
        reg = registry if registry is not None else default_registry
        explicit = dict(values or {})
        if isinstance(cls, type) and issubclass(cls, Enum):
            variants = _enum_variants(cls, explicit, by_value)
        else:
            variants = _class_variants(cls, explicit)

        unknown = set(explicit) - {v.name for v in variants}
        if unknown:
            raise InvalidDirective(f"{cls.__name__}: no variants named {', '.join(sorted(unknown))}")

        width = repr
        if isinstance(repr, str):
            if repr not in _REPR_NAMES:
                raise InvalidDirective(f"{cls.__name__}: unknown repr {repr}")
            width = _REPR_NAMES[repr]

        descriptor = TypeDescriptor(
            name=cls.__name__,
            kind=Kind.UNION,
            variants=variants,
            config=TypeConfig(by_order=by_order, by_value=by_value, repr_width=width),
            binding=cls,
        )
        reg.register(descriptor)
        setattr(cls, "__strict_name__", cls.__name__)
        setattr(cls, "__strict_registry__", reg)
        _attach(cls, cls.__name__, reg)
        for variant in variants:
            if isinstance(variant.binding, type):
                _attach(variant.binding, cls.__name__, reg)
        return cls

    if cls is None:
        return wrap
    return wrap(cls)


def strict_serialize(value: Any) -> bytes:
    """Encode a value of a decorated class."""
    if not hasattr(value, "strict_serialize"):
        raise TypeError(f"{type(value).__name__} is not a strictly encoded type")
    return value.strict_serialize()


def strict_deserialize(cls: type, data: bytes | bytearray | memoryview) -> Any:
    """Decode bytes as a value of a decorated class."""
    registry: Registry = getattr(cls, "__strict_registry__", default_registry)
    return registry.decode(getattr(cls, "__strict_name__", cls.__name__), data)
