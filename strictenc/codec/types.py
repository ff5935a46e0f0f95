"""Type descriptors consumed by the codec plan compiler.

These dataclasses are the normalized description of a struct or tagged union
type, produced by a front-end (the dataclass decorators in
:mod:`strictenc.codec.serialization` or the schema parser in
:mod:`strictenc.schema`) and compiled into a codec plan.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


# Sentinel for missing default
MISSING: Any = _Missing()


class Kind(StrEnum):
    """Whether a type is a structure or a tagged union."""

    STRUCT = "struct"
    UNION = "union"


class TagStrategy(StrEnum):
    """How the default tag of a union variant is computed."""

    BY_ORDER = "by_order"
    BY_VALUE = "by_value"


class FieldRole(StrEnum):
    """How a field takes part in the encoding."""

    NORMAL = "normal"
    SKIPPED = "skipped"
    TLV_TAGGED = "tlv"
    TLV_CAPTURE = "unknown_tlvs"


REPR_WIDTHS = (1, 2, 4, 8)


@dataclass(frozen=True, slots=True)
class TypeRef:
    """Reference to a leaf, container or named composite type.

    ``args`` holds the element types of ``option``/``list``/``map`` and
    ``size`` the length of a fixed ``bytes[N]`` array.
    """

    name: str
    args: tuple["TypeRef", ...] = ()
    size: int | None = None

    def __str__(self) -> str:
        text = self.name
        if self.args:
            text += "<" + ", ".join(str(arg) for arg in self.args) + ">"
        if self.size is not None:
            text += f"[{self.size}]"
        return text


@dataclass(frozen=True, slots=True)
class TypeConfig:
    """Type level directives."""

    use_tlv: bool = False
    by_order: bool = False
    by_value: bool = False
    repr_width: int | None = None


@dataclass(frozen=True, slots=True)
class FieldDescriptor:
    """Describes a field of a struct or of a union variant."""

    name: str
    position: int
    type: TypeRef
    role: FieldRole = FieldRole.NORMAL
    tlv_tag: int | None = None
    default: Any = field(default=MISSING, compare=False)
    default_factory: Any = field(default=MISSING, compare=False)


@dataclass(frozen=True, slots=True)
class VariantDescriptor:
    """Describes one variant of a tagged union.

    ``value`` is the variant's intrinsic value (used by ``by_value``) and
    ``explicit_value`` an override that wins over any strategy. ``binding`` is
    the Python object representing the variant: an enum member or a class.
    """

    name: str
    ordinal: int
    value: int | None = None
    explicit_value: int | None = None
    fields: tuple[FieldDescriptor, ...] = ()
    binding: Any = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class TypeDescriptor:
    """Describes a struct or tagged union with its directives."""

    name: str
    kind: Kind
    fields: tuple[FieldDescriptor, ...] = ()
    variants: tuple[VariantDescriptor, ...] = ()
    config: TypeConfig = TypeConfig()
    binding: Any = field(default=None, compare=False)

    @property
    def is_struct(self) -> bool:
        return self.kind == Kind.STRUCT


PRIMITIVE_TYPES = frozenset(
    [
        "bool",
        "u8",
        "u16",
        "u32",
        "u64",
        "i8",
        "i16",
        "i32",
        "i64",
        "bytes",
        "string",
    ]
)

CONTAINER_TYPES = {"option": 1, "list": 1, "map": 2}


def is_primitive(t: TypeRef) -> bool:
    """Check if a type is a primitive type."""
    return t.name in PRIMITIVE_TYPES


def is_container(t: TypeRef) -> bool:
    """Check if a type is an option, list or map."""
    return t.name in CONTAINER_TYPES


def is_option(t: TypeRef) -> bool:
    return t.name == "option"


def is_composite(t: TypeRef) -> bool:
    """Check if a type names a user-declared struct or union."""
    return not is_primitive(t) and not is_container(t)


CAPTURE_TYPE = TypeRef("map", (TypeRef("u16"), TypeRef("bytes")))
