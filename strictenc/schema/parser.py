"""Schema definition parser using Lark.

A schema declares structs and tagged unions (``enum``) with directives given
as ``@annotations``:

    @use_tlv
    struct Channel {
        id: u32
        @tlv(1) alias: option<string>
        @unknown_tlvs unknown: map<u16, bytes>
    }

    @by_value @repr(u32)
    enum CustomValues {
        Bit8 = 1
        @value(0x10) Bit16 = 2
    }
"""

import os
from dataclasses import dataclass
from typing import Any, TypeVar

from lark import Lark, UnexpectedInput
from lark.exceptions import VisitError
from lark.visitors import Transformer

from strictenc.codec.registry import Registry
from strictenc.codec.types import (
    FieldDescriptor,
    FieldRole,
    Kind,
    TypeConfig,
    TypeDescriptor,
    TypeRef,
    VariantDescriptor,
)

_g_parser: Lark | None = None

_REPR_WIDTHS = {"u8": 1, "u16": 2, "u32": 4, "u64": 8, "1": 1, "2": 2, "4": 4, "8": 8}

TYPE_DIRECTIVES = frozenset(["use_tlv", "by_order", "by_value", "repr"])
FIELD_DIRECTIVES = frozenset(["skip", "tlv", "unknown_tlvs"])
VARIANT_DIRECTIVES = frozenset(["value"])

# Directives that take an argument
_WITH_ARGUMENT = frozenset(["repr", "tlv", "value"])


class ValidationError(RuntimeError):
    """Raised when schema validation fails."""


@dataclass
class _Name:
    value: str


@dataclass
class _Annotation:
    name: str
    arg: str | None


@dataclass
class _Annotations:
    items: list[_Annotation]


@dataclass
class _Discriminant:
    value: int


@dataclass
class _Field:
    name: str
    type: TypeRef
    annotations: list[_Annotation]


@dataclass
class _VariantFields:
    fields: list[_Field]


@dataclass
class _Variant:
    name: str
    value: int | None
    fields: list[_Field]
    annotations: list[_Annotation]


@dataclass
class _TypeArgs:
    args: list[TypeRef]


@dataclass
class _FixedSize:
    value: int


TFilter = TypeVar("TFilter", bound=object)


def _filter(args: list[Any], class_type: type[TFilter]) -> list[TFilter]:
    return [v for v in args if isinstance(v, class_type)]


def _find_one(args: list[Any], class_type: type[TFilter]) -> TFilter | None:
    filtered = _filter(args, class_type)
    if len(filtered) == 0:
        return None
    if len(filtered) > 1:
        raise RuntimeError(f"Found more than one {class_type}")
    return filtered[0]


def _number(text: str) -> int:
    if text.lower().startswith("0x"):
        return int(text, 16)
    return int(text)


class TreeTransformer(Transformer):
    """Transform parse tree into intermediate schema items."""

    def name(self, args: list[Any]) -> _Name:
        return _Name(value=str(args[0]))

    def annotation_arg(self, args: list[Any]) -> str:
        return str(args[0])

    def annotation(self, args: list[Any]) -> _Annotation:
        arg = args[1] if len(args) > 1 else None
        return _Annotation(name=args[0].value, arg=arg)

    def annotations(self, args: list[Any]) -> _Annotations:
        return _Annotations(items=list(args))

    def discriminant(self, args: list[Any]) -> _Discriminant:
        return _Discriminant(value=_number(str(args[0])))

    def fixed_size(self, args: list[Any]) -> _FixedSize:
        return _FixedSize(value=_number(str(args[0])))

    def type_args(self, args: list[Any]) -> _TypeArgs:
        return _TypeArgs(args=list(args))

    def type_expr(self, args: list[Any]) -> TypeRef:
        type_args = _find_one(args, _TypeArgs)
        size = _find_one(args, _FixedSize)
        return TypeRef(
            name=args[0].value,
            args=tuple(type_args.args) if type_args else (),
            size=size.value if size else None,
        )

    def field(self, args: list[Any]) -> _Field:
        annotations = _find_one(args, _Annotations)
        return _Field(
            name=args[1].value,
            type=_find_one(args, TypeRef),
            annotations=annotations.items if annotations else [],
        )

    def variant_fields(self, args: list[Any]) -> _VariantFields:
        return _VariantFields(fields=_filter(args, _Field))

    def variant(self, args: list[Any]) -> _Variant:
        annotations = _find_one(args, _Annotations)
        discriminant = _find_one(args, _Discriminant)
        fields = _find_one(args, _VariantFields)
        return _Variant(
            name=args[1].value,
            value=discriminant.value if discriminant else None,
            fields=fields.fields if fields else [],
            annotations=annotations.items if annotations else [],
        )

    def struct(self, args: list[Any]) -> TypeDescriptor:
        owner = args[1].value
        annotations = args[0].items
        return TypeDescriptor(
            name=owner,
            kind=Kind.STRUCT,
            fields=_fields(owner, _filter(args, _Field)),
            config=_type_config(owner, annotations),
        )

    def enum(self, args: list[Any]) -> TypeDescriptor:
        owner = args[1].value
        annotations = args[0].items
        variants = _filter(args, _Variant)
        _check_unique(owner, [v.name for v in variants], "variant")
        return TypeDescriptor(
            name=owner,
            kind=Kind.UNION,
            variants=tuple(
                VariantDescriptor(
                    name=v.name,
                    ordinal=ordinal,
                    value=v.value,
                    explicit_value=_variant_value(f"{owner}.{v.name}", v.annotations),
                    fields=_fields(f"{owner}.{v.name}", v.fields),
                )
                for ordinal, v in enumerate(variants)
            ),
            config=_type_config(owner, annotations),
        )


def _check_annotations(owner: str, annotations: list[_Annotation], allowed: frozenset[str]) -> None:
    seen: set[str] = set()
    for a in annotations:
        if a.name not in allowed:
            raise ValidationError(f"{owner}: @{a.name} is not allowed here")
        if a.name in seen:
            raise ValidationError(f"{owner}: @{a.name} given more than once")
        if a.name in _WITH_ARGUMENT and a.arg is None:
            raise ValidationError(f"{owner}: @{a.name} needs an argument")
        if a.name not in _WITH_ARGUMENT and a.arg is not None:
            raise ValidationError(f"{owner}: @{a.name} takes no argument")
        seen.add(a.name)


def _number_arg(owner: str, a: _Annotation) -> int:
    assert a.arg is not None
    try:
        return _number(a.arg)
    except ValueError:
        raise ValidationError(f"{owner}: @{a.name} expects a number, not {a.arg}") from None


def _check_unique(owner: str, names: list[str], what: str) -> None:
    seen: set[str] = set()
    for name in names:
        if name in seen:
            raise ValidationError(f"{owner}: duplicate {what} {name}")
        seen.add(name)


def _type_config(owner: str, annotations: list[_Annotation]) -> TypeConfig:
    _check_annotations(owner, annotations, TYPE_DIRECTIVES)
    by_name = {a.name: a for a in annotations}

    width = None
    if "repr" in by_name:
        arg = by_name["repr"].arg
        if arg not in _REPR_WIDTHS:
            raise ValidationError(f"{owner}: unknown repr {arg}")
        width = _REPR_WIDTHS[arg]

    return TypeConfig(
        use_tlv="use_tlv" in by_name,
        by_order="by_order" in by_name,
        by_value="by_value" in by_name,
        repr_width=width,
    )


def _fields(owner: str, fields: list[_Field]) -> tuple[FieldDescriptor, ...]:
    _check_unique(owner, [f.name for f in fields], "field")

    result: list[FieldDescriptor] = []
    for position, f in enumerate(fields):
        location = f"{owner}.{f.name}"
        _check_annotations(location, f.annotations, FIELD_DIRECTIVES)
        if len(f.annotations) > 1:
            raise ValidationError(f"{location}: skip, tlv and unknown_tlvs are mutually exclusive")

        role = FieldRole.NORMAL
        tlv_tag = None
        for a in f.annotations:
            if a.name == "skip":
                role = FieldRole.SKIPPED
            elif a.name == "tlv":
                role = FieldRole.TLV_TAGGED
                tlv_tag = _number_arg(location, a)
            elif a.name == "unknown_tlvs":
                role = FieldRole.TLV_CAPTURE

        result.append(
            FieldDescriptor(name=f.name, position=position, type=f.type, role=role, tlv_tag=tlv_tag)
        )
    return tuple(result)


def _variant_value(owner: str, annotations: list[_Annotation]) -> int | None:
    _check_annotations(owner, annotations, VARIANT_DIRECTIVES)
    for a in annotations:
        return _number_arg(owner, a)
    return None


def _get_parser() -> Lark:
    global _g_parser

    if not _g_parser:
        with open(f"{os.path.dirname(__file__)}/schema.lark", encoding="utf-8") as f:
            grammar = f.read()
        _g_parser = Lark(grammar, parser="lalr", start=["start", "type_expr"])

    return _g_parser


def _transform(tree: Any) -> Any:
    # Lark wraps errors raised by transformer callbacks
    try:
        return TreeTransformer().transform(tree)
    except VisitError as e:
        if isinstance(e.orig_exc, ValidationError):
            raise e.orig_exc from None
        raise


def validate(types: list[TypeDescriptor]) -> None:
    """Validate a parsed schema."""
    _check_unique("schema", [t.name for t in types], "type")


def parse(text: str) -> list[TypeDescriptor]:
    """Parse a schema definition into type descriptors, in declaration order."""
    try:
        tree = _get_parser().parse(text, start="start")
    except UnexpectedInput as e:
        raise ValidationError(f"Syntax error at line {e.line}, column {e.column}") from e

    types = _filter(_transform(tree).children, TypeDescriptor)
    validate(types)
    return types


def parse_type(text: str) -> TypeRef:
    """Parse a type expression such as ``option<list<u8>>`` or ``bytes[32]``."""
    try:
        tree = _get_parser().parse(text, start="type_expr")
    except UnexpectedInput as e:
        raise ValidationError(f"Invalid type expression {text!r}") from e
    result = _transform(tree)
    assert isinstance(result, TypeRef)
    return result


def load(text: str, registry: Registry | None = None) -> Registry:
    """Parse a schema and register its types."""
    registry = registry if registry is not None else Registry()
    for descriptor in parse(text):
        registry.register(descriptor)
    return registry
