"""Python code generator for strictenc schemas."""

from jinja2 import Environment, PackageLoader

from strictenc.codec.types import FieldDescriptor, FieldRole, TypeDescriptor, TypeRef

env = Environment(
    loader=PackageLoader("strictenc.schema", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

template = env.get_template("python.py.j2")

# Map wire types to Python type annotations
PRIMITIVE_TYPE_MAP = {
    "bool": "bool",
    "i8": "int",
    "i16": "int",
    "i32": "int",
    "i64": "int",
    "u8": "int",
    "u16": "int",
    "u32": "int",
    "u64": "int",
    "bytes": "bytes",
    "string": "str",
}

# Literal zero values of primitive types
ZERO_VALUES = {
    "bool": "False",
    "bytes": 'b""',
    "string": '""',
}


def _map_type(t: TypeRef) -> str:
    """Map a type reference to a Python type annotation."""
    if t.name == "option":
        return f"{_map_type(t.args[0])} | None"
    if t.name == "list":
        return f"list[{_map_type(t.args[0])}]"
    if t.name == "map":
        return f"dict[{_map_type(t.args[0])}, {_map_type(t.args[1])}]"
    return PRIMITIVE_TYPE_MAP.get(t.name, t.name)


def _default_args(field: FieldDescriptor) -> list[str]:
    """Default value arguments, for fields that don't appear on the wire."""
    t = field.type
    if field.role == FieldRole.TLV_TAGGED:
        return ["default=None"]
    if field.role == FieldRole.TLV_CAPTURE:
        return ["default_factory=dict"]
    if field.role != FieldRole.SKIPPED:
        return []

    if t.name == "option":
        return ["default=None"]
    if t.name == "list":
        return ["default_factory=list"]
    if t.name == "map":
        return ["default_factory=dict"]
    if t.name == "bytes" and t.size is not None:
        return [f'default=b"\\x00" * {t.size}']
    if t.name in ZERO_VALUES:
        return [f"default={ZERO_VALUES[t.name]}"]
    if t.name in PRIMITIVE_TYPE_MAP:
        return ["default=0"]
    # Composite types get their zero value from the codec on decode
    return []


def _field_expr(field: FieldDescriptor) -> str:
    """Generate the strict_field() call for a field."""
    args = [f'"{field.type}"']
    if field.role == FieldRole.SKIPPED:
        args.append("skip=True")
    elif field.role == FieldRole.TLV_TAGGED:
        args.append(f"tlv={field.tlv_tag}")
    elif field.role == FieldRole.TLV_CAPTURE:
        args.append("unknown_tlvs=True")
    args.extend(_default_args(field))
    return f"strict_field({', '.join(args)})"


def _intrinsic_values(t: TypeDescriptor) -> list[int]:
    values: list[int] = []
    next_value = 0
    for v in t.variants:
        value = v.value if v.value is not None else next_value
        values.append(value)
        next_value = value + 1
    return values


def _is_enum(t: TypeDescriptor) -> bool:
    """Fieldless unions with distinct values become Python Enums."""
    if t.is_struct or any(v.fields for v in t.variants):
        return False
    values = _intrinsic_values(t)
    return len(set(values)) == len(values)


def _type_args(t: TypeDescriptor) -> str:
    """Generate the directive arguments of strict_struct()/strict_union()."""
    args: list[str] = []
    config = t.config
    if config.use_tlv:
        args.append("use_tlv=True")
    if config.by_order:
        args.append("by_order=True")
    if config.by_value:
        args.append("by_value=True")
    if config.repr_width is not None:
        args.append(f"repr={config.repr_width}")
    if _is_enum(t):
        explicit = {v.name: v.explicit_value for v in t.variants if v.explicit_value is not None}
        if explicit:
            args.append(f"values={explicit!r}")
    if args:
        return ", " + ", ".join(args)
    return ""


def _variant_args(t: TypeDescriptor, index: int) -> str:
    """Generate strict_variant() arguments for a class-based variant."""
    variant = t.variants[index]
    args: list[str] = []
    if variant.value is not None:
        args.append(f"discriminant={variant.value}")
    if variant.explicit_value is not None:
        args.append(f"value={variant.explicit_value}")
    return ", ".join(args)


def render(
    types: list[TypeDescriptor],
    runtime_import: str = "strictenc.codec",
    registry_name: str = "registry",
) -> str:
    """Render parsed schema types to Python source code."""
    return template.render(
        types=types,
        map_type=_map_type,
        field_expr=_field_expr,
        is_enum=_is_enum,
        enum_values=_intrinsic_values,
        type_args=_type_args,
        variant_args=_variant_args,
        runtime_import=runtime_import,
        registry_name=registry_name,
    )
