"""Encoded size calculation for registered types."""

from dataclasses import dataclass
from enum import StrEnum, auto

from strictenc.codec.primitives import LENGTH_PREFIX, MAX_LENGTH, TYPE_SIZES
from strictenc.codec.registry import Registry
from strictenc.codec.tags import repr_width
from strictenc.codec.types import FieldDescriptor, FieldRole, TypeRef

# Primitive type sizes in bytes
PRIMITIVE_SIZES: dict[str, int] = {"bool": 1, **TYPE_SIZES}

PREFIX = LENGTH_PREFIX.size


class SizeKind(StrEnum):
    """Classification of size characteristics."""

    FIXED = auto()  # Min == Max
    BOUNDED = auto()  # Variable but has calculable max
    UNBOUNDED = auto()  # Reads until input ends, or recursive


@dataclass(frozen=True)
class SizeInfo:
    """Size information for a type."""

    min_size: int
    max_size: int | None  # None means unbounded

    @property
    def kind(self) -> SizeKind:
        if self.max_size is None:
            return SizeKind.UNBOUNDED
        if self.min_size == self.max_size:
            return SizeKind.FIXED
        return SizeKind.BOUNDED

    @property
    def is_fixed(self) -> bool:
        return self.kind == SizeKind.FIXED

    @property
    def is_bounded(self) -> bool:
        return self.kind in (SizeKind.FIXED, SizeKind.BOUNDED)

    def __add__(self, other: "SizeInfo") -> "SizeInfo":
        if self.max_size is None or other.max_size is None:
            return SizeInfo(self.min_size + other.min_size, None)
        return SizeInfo(self.min_size + other.min_size, self.max_size + other.max_size)

    def repeat(self, count: int) -> "SizeInfo":
        """Size of up to ``count`` repetitions (at least zero)."""
        if self.max_size is None:
            return SizeInfo(0, None)
        return SizeInfo(0, self.max_size * count)


ZERO = SizeInfo(0, 0)


def _fixed(size: int) -> SizeInfo:
    return SizeInfo(size, size)


def _either(options: list[SizeInfo]) -> SizeInfo:
    min_size = min(o.min_size for o in options)
    maxes = [o.max_size for o in options]
    if any(m is None for m in maxes):
        return SizeInfo(min_size, None)
    return SizeInfo(min_size, max(m for m in maxes if m is not None))


class SizeCalculator:
    """Calculate encoded sizes for the types of a registry."""

    def __init__(self, registry: Registry):
        self.registry = registry
        self._cache: dict[str, SizeInfo] = {}
        self._active: set[str] = set()

    def calc_primitive_size(self, t: TypeRef) -> SizeInfo:
        """Calculate size for a primitive type."""
        if t.name in PRIMITIVE_SIZES:
            return _fixed(PRIMITIVE_SIZES[t.name])
        if t.name == "bytes" and t.size is not None:
            return _fixed(t.size)
        if t.name in ("bytes", "string"):
            # u16 length prefix + up to 65535 bytes
            return SizeInfo(PREFIX, PREFIX + MAX_LENGTH)
        raise ValueError(f"Unknown primitive type: {t.name}")

    def calc_type_size(self, t: TypeRef) -> SizeInfo:
        """Calculate size for any type reference."""
        if t.name == "option":
            return _either([_fixed(1), _fixed(1) + self.calc_type_size(t.args[0])])
        if t.name == "list":
            return _fixed(PREFIX) + self.calc_type_size(t.args[0]).repeat(MAX_LENGTH)
        if t.name == "map":
            entry = self.calc_type_size(t.args[0]) + self.calc_type_size(t.args[1])
            return _fixed(PREFIX) + entry.repeat(MAX_LENGTH)
        if t.name in self.registry:
            size = self.calc_composite_size(t.name)
            if self.registry.descriptor(t.name).config.use_tlv:
                # Nested TLV structs are framed with a u16 length
                return SizeInfo(PREFIX + size.min_size, PREFIX + MAX_LENGTH)
            return size
        return self.calc_primitive_size(t)

    def calc_fields_size(self, fields: tuple[FieldDescriptor, ...]) -> SizeInfo:
        total = ZERO
        for field in fields:
            if field.role == FieldRole.NORMAL:
                total = total + self.calc_type_size(field.type)
        return total

    def calc_composite_size(self, name: str) -> SizeInfo:
        """Calculate the unframed size of a struct or union (with caching)."""
        if name in self._cache:
            return self._cache[name]
        if name in self._active:
            # Recursive reference
            return SizeInfo(0, None)

        self._active.add(name)
        try:
            descriptor = self.registry.descriptor(name)
            if descriptor.is_struct:
                size = self.calc_fields_size(descriptor.fields)
                if descriptor.config.use_tlv:
                    size = SizeInfo(size.min_size, None)
            else:
                tag = _fixed(repr_width(descriptor))
                size = tag + _either([self.calc_fields_size(v.fields) for v in descriptor.variants])
        finally:
            self._active.discard(name)

        self._cache[name] = size
        return size


def calculate_sizes(registry: Registry) -> dict[str, SizeInfo]:
    """Calculate the size of every type of a registry, as a top-level value."""
    calc = SizeCalculator(registry)
    return {name: calc.calc_composite_size(name) for name in registry}
