"""Tag resolution for tagged union variants."""

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from .errors import InvalidDirective, InvalidTagStrategyCombination, TagConflict, TagOutOfRange
from .types import REPR_WIDTHS, TagStrategy, TypeDescriptor, VariantDescriptor

DEFAULT_REPR_WIDTH = 1


@dataclass(frozen=True)
class TagMap:
    """Resolved, collision free mapping between tags and variants."""

    strategy: TagStrategy
    width: int
    by_tag: Mapping[int, VariantDescriptor]
    by_name: Mapping[str, int]

    def tag_of(self, variant: str) -> int:
        return self.by_name[variant]


def tag_strategy(descriptor: TypeDescriptor) -> TagStrategy:
    """Pick the tag strategy of a union, defaulting to by_order."""
    config = descriptor.config
    if config.by_order and config.by_value:
        raise InvalidTagStrategyCombination(descriptor.name)
    if config.by_value:
        return TagStrategy.BY_VALUE
    return TagStrategy.BY_ORDER


def repr_width(descriptor: TypeDescriptor) -> int:
    width = descriptor.config.repr_width
    if width is None:
        return DEFAULT_REPR_WIDTH
    if width not in REPR_WIDTHS:
        raise InvalidDirective(f"{descriptor.name}: repr width must be one of {REPR_WIDTHS} bytes")
    return width


def _intrinsic_values(variants: tuple[VariantDescriptor, ...]) -> list[int]:
    # Variants without a value continue from the previous one, starting at 0
    values: list[int] = []
    next_value = 0
    for variant in variants:
        value = variant.value if variant.value is not None else next_value
        values.append(value)
        next_value = value + 1
    return values


def resolve_tags(descriptor: TypeDescriptor) -> TagMap:
    """Compute the tag of every variant of a union.

    The default tag is the ordinal (by_order) or the intrinsic value
    (by_value); an explicit value always wins. Collisions are schema errors.
    """
    strategy = tag_strategy(descriptor)
    width = repr_width(descriptor)
    limit = 1 << (8 * width)

    intrinsic = _intrinsic_values(descriptor.variants)
    by_tag: dict[int, VariantDescriptor] = {}
    by_name: dict[str, int] = {}

    for variant, value in zip(descriptor.variants, intrinsic, strict=True):
        if variant.explicit_value is not None:
            tag = variant.explicit_value
        elif strategy == TagStrategy.BY_VALUE:
            tag = value
        else:
            tag = variant.ordinal

        if not 0 <= tag < limit:
            raise TagOutOfRange(descriptor.name, variant.name, tag, width)
        if tag in by_tag:
            raise TagConflict(descriptor.name, by_tag[tag].name, variant.name, tag)

        by_tag[tag] = variant
        by_name[variant.name] = tag

    return TagMap(
        strategy=strategy,
        width=width,
        by_tag=MappingProxyType(by_tag),
        by_name=MappingProxyType(by_name),
    )
