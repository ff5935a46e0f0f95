"""Codec plans: the immutable, compiled form of a type descriptor.

A plan is built once per type and shared by every encode/decode call for
values of that type. Nothing in a plan is mutated after :func:`compile_plan`
returns, so plans can be read concurrently without locking.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any

from .errors import InvalidDirective
from .fields import FieldPlan, Resolver, compile_fields
from .tags import TagMap, resolve_tags
from .types import TypeDescriptor, VariantDescriptor
from .values import Variant


@dataclass(frozen=True, slots=True)
class StructPlan:
    descriptor: TypeDescriptor
    fields: FieldPlan

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def use_tlv(self) -> bool:
        return self.fields.tlv is not None


@dataclass(frozen=True, slots=True)
class VariantPlan:
    variant: VariantDescriptor
    tag: int
    fields: FieldPlan

    @property
    def name(self) -> str:
        return self.variant.name


@dataclass(frozen=True, slots=True)
class UnionPlan:
    """Plan for a tagged union.

    ``bindings`` maps the Python objects representing variants (enum members
    or variant classes) to their plans, for identifying the variant of a value.
    """

    descriptor: TypeDescriptor
    tags: TagMap
    variants: tuple[VariantPlan, ...]
    by_tag: Mapping[int, VariantPlan]
    by_name: Mapping[str, VariantPlan]
    bindings: Mapping[Any, VariantPlan]

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def use_tlv(self) -> bool:
        return False

    def variant_of(self, value: Any) -> VariantPlan | None:
        if isinstance(value, Enum):
            return self.bindings.get(value)
        if isinstance(value, Variant):
            return self.by_name.get(value.name)
        return self.bindings.get(type(value))


CodecPlan = StructPlan | UnionPlan


def _compile_struct(descriptor: TypeDescriptor, resolve: Resolver) -> StructPlan:
    config = descriptor.config
    if config.by_order or config.by_value or config.repr_width is not None:
        raise InvalidDirective(f"{descriptor.name}: tag directives apply to tagged unions only")
    fields = compile_fields(descriptor.name, descriptor.fields, resolve, use_tlv=config.use_tlv)
    return StructPlan(descriptor=descriptor, fields=fields)


def _compile_union(descriptor: TypeDescriptor, resolve: Resolver) -> UnionPlan:
    if descriptor.config.use_tlv:
        raise InvalidDirective(f"{descriptor.name}: use_tlv applies to structs only")
    if not descriptor.variants:
        raise InvalidDirective(f"{descriptor.name}: a tagged union needs at least one variant")

    tags = resolve_tags(descriptor)
    variants = tuple(
        VariantPlan(
            variant=variant,
            tag=tags.tag_of(variant.name),
            # Variants can't carry a TLV region, so TLV fields fail here
            fields=compile_fields(f"{descriptor.name}.{variant.name}", variant.fields, resolve),
        )
        for variant in descriptor.variants
    )
    return UnionPlan(
        descriptor=descriptor,
        tags=tags,
        variants=variants,
        by_tag=MappingProxyType({v.tag: v for v in variants}),
        by_name=MappingProxyType({v.name: v for v in variants}),
        bindings=MappingProxyType(
            {v.variant.binding: v for v in variants if v.variant.binding is not None}
        ),
    )


def compile_plan(descriptor: TypeDescriptor, resolve: Resolver) -> CodecPlan:
    """Compile a type descriptor into a codec plan.

    Args:
        descriptor: The struct or union to compile.
        resolve: Returns the codec for a type reference used by a field.

    Raises:
        SchemaError: If the descriptor's directives are inconsistent.
    """
    if descriptor.is_struct:
        return _compile_struct(descriptor, resolve)
    return _compile_union(descriptor, resolve)
