"""Compilation of struct and variant fields into an ordered field plan."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .errors import (
    InvalidDirective,
    InvalidFieldType,
    MultipleTlvCaptureFields,
    TlvNotEnabled,
    TlvTagConflict,
)
from .primitives import MAX_LENGTH, Codec
from .tlv import TlvLayout
from .types import CAPTURE_TYPE, MISSING, FieldDescriptor, FieldRole, TypeRef, is_option

Resolver = Callable[[TypeRef], Codec]


@dataclass(frozen=True, slots=True)
class FieldStep:
    """A field paired with the codec that handles its bytes.

    For TLV fields the codec handles the option's inner type, which is what
    goes into the entry payload.
    """

    field: FieldDescriptor
    codec: Codec

    @property
    def name(self) -> str:
        return self.field.name

    @property
    def role(self) -> FieldRole:
        return self.field.role

    def default(self) -> Any:
        """The value a field takes when it carries no bytes."""
        if self.field.default_factory is not MISSING:
            return self.field.default_factory()
        if self.field.default is not MISSING:
            return self.field.default
        if self.role == FieldRole.TLV_TAGGED:
            return None
        return self.codec.default()


@dataclass(frozen=True, slots=True)
class FieldPlan:
    """Ordered plan for the fields of a struct or a variant.

    ``steps`` lists every field in declaration order, ``body`` the normal
    fields written to the main body, and ``tlv`` the trailing extension region
    when the type opted into it.
    """

    steps: tuple[FieldStep, ...]
    body: tuple[FieldStep, ...]
    skipped: tuple[FieldStep, ...]
    tlv: TlvLayout | None


def _check_tlv_field(owner: str, field: FieldDescriptor) -> None:
    if field.tlv_tag is None or not 0 <= field.tlv_tag <= MAX_LENGTH:
        raise InvalidDirective(f"{owner}.{field.name}: TLV id must be within 0..{MAX_LENGTH}")
    if not is_option(field.type) or len(field.type.args) != 1:
        raise InvalidFieldType(owner, field.name, f"TLV fields must be optional, not {field.type}")


def compile_fields(
    owner: str,
    fields: tuple[FieldDescriptor, ...],
    resolve: Resolver,
    *,
    use_tlv: bool = False,
) -> FieldPlan:
    """Assign each field its role and codec.

    Args:
        owner: Name used in error messages (``Type`` or ``Type.Variant``).
        fields: Fields in declaration order.
        resolve: Returns the codec for a type reference.
        use_tlv: Whether the owner declared a TLV extension region.
    """
    steps: list[FieldStep] = []
    known: dict[int, FieldStep] = {}
    captures: list[FieldDescriptor] = []

    for field in sorted(fields, key=lambda f: f.position):
        if field.role in (FieldRole.TLV_TAGGED, FieldRole.TLV_CAPTURE) and not use_tlv:
            raise TlvNotEnabled(owner, field.name)

        if field.role == FieldRole.TLV_TAGGED:
            _check_tlv_field(owner, field)
            step = FieldStep(field, resolve(field.type.args[0]))
            assert field.tlv_tag is not None
            if field.tlv_tag in known:
                raise TlvTagConflict(owner, known[field.tlv_tag].name, field.name, field.tlv_tag)
            known[field.tlv_tag] = step
        elif field.role == FieldRole.TLV_CAPTURE:
            if field.type != CAPTURE_TYPE:
                raise InvalidFieldType(
                    owner, field.name, f"unknown_tlvs field must be {CAPTURE_TYPE}, not {field.type}"
                )
            captures.append(field)
            step = FieldStep(field, resolve(field.type))
        else:
            step = FieldStep(field, resolve(field.type))
        steps.append(step)

    if len(captures) > 1:
        raise MultipleTlvCaptureFields(owner, tuple(f.name for f in captures))

    tlv = None
    if use_tlv:
        tlv = TlvLayout.build(known, captures[0] if captures else None)

    return FieldPlan(
        steps=tuple(steps),
        body=tuple(s for s in steps if s.role == FieldRole.NORMAL),
        skipped=tuple(s for s in steps if s.role == FieldRole.SKIPPED),
        tlv=tlv,
    )
