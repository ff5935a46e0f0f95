"""Serializable summaries of compiled codec plans, for tooling output."""

from dataclasses import dataclass

from dataclasses_json import DataClassJsonMixin

from strictenc.codec.fields import FieldPlan
from strictenc.codec.plan import CodecPlan, StructPlan


@dataclass
class FieldSummary(DataClassJsonMixin):
    """Represents a field with its resolved role."""

    name: str
    type: str
    role: str
    tlv_tag: int | None


@dataclass
class VariantSummary(DataClassJsonMixin):
    """Represents a union variant with its resolved tag."""

    name: str
    tag: int
    fields: list[FieldSummary]


@dataclass
class SizeSummary(DataClassJsonMixin):
    min_size: int
    max_size: int | None
    kind: str


@dataclass
class PlanSummary(DataClassJsonMixin):
    """Represents the compiled plan of one type."""

    name: str
    kind: str
    use_tlv: bool
    tag_strategy: str | None
    tag_width: int | None
    fields: list[FieldSummary]
    variants: list[VariantSummary]
    size: SizeSummary | None = None


def _fields(plan: FieldPlan) -> list[FieldSummary]:
    return [
        FieldSummary(
            name=step.name,
            type=str(step.field.type),
            role=str(step.role),
            tlv_tag=step.field.tlv_tag,
        )
        for step in plan.steps
    ]


def summarize(plan: CodecPlan) -> PlanSummary:
    """Summarize a compiled plan."""
    if isinstance(plan, StructPlan):
        return PlanSummary(
            name=plan.name,
            kind=str(plan.descriptor.kind),
            use_tlv=plan.use_tlv,
            tag_strategy=None,
            tag_width=None,
            fields=_fields(plan.fields),
            variants=[],
        )

    return PlanSummary(
        name=plan.name,
        kind=str(plan.descriptor.kind),
        use_tlv=False,
        tag_strategy=str(plan.tags.strategy),
        tag_width=plan.tags.width,
        fields=[],
        variants=[
            VariantSummary(name=v.name, tag=v.tag, fields=_fields(v.fields)) for v in plan.variants
        ],
    )
