"""Generic in-memory values for types with no bound Python class."""

from dataclasses import dataclass, field
from types import SimpleNamespace


class Record(SimpleNamespace):
    """Field values of a struct or variant, accessible as attributes."""


@dataclass(frozen=True)
class Variant:
    """A tagged union value: the variant name and its field values, if any."""

    name: str
    fields: Record = field(default_factory=Record)
