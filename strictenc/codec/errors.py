"""Error types raised by schema compilation and value encoding/decoding.

Two separate trees hang off :class:`StrictEncodingError`:

* :class:`SchemaError` is raised once, while a type's codec plan is compiled.
* :class:`CodecError` is raised per value, while encoding or decoding.
"""


class StrictEncodingError(RuntimeError):
    """Base class for all strictenc errors."""


class SchemaError(StrictEncodingError):
    """Raised when a type declaration cannot be compiled into a codec plan."""


class TagConflict(SchemaError):
    """Raised when two variants of a tagged union resolve to the same tag."""

    def __init__(self, type_name: str, variant_a: str, variant_b: str, tag: int) -> None:
        super().__init__(
            f"{type_name}: variants {variant_a} and {variant_b} both resolve to tag {tag}"
        )
        self.type_name = type_name
        self.variant_a = variant_a
        self.variant_b = variant_b
        self.tag = tag


class TagOutOfRange(SchemaError):
    """Raised when a resolved tag does not fit the union's representation width."""

    def __init__(self, type_name: str, variant: str, tag: int, width: int) -> None:
        super().__init__(f"{type_name}.{variant}: tag {tag} does not fit in {width} byte(s)")
        self.type_name = type_name
        self.variant = variant
        self.tag = tag
        self.width = width


class TlvNotEnabled(SchemaError):
    """Raised when a TLV directive is used on a type that has no TLV region."""

    def __init__(self, type_name: str, field: str) -> None:
        super().__init__(f"{type_name}.{field}: TLV field used without use_tlv on the type")
        self.type_name = type_name
        self.field = field


class MultipleTlvCaptureFields(SchemaError):
    """Raised when more than one field is marked as the unknown TLV capture."""

    def __init__(self, type_name: str, fields: tuple[str, ...]) -> None:
        super().__init__(f"{type_name}: more than one unknown_tlvs field ({', '.join(fields)})")
        self.type_name = type_name
        self.fields = fields


class TlvTagConflict(SchemaError):
    """Raised when two TLV fields share a tag id."""

    def __init__(self, type_name: str, field_a: str, field_b: str, tag_id: int) -> None:
        super().__init__(f"{type_name}: fields {field_a} and {field_b} both use TLV id {tag_id}")
        self.type_name = type_name
        self.field_a = field_a
        self.field_b = field_b
        self.tag_id = tag_id


class InvalidTagStrategyCombination(SchemaError):
    """Raised when both by_order and by_value are requested for one type."""

    def __init__(self, type_name: str) -> None:
        super().__init__(f"{type_name}: by_order and by_value are mutually exclusive")
        self.type_name = type_name


class InvalidDirective(SchemaError):
    """Raised when a directive is not valid where it was applied."""


class InvalidFieldType(SchemaError):
    """Raised when a field's type does not suit its role."""

    def __init__(self, type_name: str, field: str, reason: str) -> None:
        super().__init__(f"{type_name}.{field}: {reason}")
        self.type_name = type_name
        self.field = field


class UnknownType(SchemaError):
    """Raised when a type reference names no registered type."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown type {name}")
        self.name = name


class DuplicateTypeName(SchemaError):
    """Raised when two different types are registered under the same name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Type {name} is already registered")
        self.name = name


class CodecError(StrictEncodingError):
    """Base class for errors raised while encoding or decoding a value.

    ``offset`` is the absolute input offset where decoding failed (None for
    encode errors) and ``context`` is the ``Type.field`` path leading to it,
    outermost first.
    """

    def __init__(self, message: str, *, offset: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.offset = offset
        self.context: list[str] = []

    def add_context(self, location: str) -> None:
        self.context.insert(0, location)

    def __str__(self) -> str:
        text = self.message
        if self.context:
            text = f"{'.'.join(self.context)}: {text}"
        if self.offset is not None:
            text = f"{text} (at offset {self.offset})"
        return text


class DecodeError(CodecError):
    """Raised when input bytes are not a valid encoding of the expected type."""


class EncodeError(CodecError):
    """Raised when an in-memory value cannot be encoded."""


class TruncatedInput(DecodeError):
    """Raised when fewer bytes remain than a fixed-size read needs."""

    def __init__(self, needed: int, available: int, *, offset: int | None = None) -> None:
        super().__init__(f"needed {needed} byte(s), only {available} left", offset=offset)
        self.needed = needed
        self.available = available


class LengthMismatch(DecodeError, EncodeError):
    """Raised when a length field disagrees with the data it describes."""

    def __init__(self, message: str, *, offset: int | None = None) -> None:
        super().__init__(message, offset=offset)


class UnknownTag(DecodeError):
    """Raised when a decoded tag maps to no variant."""

    def __init__(self, tag: int, type_name: str, *, offset: int | None = None) -> None:
        super().__init__(f"unknown tag {tag} for {type_name}", offset=offset)
        self.tag = tag
        self.type_name = type_name


class UnknownMandatoryTlv(DecodeError):
    """Raised when a TLV entry has an unknown even (must-understand) tag id."""

    def __init__(self, tag_id: int, *, offset: int | None = None) -> None:
        super().__init__(f"unknown mandatory TLV id {tag_id}", offset=offset)
        self.tag_id = tag_id


class DuplicateTlvEntry(DecodeError):
    """Raised when a TLV region carries the same tag id twice."""

    def __init__(self, tag_id: int, *, offset: int | None = None) -> None:
        super().__init__(f"TLV id {tag_id} appears more than once", offset=offset)
        self.tag_id = tag_id


class TrailingBytes(DecodeError):
    """Raised when input remains after the top-level value was decoded."""

    def __init__(self, count: int, *, offset: int | None = None) -> None:
        super().__init__(f"{count} trailing byte(s) after value", offset=offset)
        self.count = count


class InvalidValue(DecodeError, EncodeError):
    """Raised for values outside their type's domain, on either side of the codec."""
