r"""TLV extension region appended after the normal fields of a struct.

Layout, repeated until the input window is exhausted:

    [tag_id: u16][length: u16][payload: length bytes]

Known fields are written in ascending tag id order, followed by the captured
unknown entries in ascending tag id order. Even ids must be understood by the
reader; unknown odd ids are kept verbatim in the capture field.

>>> layout = TlvLayout.build({}, None)
>>> out = bytearray()
>>> layout.encode(lambda name: None, out)
>>> bytes(out)
b''
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from .errors import (
    CodecError,
    DuplicateTlvEntry,
    InvalidValue,
    LengthMismatch,
    TrailingBytes,
    UnknownMandatoryTlv,
)
from .primitives import MAX_LENGTH, Reader, write_length, write_uint
from .types import FieldDescriptor

if TYPE_CHECKING:
    from .fields import FieldStep

# tag_id: u16, length: u16
ENTRY_HEADER_SIZE = 4


def is_mandatory(tag_id: int) -> bool:
    """Even ids are mandatory to understand, odd ids are safe to ignore."""
    return tag_id % 2 == 0


@dataclass(frozen=True, slots=True)
class TlvLayout:
    """Known TLV fields by tag id plus the optional capture field."""

    known: Mapping[int, "FieldStep"]
    capture: FieldDescriptor | None

    @classmethod
    def build(cls, known: dict[int, "FieldStep"], capture: FieldDescriptor | None) -> "TlvLayout":
        return cls(known=MappingProxyType(dict(sorted(known.items()))), capture=capture)

    def encode(self, get: Callable[[str], Any], out: bytearray) -> None:
        """Write the TLV region of a value.

        Args:
            get: Returns the value of a field by name.
            out: Buffer to append to.
        """
        for tag_id, step in self.known.items():
            value = get(step.name)
            if value is None:
                continue
            payload = bytearray()
            try:
                step.codec.encode(value, payload)
                self._write_entry(tag_id, payload, out)
            except CodecError as e:
                e.add_context(step.name)
                raise

        if self.capture is None:
            return
        try:
            self._encode_captured(get(self.capture.name) or {}, out)
        except CodecError as e:
            e.add_context(self.capture.name)
            raise

    def _encode_captured(self, unknown: Any, out: bytearray) -> None:
        if not isinstance(unknown, Mapping):
            raise InvalidValue(f"captured TLVs must be a mapping, got {type(unknown).__name__}")
        for tag_id, payload in unknown.items():
            if not isinstance(tag_id, int) or isinstance(tag_id, bool):
                raise InvalidValue(f"captured TLV id {tag_id!r} is not an int")
            if not isinstance(payload, bytes | bytearray | memoryview):
                raise InvalidValue(f"captured TLV {tag_id} payload must be bytes")

        for tag_id in sorted(unknown):
            if not 0 <= tag_id <= MAX_LENGTH:
                raise InvalidValue(f"captured TLV id {tag_id} is not a u16")
            if is_mandatory(tag_id):
                raise InvalidValue(f"captured TLV id {tag_id} is even")
            if tag_id in self.known:
                raise InvalidValue(f"captured TLV id {tag_id} belongs to a known field")
            self._write_entry(tag_id, unknown[tag_id], out)

    @staticmethod
    def _write_entry(tag_id: int, payload: bytes | bytearray, out: bytearray) -> None:
        if len(payload) > MAX_LENGTH:
            raise LengthMismatch(f"TLV {tag_id} payload of {len(payload)} bytes exceeds u16 length")
        write_uint(tag_id, 2, out)
        write_length(len(payload), out)
        out.extend(payload)

    def decode(self, reader: Reader) -> dict[str, Any]:
        """Read entries until the reader is exhausted.

        Returns:
            Field values by name; TLV fields that were not present are None.

        Raises:
            TrailingBytes: If fewer bytes than an entry header remain.
        """
        values: dict[str, Any] = {step.name: None for step in self.known.values()}
        unknown: dict[int, bytes] = {}
        seen: set[int] = set()

        while not reader.is_empty():
            start = reader.offset
            if reader.remaining < ENTRY_HEADER_SIZE:
                raise TrailingBytes(reader.remaining, offset=start)
            tag_id = reader.read_uint(2)
            payload = reader.window(reader.read_length())

            if tag_id in seen:
                raise DuplicateTlvEntry(tag_id, offset=start)
            seen.add(tag_id)

            step = self.known.get(tag_id)
            if step is not None:
                try:
                    values[step.name] = step.codec.decode(payload)
                    if not payload.is_empty():
                        raise LengthMismatch(
                            f"TLV {tag_id} payload has {payload.remaining} unread byte(s)",
                            offset=payload.offset,
                        )
                except CodecError as e:
                    e.add_context(step.name)
                    raise
            elif is_mandatory(tag_id):
                raise UnknownMandatoryTlv(tag_id, offset=start)
            else:
                unknown[tag_id] = bytes(payload.read(payload.remaining))

        if self.capture is not None:
            values[self.capture.name] = dict(sorted(unknown.items()))
        return values
