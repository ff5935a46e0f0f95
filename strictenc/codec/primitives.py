"""Fixed-width integer and byte sequence codecs.

Integers are little-endian, variable length byte sequences carry a u16
little-endian length prefix. There is no padding and no alignment.
"""

import struct as _struct
from typing import Any

from .errors import InvalidValue, LengthMismatch, TruncatedInput
from .types import TypeRef

# Map integer type names to struct format characters
FORMAT_CHARS = {
    "i8": "b",
    "u8": "B",
    "i16": "h",
    "u16": "H",
    "i32": "i",
    "u32": "I",
    "i64": "q",
    "u64": "Q",
}

# Size in bytes for each integer type
TYPE_SIZES = {
    "i8": 1,
    "u8": 1,
    "i16": 2,
    "u16": 2,
    "i32": 4,
    "u32": 4,
    "i64": 8,
    "u64": 8,
}

# Unsigned format character for each representation width
UINT_FORMATS = {1: "<B", 2: "<H", 4: "<I", 8: "<Q"}

LENGTH_PREFIX = _struct.Struct("<H")
MAX_LENGTH = 0xFFFF


class Reader:
    """Cursor over an input buffer.

    A reader may be a window over part of a larger buffer: ``offset`` is
    always absolute, so errors point at the right byte of the caller's input.
    """

    __slots__ = ("_data", "offset", "end")

    def __init__(self, data: bytes | bytearray | memoryview, offset: int = 0, end: int | None = None):
        self._data = memoryview(data)
        self.offset = offset
        self.end = len(self._data) if end is None else end

    @property
    def remaining(self) -> int:
        return self.end - self.offset

    def is_empty(self) -> bool:
        return self.offset >= self.end

    def read(self, n: int) -> memoryview:
        """Read exactly n bytes."""
        if n > self.remaining:
            raise TruncatedInput(n, self.remaining, offset=self.offset)
        start = self.offset
        self.offset += n
        return self._data[start : self.offset]

    def read_uint(self, width: int) -> int:
        raw = self.read(width)
        return int(_struct.unpack(UINT_FORMATS[width], raw)[0])

    def read_length(self) -> int:
        """Read a u16 length prefix and check the data it announces is present."""
        start = self.offset
        length = self.read_uint(LENGTH_PREFIX.size)
        if length > self.remaining:
            raise LengthMismatch(
                f"declared length {length} exceeds the {self.remaining} byte(s) left", offset=start
            )
        return length

    def window(self, n: int) -> "Reader":
        """Split off a reader over the next n bytes and skip past them."""
        if n > self.remaining:
            raise LengthMismatch(
                f"declared length {n} exceeds the {self.remaining} byte(s) left", offset=self.offset
            )
        sub = Reader(self._data, self.offset, self.offset + n)
        self.offset += n
        return sub


class Codec:
    """Encodes and decodes values of one type."""

    def encode(self, value: Any, out: bytearray) -> None:
        raise NotImplementedError("encode() must be implemented by subclasses")

    def decode(self, reader: Reader) -> Any:
        raise NotImplementedError("decode() must be implemented by subclasses")

    def default(self) -> Any:
        """Return the zero value restored for skipped fields."""
        raise NotImplementedError("default() must be implemented by subclasses")


def write_uint(value: int, width: int, out: bytearray) -> None:
    out.extend(_struct.pack(UINT_FORMATS[width], value))


def write_length(length: int, out: bytearray) -> None:
    if length > MAX_LENGTH:
        raise LengthMismatch(f"length {length} exceeds the u16 length field")
    out.extend(LENGTH_PREFIX.pack(length))


class IntCodec(Codec):
    def __init__(self, name: str):
        self.name = name
        self._format = _struct.Struct("<" + FORMAT_CHARS[name])

    def encode(self, value: Any, out: bytearray) -> None:
        if not isinstance(value, int) or isinstance(value, bool):
            raise InvalidValue(f"{self.name} expects int, got {type(value).__name__}")
        try:
            out.extend(self._format.pack(value))
        except _struct.error as e:
            raise InvalidValue(f"{value} out of range for {self.name}") from e

    def decode(self, reader: Reader) -> int:
        return int(self._format.unpack(reader.read(self._format.size))[0])

    def default(self) -> int:
        return 0


class BoolCodec(Codec):
    def encode(self, value: Any, out: bytearray) -> None:
        if not isinstance(value, bool):
            raise InvalidValue(f"bool expects bool, got {type(value).__name__}")
        out.append(1 if value else 0)

    def decode(self, reader: Reader) -> bool:
        offset = reader.offset
        byte = reader.read(1)[0]
        if byte > 1:
            raise InvalidValue(f"invalid bool byte 0x{byte:02x}", offset=offset)
        return byte == 1

    def default(self) -> bool:
        return False


class BytesCodec(Codec):
    def encode(self, value: Any, out: bytearray) -> None:
        if not isinstance(value, bytes | bytearray | memoryview):
            raise InvalidValue(f"bytes expects bytes, got {type(value).__name__}")
        write_length(len(value), out)
        out.extend(value)

    def decode(self, reader: Reader) -> bytes:
        return bytes(reader.read(reader.read_length()))

    def default(self) -> bytes:
        return b""


class FixedBytesCodec(Codec):
    def __init__(self, size: int):
        self.size = size

    def encode(self, value: Any, out: bytearray) -> None:
        if not isinstance(value, bytes | bytearray | memoryview):
            raise InvalidValue(f"bytes[{self.size}] expects bytes, got {type(value).__name__}")
        if len(value) != self.size:
            raise LengthMismatch(f"bytes[{self.size}] given {len(value)} byte(s)")
        out.extend(value)

    def decode(self, reader: Reader) -> bytes:
        return bytes(reader.read(self.size))

    def default(self) -> bytes:
        return b"\x00" * self.size


class StringCodec(Codec):
    def encode(self, value: Any, out: bytearray) -> None:
        if not isinstance(value, str):
            raise InvalidValue(f"string expects str, got {type(value).__name__}")
        data = value.encode("utf-8")
        write_length(len(data), out)
        out.extend(data)

    def decode(self, reader: Reader) -> str:
        offset = reader.offset
        raw = reader.read(reader.read_length())
        try:
            return str(raw, "utf-8")
        except UnicodeDecodeError as e:
            raise InvalidValue(f"invalid UTF-8 string: {e.reason}", offset=offset) from e

    def default(self) -> str:
        return ""


def primitive_codec(t: TypeRef) -> Codec:
    """Return the codec for a primitive type reference."""
    if t.name in FORMAT_CHARS:
        return IntCodec(t.name)
    if t.name == "bool":
        return BoolCodec()
    if t.name == "bytes":
        if t.size is not None:
            return FixedBytesCodec(t.size)
        return BytesCodec()
    if t.name == "string":
        return StringCodec()
    raise ValueError(f"Unknown primitive type: {t.name}")
