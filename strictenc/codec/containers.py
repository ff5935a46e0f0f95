"""Option, list and map codecs.

Layouts:

    option<T>:  [0x00] when None, [0x01][T] otherwise
    list<T>:    [count: u16][T]...
    map<K, V>:  [count: u16][K][V]... with keys strictly ascending
"""

from collections.abc import Mapping
from typing import Any

from .errors import InvalidValue, UnknownTag
from .primitives import Codec, Reader, write_length


class OptionCodec(Codec):
    def __init__(self, inner: Codec):
        self.inner = inner

    def encode(self, value: Any, out: bytearray) -> None:
        if value is None:
            out.append(0)
        else:
            out.append(1)
            self.inner.encode(value, out)

    def decode(self, reader: Reader) -> Any:
        offset = reader.offset
        flag = reader.read(1)[0]
        if flag == 0:
            return None
        if flag == 1:
            return self.inner.decode(reader)
        raise UnknownTag(flag, "option", offset=offset)

    def default(self) -> None:
        return None


class ListCodec(Codec):
    def __init__(self, inner: Codec):
        self.inner = inner

    def encode(self, value: Any, out: bytearray) -> None:
        if not isinstance(value, list | tuple):
            raise InvalidValue(f"list expects a sequence, got {type(value).__name__}")
        write_length(len(value), out)
        for item in value:
            self.inner.encode(item, out)

    def decode(self, reader: Reader) -> list[Any]:
        count = reader.read_uint(2)
        return [self.inner.decode(reader) for _ in range(count)]

    def default(self) -> list[Any]:
        return []


class MapCodec(Codec):
    def __init__(self, key: Codec, value: Codec):
        self.key = key
        self.value = value

    def encode(self, value: Any, out: bytearray) -> None:
        if not isinstance(value, Mapping):
            raise InvalidValue(f"map expects a mapping, got {type(value).__name__}")
        try:
            keys = sorted(value)
        except TypeError as e:
            raise InvalidValue(f"map keys are not mutually ordered: {e}") from e
        write_length(len(value), out)
        for k in keys:
            self.key.encode(k, out)
            self.value.encode(value[k], out)

    def decode(self, reader: Reader) -> dict[Any, Any]:
        count = reader.read_uint(2)
        result: dict[Any, Any] = {}
        previous = None
        for i in range(count):
            offset = reader.offset
            k = self.key.decode(reader)
            if i and not previous < k:
                raise InvalidValue("map keys are not in strictly ascending order", offset=offset)
            result[k] = self.value.decode(reader)
            previous = k
        return result

    def default(self) -> dict[Any, Any]:
        return {}
