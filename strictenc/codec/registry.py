"""Registry of type descriptors and their compiled codec plans."""

from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any

from structlog import get_logger

from .containers import ListCodec, MapCodec, OptionCodec
from .driver import CompositeCodec, decode, default_value, encode
from .errors import DuplicateTypeName, InvalidDirective, UnknownType
from .plan import CodecPlan, compile_plan
from .primitives import Codec, primitive_codec
from .types import CONTAINER_TYPES, TypeDescriptor, TypeRef, is_container, is_primitive

logger = get_logger()


class Registry:
    """Holds the types known to a program and compiles them as a whole.

    Types may reference each other (and themselves) by name, so plans are
    compiled together the first time any of them is needed. Registering a new
    type discards the compiled plans; the next use compiles again.

    Example:
        registry = Registry()
        registry.register(descriptor)
        data = registry.encode("Point", point)
        point = registry.decode("Point", data)
    """

    def __init__(self) -> None:
        self._descriptors: dict[str, TypeDescriptor] = {}
        self._plans: Mapping[str, CodecPlan] | None = None
        self.log = logger.new()

    def register(self, descriptor: TypeDescriptor) -> None:
        existing = self._descriptors.get(descriptor.name)
        if existing is not None and (
            existing.binding is not descriptor.binding or existing != descriptor
        ):
            raise DuplicateTypeName(descriptor.name)
        self._descriptors[descriptor.name] = descriptor
        self._plans = None

    def __contains__(self, name: object) -> bool:
        return name in self._descriptors

    def __iter__(self) -> Iterator[str]:
        return iter(self._descriptors)

    def __len__(self) -> int:
        return len(self._descriptors)

    def descriptor(self, name: str) -> TypeDescriptor:
        try:
            return self._descriptors[name]
        except KeyError:
            raise UnknownType(name) from None

    def codec_for(self, t: TypeRef) -> Codec:
        """Return the codec handling values of a type reference."""
        if is_primitive(t):
            if t.args:
                raise InvalidDirective(f"{t}: {t.name} takes no type arguments")
            if t.size is not None and t.name != "bytes":
                raise InvalidDirective(f"{t}: only bytes can have a fixed size")
            return primitive_codec(t)
        if is_container(t):
            if len(t.args) != CONTAINER_TYPES[t.name]:
                count = CONTAINER_TYPES[t.name]
                raise InvalidDirective(f"{t}: {t.name} takes {count} type argument(s)")
            if t.name == "option":
                return OptionCodec(self.codec_for(t.args[0]))
            if t.name == "list":
                return ListCodec(self.codec_for(t.args[0]))
            if not is_primitive(t.args[0]):
                raise InvalidDirective(f"{t}: map keys must be integers, bool, bytes or string")
            return MapCodec(self.codec_for(t.args[0]), self.codec_for(t.args[1]))
        if t.name not in self._descriptors:
            raise UnknownType(t.name)
        return CompositeCodec(self, t.name)

    def compile(self) -> Mapping[str, CodecPlan]:
        """Compile every registered type.

        Raises:
            SchemaError: If any type is inconsistent. No plans are kept then.
        """
        if self._plans is not None:
            return self._plans

        plans: dict[str, CodecPlan] = {}
        for name, descriptor in self._descriptors.items():
            plans[name] = compile_plan(descriptor, self.codec_for)
            self.log.debug("compiled codec plan", type=name, kind=str(descriptor.kind))

        self._plans = MappingProxyType(plans)
        return self._plans

    def plan(self, name: str) -> CodecPlan:
        plans = self.compile()
        try:
            return plans[name]
        except KeyError:
            raise UnknownType(name) from None

    def encode(self, name: str, value: Any) -> bytes:
        return encode(self.plan(name), value)

    def decode(self, name: str, data: bytes | bytearray | memoryview) -> Any:
        return decode(self.plan(name), data)

    def default(self, name: str) -> Any:
        return default_value(self.plan(name))


def compile(descriptor: TypeDescriptor, registry: Registry | None = None) -> CodecPlan:
    """Compile a single descriptor, resolving named types through a registry.

    The descriptor itself is added to the registry so it may refer to itself.
    """
    registry = registry if registry is not None else Registry()
    registry.register(descriptor)
    return registry.plan(descriptor.name)
